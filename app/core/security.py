"""Verification of access tokens issued by the external identity provider."""

from typing import Any

from jose import JWTError, jwt

from .config import settings


def decode_token(token: str, expected_type: str | None = "access") -> dict[str, Any]:
    """Decode and validate a bearer token.

    Tokens are signed by the identity provider with the shared ``SECRET_KEY``.
    The subject claim carries the opaque user id. When the provider stamps a
    ``type`` claim it must match ``expected_type``.
    """
    payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    token_type = payload.get("type")
    if expected_type and token_type is not None and token_type != expected_type:
        raise JWTError("Invalid token type")
    if not payload.get("sub"):
        raise JWTError("Token has no subject")
    return payload
