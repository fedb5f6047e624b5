from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.requests import HTTPConnection
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from app.chat.models import TherapySession
from app.chat.services import ChatServices
from app.chat.sessions import TherapySessionManager
from app.core import messages
from app.core.database import get_db
from app.core.security import decode_token
from app.models.user import User
from app.services.user_service import UserService


bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    db: AsyncSession = Depends(get_db),
) -> User:
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=messages.AUTH_INVALID_CREDENTIALS,
        )

    try:
        payload = decode_token(credentials.credentials, expected_type="access")
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=messages.AUTH_INVALID_CREDENTIALS,
        )

    return await UserService.upsert_from_claims(db, payload)


def get_chat_services(connection: HTTPConnection) -> ChatServices:
    return connection.app.state.chat


def parse_id(raw_id: str, detail: str) -> int:
    try:
        return int(raw_id)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


async def get_accessible_session(
    session_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> TherapySession:
    """Load a session the current user participates in (404 if missing, 403 if not theirs)."""
    session_pk = parse_id(session_id, messages.SESSION_INVALID_ID)
    session = await TherapySessionManager.get_session(db, session_pk)
    if not session:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=messages.SESSION_NOT_FOUND,
        )

    if current_user.id not in (session.creator_id, session.partner_id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=messages.SESSION_ACCESS_DENIED,
        )

    return session
