"""Local mirror of identity-provider profiles."""

import logging
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.user import User


logger = logging.getLogger("app.users")

# identity-provider claim -> User column
CLAIM_FIELDS = {
    "email": "email",
    "first_name": "first_name",
    "last_name": "last_name",
    "profile_image_url": "profile_image_url",
}


class UserService:
    @staticmethod
    async def get_user(db: AsyncSession, user_id: str) -> Optional[User]:
        return await db.get(User, user_id)

    @staticmethod
    async def upsert_from_claims(db: AsyncSession, claims: Dict[str, Any]) -> User:
        """Create or refresh the user named by the token's ``sub`` claim."""
        user_id = str(claims["sub"])
        user = await db.get(User, user_id)
        created = user is None
        if user is None:
            user = User(id=user_id)

        changed = created
        for claim, column in CLAIM_FIELDS.items():
            value = claims.get(claim)
            if value is not None and getattr(user, column) != value:
                setattr(user, column, value)
                changed = True

        if changed:
            db.add(user)
            await db.commit()
            await db.refresh(user)
        if created:
            logger.info("User created from identity claims: user_id=%s", user_id)
        return user
