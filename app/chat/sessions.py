"""Therapy session management."""

import logging
from typing import List, Optional

from sqlalchemy import delete, desc, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Message, TherapySession


logger = logging.getLogger("app.chat.sessions")


class TherapySessionManager:
    """Manages therapy session lifecycle."""

    @staticmethod
    async def create_session(
        db: AsyncSession,
        creator_id: str,
        title: str,
        session_type: str,
        partner_id: Optional[str] = None,
    ) -> TherapySession:
        """Create a new therapy session."""
        session = TherapySession(
            creator_id=creator_id,
            partner_id=partner_id,
            title=title,
            type=session_type,
            is_active=True,
        )

        db.add(session)
        await db.commit()
        await db.refresh(session)

        logger.info(
            "Therapy session created: session_id=%s, type=%s, creator_id=%s",
            session.id,
            session_type,
            creator_id,
        )

        return session

    @staticmethod
    async def get_session(
        db: AsyncSession,
        session_id: int,
        user_id: Optional[str] = None,
    ) -> Optional[TherapySession]:
        """Get an active session by ID, optionally restricted to a participant."""
        query = select(TherapySession).where(
            TherapySession.id == session_id,
            TherapySession.is_active.is_(True),
        )

        if user_id:
            query = query.where(
                or_(
                    TherapySession.creator_id == user_id,
                    TherapySession.partner_id == user_id,
                )
            )

        return (await db.execute(query)).scalar_one_or_none()

    @staticmethod
    async def list_sessions(
        db: AsyncSession,
        user_id: str,
        session_type: Optional[str] = None,
    ) -> List[TherapySession]:
        """List active sessions the user created or partners in, most recent activity first."""
        query = select(TherapySession).where(
            TherapySession.is_active.is_(True),
            or_(
                TherapySession.creator_id == user_id,
                TherapySession.partner_id == user_id,
            ),
        )

        if session_type:
            query = query.where(TherapySession.type == session_type)

        query = query.order_by(desc(TherapySession.last_message_at), desc(TherapySession.id))
        return list((await db.execute(query)).scalars().all())

    @staticmethod
    async def update_session(
        db: AsyncSession,
        session_id: int,
        **updates,
    ) -> Optional[TherapySession]:
        """Update session metadata."""
        session = await TherapySessionManager.get_session(db, session_id)
        if not session:
            return None

        for key, value in updates.items():
            if hasattr(session, key) and value is not None:
                setattr(session, key, value)

        db.add(session)
        await db.commit()
        await db.refresh(session)
        return session

    @staticmethod
    async def delete_session(db: AsyncSession, session_id: int) -> bool:
        """Hard-delete a session: its messages first, then the session row."""
        session = await db.get(TherapySession, session_id)
        if not session:
            return False

        result = await db.execute(delete(Message).where(Message.session_id == session_id))
        await db.execute(delete(TherapySession).where(TherapySession.id == session_id))
        await db.commit()

        logger.info(
            "Therapy session deleted: session_id=%s, messages_deleted=%s",
            session_id,
            result.rowcount,
        )
        return True
