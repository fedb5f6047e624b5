"""Message handling for therapy chats."""

import logging
from typing import Awaitable, Callable, List, Optional, Tuple

from sqlalchemy import asc, desc, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.messages import AI_FALLBACK_REPLY
from .models import Message, TherapySession


logger = logging.getLogger("app.chat.messages")


class MessageHandler:
    """Handles message creation, retrieval and in-place content updates."""

    @staticmethod
    async def create_message(
        db: AsyncSession,
        session_id: int,
        content: str,
        sender_id: Optional[str] = None,
        is_ai: bool = False,
        on_flush: Optional[Callable[[int], Awaitable[None]]] = None,
    ) -> Message:
        """Create a new message in a session and bump the session's activity time.

        ``on_flush`` receives the new id before the row is committed and
        becomes visible to other sessions.
        """
        message = Message(
            session_id=session_id,
            sender_id=sender_id,
            is_ai=is_ai,
            content=content,
        )

        db.add(message)
        await db.flush()

        if on_flush is not None:
            await on_flush(message.id)

        await db.execute(
            update(TherapySession)
            .where(TherapySession.id == session_id)
            .values(last_message_at=func.now())
        )

        await db.commit()
        await db.refresh(message)

        logger.info(
            "Message created: message_id=%s, session_id=%s, is_ai=%s",
            message.id,
            session_id,
            is_ai,
        )

        return message

    @staticmethod
    async def get_message(db: AsyncSession, message_id: int) -> Optional[Message]:
        return await db.get(Message, message_id)

    @staticmethod
    async def get_session_messages(
        db: AsyncSession,
        session_id: int,
        limit: Optional[int] = None,
    ) -> List[Message]:
        """Get messages oldest first. With ``limit``, only the most recent ones."""
        if limit is None:
            query = (
                select(Message)
                .where(Message.session_id == session_id)
                .order_by(asc(Message.created_at), asc(Message.id))
            )
            return list((await db.execute(query)).scalars().all())

        query = (
            select(Message)
            .where(Message.session_id == session_id)
            .order_by(desc(Message.created_at), desc(Message.id))
            .limit(limit)
        )
        recent = list((await db.execute(query)).scalars().all())
        recent.reverse()
        return recent

    @staticmethod
    async def update_content(db: AsyncSession, message_id: int, content: str) -> None:
        """Overwrite the message content with the full text so far."""
        await db.execute(
            update(Message).where(Message.id == message_id).values(content=content)
        )
        await db.commit()

    @staticmethod
    async def count_completed_ai_messages(db: AsyncSession, session_id: int) -> int:
        query = select(func.count(Message.id)).where(
            Message.session_id == session_id,
            Message.is_ai.is_(True),
            Message.content != "",
            Message.content != AI_FALLBACK_REPLY,
        )
        return (await db.execute(query)).scalar_one()

    @staticmethod
    async def get_first_exchange(
        db: AsyncSession,
        session_id: int,
    ) -> Tuple[Optional[Message], Optional[Message]]:
        """First user message and first successful assistant reply of a session."""
        ordering = (asc(Message.created_at), asc(Message.id))

        user_query = (
            select(Message)
            .where(Message.session_id == session_id, Message.is_ai.is_(False))
            .order_by(*ordering)
            .limit(1)
        )
        ai_query = (
            select(Message)
            .where(
                Message.session_id == session_id,
                Message.is_ai.is_(True),
                Message.content != "",
                Message.content != AI_FALLBACK_REPLY,
            )
            .order_by(*ordering)
            .limit(1)
        )

        first_user = (await db.execute(user_query)).scalar_one_or_none()
        first_ai = (await db.execute(ai_query)).scalar_one_or_none()
        return first_user, first_ai
