"""Persistence facade for the orchestration core.

Reply generation runs detached from any request, so it cannot borrow a
request-scoped database session. Each call here opens a short-lived session
from the factory, delegates to the managers and closes it again.
"""

from typing import Awaitable, Callable, List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .messages import MessageHandler
from .models import Message, TherapySession
from .sessions import TherapySessionManager


class ChatStorage:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def get_session(self, session_id: int, user_id: Optional[str] = None) -> Optional[TherapySession]:
        async with self._session_factory() as db:
            return await TherapySessionManager.get_session(db, session_id, user_id)

    async def rename_session(self, session_id: int, title: str) -> Optional[TherapySession]:
        async with self._session_factory() as db:
            return await TherapySessionManager.update_session(db, session_id, title=title)

    async def create_message(
        self,
        session_id: int,
        content: str,
        sender_id: Optional[str] = None,
        is_ai: bool = False,
        on_flush: Optional[Callable[[int], Awaitable[None]]] = None,
    ) -> Message:
        async with self._session_factory() as db:
            return await MessageHandler.create_message(
                db, session_id=session_id, content=content, sender_id=sender_id, is_ai=is_ai, on_flush=on_flush
            )

    async def get_message(self, message_id: int) -> Optional[Message]:
        async with self._session_factory() as db:
            return await MessageHandler.get_message(db, message_id)

    async def get_session_messages(self, session_id: int, limit: Optional[int] = None) -> List[Message]:
        async with self._session_factory() as db:
            return await MessageHandler.get_session_messages(db, session_id, limit)

    async def update_message_content(self, message_id: int, content: str) -> None:
        async with self._session_factory() as db:
            await MessageHandler.update_content(db, message_id, content)

    async def count_completed_ai_messages(self, session_id: int) -> int:
        async with self._session_factory() as db:
            return await MessageHandler.count_completed_ai_messages(db, session_id)

    async def get_first_exchange(self, session_id: int) -> Tuple[Optional[Message], Optional[Message]]:
        async with self._session_factory() as db:
            return await MessageHandler.get_first_exchange(db, session_id)
