"""Routing of inbound chat messages to session participants."""

import logging
from dataclasses import dataclass
from typing import Optional

from .context import to_history
from .errors import SessionNotFound
from .events import MessageEvent, MessagePayload, SenderInfo
from .storage import ChatStorage
from .streaming import ReplyJob, StreamingReplyCoordinator
from .websocket import SessionRegistry


logger = logging.getLogger("app.chat.router")

DEFAULT_HISTORY_LIMIT = 10
PLACEHOLDER_CONTENT = ""


@dataclass(frozen=True)
class RoutedMessage:
    user_message_id: int
    ai_message_id: int


class MessageRouter:
    """Persists an inbound message, fans it out and hands off reply generation."""

    def __init__(
        self,
        storage: ChatStorage,
        registry: SessionRegistry,
        coordinator: StreamingReplyCoordinator,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
    ):
        self.storage = storage
        self.registry = registry
        self.coordinator = coordinator
        self.history_limit = history_limit

    async def route_message(
        self,
        session_id: int,
        sender_id: str,
        sender_name: str,
        content: str,
        sender_image_url: Optional[str] = None,
    ) -> RoutedMessage:
        """
        Route one user message. Returns as soon as the placeholder reply exists;
        the reply itself arrives over the registry.

        Raises:
            SessionNotFound: the session is missing, inactive, or the sender
                is not one of its participants. Nothing is persisted.
        """
        session = await self.storage.get_session(session_id)
        if session is None or not session.has_participant(sender_id):
            raise SessionNotFound(session_id)

        user_message = await self.storage.create_message(
            session_id=session_id,
            content=content,
            sender_id=sender_id,
            is_ai=False,
        )

        recipients = session.recipient_ids()
        sender = SenderInfo(id=sender_id, name=sender_name, image_url=sender_image_url)
        delivered = await self.registry.broadcast(
            recipients,
            MessageEvent(message=MessagePayload.from_message(user_message, sender=sender)),
        )

        recent = await self.storage.get_session_messages(session_id, limit=self.history_limit)
        history = to_history(recent)

        ai_message = await self.storage.create_message(
            session_id=session_id,
            content=PLACEHOLDER_CONTENT,
            is_ai=True,
            on_flush=self.coordinator.mark_pending,
        )

        logger.info(
            "Message routed: session_id=%s, type=%s, user_message_id=%s, ai_message_id=%s, delivered=%d/%d",
            session_id,
            session.type,
            user_message.id,
            ai_message.id,
            delivered,
            len(recipients),
        )

        self.coordinator.start(
            ReplyJob(
                session_id=session_id,
                session_type=session.type,
                message_id=ai_message.id,
                recipients=recipients,
                history=history,
            )
        )

        return RoutedMessage(user_message_id=user_message.id, ai_message_id=ai_message.id)
