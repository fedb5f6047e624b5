"""Exceptions raised by the chat orchestration core."""

from app.services.ai_service import GenerationError


class ChatError(Exception):
    """Base class for chat errors surfaced to the caller."""


class SessionNotFound(ChatError):
    """The session does not exist, is inactive, or the caller is not a participant."""

    def __init__(self, session_id: int):
        super().__init__(f"Session {session_id} not found")
        self.session_id = session_id


class TitleGenerationError(Exception):
    """Generated title was unusable; the previous title is kept."""


__all__ = [
    "ChatError",
    "SessionNotFound",
    "GenerationError",
    "TitleGenerationError",
]
