"""Chat orchestration for therapy sessions."""

from .models import Message, TherapySession
from .sessions import TherapySessionManager
from .messages import MessageHandler
from .storage import ChatStorage
from .websocket import SessionRegistry
from .context import ChatContextBuilder
from .tracker import CompletionTracker, ReplyState
from .titles import SessionTitleGenerator
from .streaming import ReplyJob, StreamingReplyCoordinator
from .router import MessageRouter, RoutedMessage
from .errors import ChatError, GenerationError, SessionNotFound

__all__ = [
    "Message",
    "TherapySession",
    "TherapySessionManager",
    "MessageHandler",
    "ChatStorage",
    "SessionRegistry",
    "ChatContextBuilder",
    "CompletionTracker",
    "ReplyState",
    "SessionTitleGenerator",
    "ReplyJob",
    "StreamingReplyCoordinator",
    "MessageRouter",
    "RoutedMessage",
    "ChatError",
    "GenerationError",
    "SessionNotFound",
]
