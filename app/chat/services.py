"""Wiring of the orchestration core into one object per application."""

from dataclasses import dataclass
from typing import Optional

from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.config import Settings
from app.services.ai_service import CompletionProvider
from .context import ChatContextBuilder
from .router import MessageRouter
from .storage import ChatStorage
from .streaming import StreamingReplyCoordinator
from .titles import SessionTitleGenerator
from .tracker import CompletionTracker
from .websocket import SessionRegistry


@dataclass
class ChatServices:
    storage: ChatStorage
    registry: SessionRegistry
    tracker: CompletionTracker
    coordinator: StreamingReplyCoordinator
    title_generator: SessionTitleGenerator
    router: MessageRouter


def build_chat_services(
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
    provider: CompletionProvider,
    redis_client: Optional[Redis] = None,
) -> ChatServices:
    storage = ChatStorage(session_factory)
    registry = SessionRegistry()
    tracker = CompletionTracker(redis_client, ttl_seconds=settings.COMPLETION_STATE_TTL_SECONDS)
    title_generator = SessionTitleGenerator(
        storage,
        registry,
        provider,
        streaming=settings.TITLE_STREAMING_ENABLED,
        model=settings.OPENAI_MODEL,
        max_tokens=settings.TITLE_MAX_TOKENS,
    )
    coordinator = StreamingReplyCoordinator(
        storage,
        registry,
        provider,
        tracker,
        ChatContextBuilder(provider, max_context_tokens=settings.MAX_CONTEXT_TOKENS),
        title_generator,
        timeout_seconds=settings.GENERATION_TIMEOUT_SECONDS,
        model=settings.OPENAI_MODEL,
        temperature=settings.OPENAI_TEMPERATURE,
        max_tokens=settings.OPENAI_MAX_TOKENS,
    )
    router = MessageRouter(storage, registry, coordinator, history_limit=settings.CHAT_HISTORY_LIMIT)
    return ChatServices(
        storage=storage,
        registry=registry,
        tracker=tracker,
        coordinator=coordinator,
        title_generator=title_generator,
        router=router,
    )
