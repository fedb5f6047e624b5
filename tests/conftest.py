"""
Shared pytest fixtures for the chat orchestration tests.

Environment is pinned before any ``app`` import so that settings, the module
level engine and the Redis client all resolve to test-safe values.
"""

import asyncio
import os

os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["REDIS_URL"] = "disabled"
os.environ.pop("OPENAI_API_KEY", None)

import pytest
from jose import jwt
from starlette.websockets import WebSocketState

from app.chat import models as chat_models  # noqa: F401  registers chat tables
from app.chat.context import ChatContextBuilder
from app.chat.router import MessageRouter
from app.chat.sessions import TherapySessionManager
from app.chat.storage import ChatStorage
from app.chat.streaming import StreamingReplyCoordinator
from app.chat.titles import SessionTitleGenerator
from app.chat.tracker import CompletionTracker
from app.chat.websocket import SessionRegistry
from app.core.config import settings
from app.core.database import build_engine, build_session_factory
from app.models import Base
from app.services.ai_service import GenerationError


USER_A = "user-alice"
USER_B = "user-bob"
USER_C = "user-carol"


class FakeProvider:
    """Scripted completion service.

    ``fail_after`` raises ``GenerationError`` once that many fragments have
    been yielded. ``gate_after`` blocks on ``gate`` after that many fragments.
    """

    def __init__(
        self,
        fragments=("Hello", ", I'm ", "here for you."),
        title="Work Stress Management",
        fail_after=None,
        gate_after=None,
        title_error=None,
    ):
        self.fragments = list(fragments)
        self.title = title
        self.fail_after = fail_after
        self.gate_after = gate_after
        self.gate = asyncio.Event()
        self.title_error = title_error
        self.stream_calls = []
        self.complete_calls = []

    async def stream_completion(self, request):
        self.stream_calls.append(request)
        for index, fragment in enumerate(self.fragments):
            if index == self.fail_after:
                raise GenerationError("completion service rejected the request")
            if index == self.gate_after:
                await self.gate.wait()
            yield fragment
        if self.fail_after is not None and self.fail_after >= len(self.fragments):
            raise GenerationError("completion service rejected the request")

    async def complete(self, request):
        self.complete_calls.append(request)
        if self.title_error is not None:
            raise self.title_error
        return self.title

    def estimate_tokens(self, text):
        return max(1, len(text) // 4)


class FakeChannel:
    """Stand-in for a connected WebSocket that records what it was sent."""

    def __init__(self, fail=False):
        self.client_state = WebSocketState.CONNECTED
        self.application_state = WebSocketState.CONNECTED
        self.sent = []
        self.fail = fail

    async def send_json(self, data):
        if self.fail:
            raise RuntimeError("socket went away")
        self.sent.append(data)

    def close(self):
        self.client_state = WebSocketState.DISCONNECTED
        self.application_state = WebSocketState.DISCONNECTED

    def of_type(self, event_type):
        return [event for event in self.sent if event["type"] == event_type]

    @property
    def types(self):
        return [event["type"] for event in self.sent]


class RecordingStorage(ChatStorage):
    """ChatStorage that remembers every content overwrite, in order."""

    def __init__(self, session_factory):
        super().__init__(session_factory)
        self.content_updates = []

    async def update_message_content(self, message_id, content):
        self.content_updates.append((message_id, content))
        await super().update_message_content(message_id, content)


def make_token(user_id, **claims):
    payload = {"sub": user_id, "type": "access", **claims}
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def auth_headers(user_id, **claims):
    return {"Authorization": f"Bearer {make_token(user_id, **claims)}"}


@pytest.fixture
async def engine(tmp_path):
    # File-backed so the detached reply tasks get their own connections
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'chat.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def storage(session_factory):
    return RecordingStorage(session_factory)


@pytest.fixture
def registry():
    return SessionRegistry()


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def tracker():
    return CompletionTracker()


@pytest.fixture
def title_generator(storage, registry, provider):
    return SessionTitleGenerator(storage, registry, provider)


@pytest.fixture
def coordinator(storage, registry, provider, tracker, title_generator):
    return StreamingReplyCoordinator(
        storage,
        registry,
        provider,
        tracker,
        ChatContextBuilder(provider),
        title_generator,
        timeout_seconds=5,
    )


@pytest.fixture
def router(storage, registry, coordinator):
    return MessageRouter(storage, registry, coordinator)


@pytest.fixture
def create_session(session_factory):
    async def _create(creator_id=USER_A, title="Private Session 1", session_type="private", partner_id=None):
        async with session_factory() as db:
            return await TherapySessionManager.create_session(
                db,
                creator_id=creator_id,
                title=title,
                session_type=session_type,
                partner_id=partner_id,
            )

    return _create
