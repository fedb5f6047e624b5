"""Tests for per-message completion state."""

from redis.exceptions import ConnectionError as RedisConnectionError

from app.chat import tracker as tracker_module
from app.chat.tracker import REDIS_KEY_PREFIX, CompletionTracker, ReplyState


class InMemoryRedis:
    def __init__(self):
        self.values = {}

    async def set(self, key, value, ex=None):
        self.values[key] = value

    async def get(self, key):
        return self.values.get(key)


class UnreachableRedis:
    async def set(self, key, value, ex=None):
        raise RedisConnectionError("connection refused")

    async def get(self, key):
        raise RedisConnectionError("connection refused")


def test_terminal_states():
    assert ReplyState.COMPLETE.is_terminal
    assert ReplyState.FAILED.is_terminal
    assert not ReplyState.PENDING.is_terminal
    assert not ReplyState.STREAMING.is_terminal


async def test_unknown_message_has_no_state():
    assert await CompletionTracker().get_state(99) is None


async def test_state_transitions_are_recorded():
    tracker = CompletionTracker()

    await tracker.set_state(1, ReplyState.PENDING)
    await tracker.set_state(1, ReplyState.STREAMING)

    assert await tracker.get_state(1) is ReplyState.STREAMING


async def test_state_is_mirrored_to_redis():
    redis_client = InMemoryRedis()
    writer = CompletionTracker(redis_client)
    await writer.set_state(5, ReplyState.COMPLETE)

    assert redis_client.values[f"{REDIS_KEY_PREFIX}5"] == "complete"
    # A fresh process reads it back from the mirror
    assert await CompletionTracker(redis_client).get_state(5) is ReplyState.COMPLETE


async def test_redis_errors_fall_back_to_local_state():
    tracker = CompletionTracker(UnreachableRedis())

    await tracker.set_state(3, ReplyState.FAILED)

    assert await tracker.get_state(3) is ReplyState.FAILED
    assert await tracker.get_state(4) is None


async def test_eviction_skips_replies_still_generating(monkeypatch):
    monkeypatch.setattr(tracker_module, "MAX_LOCAL_ENTRIES", 3)
    tracker = CompletionTracker()

    await tracker.set_state(1, ReplyState.STREAMING)
    for message_id in (2, 3, 4, 5):
        await tracker.set_state(message_id, ReplyState.COMPLETE)

    assert await tracker.get_state(1) is ReplyState.STREAMING
    assert await tracker.get_state(2) is None
    assert await tracker.get_state(3) is None
    assert await tracker.get_state(5) is ReplyState.COMPLETE
