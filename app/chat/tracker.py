"""Completion state per assistant message id."""

import enum
import logging
from collections import OrderedDict
from typing import Optional

from redis.asyncio import Redis
from redis.exceptions import RedisError


logger = logging.getLogger("app.chat.tracker")

MAX_LOCAL_ENTRIES = 10_000
REDIS_KEY_PREFIX = "chat:completion:"


class ReplyState(str, enum.Enum):
    PENDING = "pending"
    STREAMING = "streaming"
    COMPLETE = "complete"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ReplyState.COMPLETE, ReplyState.FAILED)


class CompletionTracker:
    """Records whether generation for a message has reached a terminal state.

    State lives in process memory and, when a Redis client is given, is
    mirrored there with a TTL. Redis errors are logged and ignored; the
    local copy stays authoritative for replies generated by this process.
    """

    def __init__(self, redis_client: Optional[Redis] = None, ttl_seconds: int = 3600):
        self._states: "OrderedDict[int, ReplyState]" = OrderedDict()
        self._redis = redis_client
        self._ttl_seconds = ttl_seconds

    async def set_state(self, message_id: int, state: ReplyState) -> None:
        self._states[message_id] = state
        self._states.move_to_end(message_id)
        if len(self._states) > MAX_LOCAL_ENTRIES:
            self._evict(len(self._states) - MAX_LOCAL_ENTRIES)

        if self._redis is None:
            return
        try:
            await self._redis.set(f"{REDIS_KEY_PREFIX}{message_id}", state.value, ex=self._ttl_seconds)
        except RedisError as e:
            logger.warning("Failed to mirror completion state for message %s: %s", message_id, e)

    def _evict(self, count: int) -> None:
        # Oldest terminal entries go first; replies still generating are kept
        finished = [mid for mid, state in self._states.items() if state.is_terminal]
        for message_id in finished[:count]:
            del self._states[message_id]

    async def get_state(self, message_id: int) -> Optional[ReplyState]:
        state = self._states.get(message_id)
        if state is not None or self._redis is None:
            return state
        try:
            value = await self._redis.get(f"{REDIS_KEY_PREFIX}{message_id}")
        except RedisError as e:
            logger.warning("Failed to read completion state for message %s: %s", message_id, e)
            return None
        return ReplyState(value) if value else None
