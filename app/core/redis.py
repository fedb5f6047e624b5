from __future__ import annotations

import logging
import os

import redis.asyncio as redis

from .config import settings

logger = logging.getLogger(__name__)

_redis_client: redis.Redis | None = None
_redis_initialized = False


def _initialize_redis() -> None:
    """Create the Redis client if a URL is configured.

    The client connects lazily; callers must treat ``redis.RedisError`` as
    "Redis unavailable" and fall back to in-process state.
    """
    global _redis_client, _redis_initialized

    if _redis_initialized:
        return

    _redis_initialized = True

    redis_url = os.getenv("REDIS_URL") or settings.REDIS_URL

    if not redis_url or redis_url.lower() in ("none", "disabled", ""):
        logger.info("Redis is not configured. Completion state will be kept in process memory only.")
        return

    # The docker-compose default is never reachable from hosted deployments
    if redis_url == "redis://redis:6379/0" and os.getenv("ENVIRONMENT", "development").lower() in ("production", "staging"):
        if not os.getenv("REDIS_URL"):
            logger.info("Redis not configured (default Docker URL detected in production). Completion state will be kept in process memory only.")
            return

    _redis_client = redis.Redis.from_url(
        redis_url,
        decode_responses=True,
        socket_connect_timeout=2,
        socket_timeout=2,
        retry_on_timeout=False,
    )
    logger.info("Redis client configured for %s", redis_url.rsplit("@", 1)[-1])


def get_redis_client() -> redis.Redis | None:
    """Get Redis client if configured, otherwise return None."""
    _initialize_redis()
    return _redis_client

