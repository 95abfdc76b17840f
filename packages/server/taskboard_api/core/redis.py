"""Shared Redis client backing the session revocation list."""

from __future__ import annotations

from typing import Optional

import redis.asyncio as redis
import structlog

from taskboard_api.core.config import get_settings

log = structlog.get_logger()
settings = get_settings()

_client: Optional[redis.Redis] = None


async def get_redis() -> redis.Redis:
    """Lazily create the client; timeouts bound how long an auth lookup can stall."""
    global _client
    if _client is None:
        _client = redis.from_url(
            settings.redis_url,
            decode_responses=True,
            socket_connect_timeout=settings.redis_timeout_seconds,
            socket_timeout=settings.redis_timeout_seconds,
        )
    return _client


async def close_redis() -> None:
    global _client
    if _client is None:
        return
    client, _client = _client, None
    await client.aclose()
    log.info("redis.closed")
