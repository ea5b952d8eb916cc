"""Shared Redis client, used for rate-limit counters when ``redis_url`` is configured."""

import redis.asyncio as redis
import structlog

logger = structlog.get_logger()

_client: redis.Redis | None = None


async def init_redis(url: str) -> None:
    """Create the shared client. Connections are opened lazily on first command."""
    global _client  # noqa: PLW0603
    _client = redis.from_url(  # type: ignore[no-untyped-call]
        url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=20,
        health_check_interval=30,
    )
    logger.info("redis_configured")


async def close_redis() -> None:
    global _client  # noqa: PLW0603
    if _client is not None:
        await _client.aclose()
        _client = None


async def ping_redis() -> bool:
    """True when Redis is configured and answers PING."""
    if _client is None:
        return False
    try:
        return bool(await _client.ping())
    except redis.RedisError:
        logger.warning("redis_ping_failed")
        return False


def get_redis() -> redis.Redis:
    """The shared client; raises RuntimeError before ``init_redis``."""
    if _client is None:
        msg = "Redis not initialized. Call init_redis() first."
        raise RuntimeError(msg)
    return _client
