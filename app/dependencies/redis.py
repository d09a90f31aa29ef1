"""The process-wide Upstash client behind the game store, the game lock and
websocket presence counters."""

import logging

from upstash_redis.asyncio import Redis

from app.config import Settings, get_settings

logger = logging.getLogger(__name__)

_client: Redis | None = None


def get_redis_client(settings: Settings | None = None) -> Redis:
    """The shared client, created on first use from ``settings`` (process settings by default)."""
    global _client
    if _client is None:
        settings = settings or get_settings()
        _client = Redis(
            url=settings.UPSTASH_REDIS_REST_URL,
            token=settings.UPSTASH_REDIS_REST_TOKEN,
        )
        logger.info("Upstash client created for %s", settings.UPSTASH_REDIS_REST_URL)
    return _client


async def close_redis_client() -> None:
    global _client
    if _client is None:
        return
    await _client.close()
    _client = None
    logger.info("Upstash client closed")
