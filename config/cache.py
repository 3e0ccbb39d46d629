# config/cache.py
import logging
from typing import Optional
from redis.asyncio import Redis, from_url
from redis.exceptions import RedisError
from config.settings import settings

logger = logging.getLogger(__name__)

_client: Optional[Redis] = None


async def get_redis() -> Redis:
    """
    Shared client for the rate limiter and the embedding store. Responses stay
    as bytes because chunk embeddings are stored as raw float32 buffers.
    """
    global _client
    if _client is None:
        _client = from_url(
            settings.REDIS_URL,
            decode_responses=False,
            socket_keepalive=True,
            health_check_interval=30,
        )
        # Unreachable Redis fails startup rather than the first request.
        await _client.ping()
        logger.info("redis.connected index=%s", settings.INDEX_ENABLED)
    return _client


async def redis_ready() -> bool:
    """Ping for /healthz; never raises."""
    if _client is None:
        return False
    try:
        return bool(await _client.ping())
    except (RedisError, OSError) as e:
        logger.warning("redis.ping.failed err=%s", type(e).__name__)
        return False


async def close_redis() -> None:
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None
        logger.info("redis.closed")
