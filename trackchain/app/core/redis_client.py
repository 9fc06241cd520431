"""
Redis connection shared by the revocation checks.

The identity service writes logout and suspension markers into the same
Redis; this service reads them on every request and writes its own on
local logout or admin suspension.
"""

import logging

import redis.asyncio as redis
from trackchain.app.core.config import settings

logger = logging.getLogger(__name__)

# Connections are opened on first use
redis_client = redis.from_url(
    settings.redis_url,
    decode_responses=settings.redis_decode_responses,
)


async def ping_redis() -> bool:
    """True when the revocation store answers; used by /health."""
    try:
        return bool(await redis_client.ping())
    except Exception as e:
        logger.warning("Redis ping failed: %s", e)
        return False


async def close_redis() -> None:
    """Release pooled connections on shutdown."""
    try:
        await redis_client.aclose()
    except Exception as e:
        logger.warning("Error closing Redis client: %s", e)
