"""
Shared Redis client accessor and JSON cache helpers.

Redis is optional: every helper is a no-op when the client was never
initialized, so callers fall through to the database.
"""

import json
import logging
from typing import Any, Optional

import redis.asyncio as aioredis

logger = logging.getLogger(__name__)

_redis_client: Optional[aioredis.Redis] = None


async def init_redis(url: str) -> aioredis.Redis:
    """Initialize the shared Redis connection. Called once during app lifespan startup."""
    global _redis_client
    _redis_client = aioredis.from_url(url, encoding="utf-8", decode_responses=False)
    await _redis_client.ping()
    return _redis_client


def get_redis_client() -> Optional[aioredis.Redis]:
    """Get the shared Redis client. Returns None if not initialized."""
    return _redis_client


async def close_redis() -> None:
    """Close the shared Redis connection. Called during app lifespan shutdown."""
    global _redis_client
    if _redis_client:
        await _redis_client.close()
        _redis_client = None


async def cache_get_json(key: str) -> Any | None:
    redis = get_redis_client()
    if not redis:
        return None
    try:
        data = await redis.get(key)
    except Exception as e:
        logger.debug(f"Redis cache lookup failed for {key}: {e}")
        return None
    return json.loads(data) if data else None


async def cache_set_json(key: str, value: Any, ttl: int) -> None:
    redis = get_redis_client()
    if not redis:
        return
    try:
        await redis.set(key, json.dumps(value, default=str), ex=ttl)
    except Exception as e:
        logger.debug(f"Redis cache write failed for {key}: {e}")


async def cache_delete_prefix(prefix: str) -> None:
    """Drop every key starting with prefix."""
    redis = get_redis_client()
    if not redis:
        return
    try:
        keys = [key async for key in redis.scan_iter(match=f"{prefix}*")]
        if keys:
            await redis.delete(*keys)
    except Exception as e:
        logger.warning(f"Redis cache invalidation failed for {prefix}: {e}")
