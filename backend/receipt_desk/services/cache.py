"""Redis cache for short-lived store reads.

Keys are namespaced strings such as ``receipts:list`` or
``receipts:detail:{id}``. Values are stored as JSON with a TTL, and every
mutation deletes the keys it affects, so all workers see the write.

When ``REDIS_URL`` is empty caching is off and reads go straight to the
store. Redis errors are logged and treated as a cache miss.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Optional

from redis import asyncio as aioredis
from redis.exceptions import RedisError

from ..config import get_settings

logger = logging.getLogger(__name__)

_redis_client: Optional[aioredis.Redis] = None


async def get_redis() -> Optional[aioredis.Redis]:
    """Return a shared async Redis client, or None when caching is off."""
    global _redis_client
    if _redis_client is not None:
        return _redis_client
    url = get_settings().redis_url
    if not url:
        return None
    _redis_client = aioredis.from_url(url, decode_responses=True)
    return _redis_client


async def close_redis() -> None:
    global _redis_client
    if _redis_client is not None:
        await _redis_client.aclose()
        _redis_client = None


async def cache_get_json(key: str) -> Optional[Any]:
    client = await get_redis()
    if client is None:
        return None
    try:
        raw = await client.get(key)
    except RedisError as e:
        logger.warning(f"Cache read failed for {key}: {e}")
        return None
    if raw is None:
        return None
    try:
        value = json.loads(raw)
    except ValueError:
        logger.warning(f"Dropping unreadable cache entry {key}")
        await cache_delete(key)
        return None
    logger.debug(f"Cache hit for {key}")
    return value


async def cache_set_json(key: str, value: Any, ttl: Optional[int] = None) -> None:
    client = await get_redis()
    if client is None:
        return
    if ttl is None:
        ttl = get_settings().cache_ttl_seconds
    try:
        await client.set(key, json.dumps(value), ex=ttl)
    except RedisError as e:
        logger.warning(f"Cache write failed for {key}: {e}")


async def cache_delete(*keys: str) -> None:
    client = await get_redis()
    if client is None or not keys:
        return
    try:
        await client.delete(*keys)
    except RedisError as e:
        logger.warning(f"Cache delete failed for {keys}: {e}")
        return
    logger.debug(f"Invalidated cache key(s) {keys}")


async def cache_delete_pattern(pattern: str) -> None:
    """Delete every key matching a glob pattern (SCAN + DEL)."""
    client = await get_redis()
    if client is None:
        return
    try:
        async for key in client.scan_iter(match=pattern):
            await client.delete(key)
    except RedisError as e:
        logger.warning(f"Cache delete failed for {pattern}: {e}")
