"""
Redis caching service for bookable-journey listings.

CACHING STRATEGY
================

What we cache:
  - The journey listing for one `as_of` date (JSON-serialized)
  - Cache key pattern: "journeys:list:as_of={date}"

Why:
  - Browsing journeys is the most frequent read; booking is much rarer
  - Listing joins schedules with trains on every request

Invalidation strategy:
  - On booking / cancellation: availability changed, delete all listing keys
  - On scheduling / train deletion: the set of journeys changed
  - Short TTL as safety net

What we never cache:
  - Anything the booking engine reads. Booking and cancellation always
    re-read availability inside their transaction; a stale cache can only
    show a traveller an outdated count, never oversell a seat.

Redis is optional: when disabled or unreachable every function degrades to a
no-op / cache miss.
"""

import json
from datetime import date
from typing import Optional

import redis.asyncio as redis
from railbook.core.config import get_settings
from railbook.core.logging import get_logger
from railbook.core.metrics import record_cache_operation

logger = get_logger(__name__)

JOURNEY_LIST_PREFIX = "journeys:list:"

_redis_client: Optional[redis.Redis] = None


async def get_redis() -> Optional[redis.Redis]:
    """Get or create Redis connection. Returns None if Redis is disabled."""
    global _redis_client
    settings = get_settings()

    if not settings.REDIS_ENABLED:
        return None

    if _redis_client is None:
        try:
            _redis_client = redis.from_url(
                settings.REDIS_URL,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                retry_on_timeout=True,
            )
            await _redis_client.ping()
            logger.info("redis_connected", url=settings.REDIS_URL)
        except Exception as e:
            logger.error("redis_connection_failed", error=str(e))
            _redis_client = None
            return None

    return _redis_client


async def close_redis() -> None:
    """Close Redis connection on shutdown."""
    global _redis_client
    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None


def _make_journey_list_key(as_of: date) -> str:
    return f"{JOURNEY_LIST_PREFIX}as_of={as_of.isoformat()}"


async def get_cached_journeys(as_of: date) -> Optional[dict]:
    client = await get_redis()
    if not client:
        return None

    key = _make_journey_list_key(as_of)
    try:
        data = await client.get(key)
        record_cache_operation("get", hit=data is not None)
        if data:
            logger.debug("cache_hit", key=key)
            return json.loads(data)
        logger.debug("cache_miss", key=key)
    except Exception as e:
        logger.error("cache_get_error", key=key, error=str(e))

    return None


async def set_cached_journeys(as_of: date, data: dict) -> None:
    client = await get_redis()
    if not client:
        return

    settings = get_settings()
    key = _make_journey_list_key(as_of)
    try:
        await client.setex(key, settings.REDIS_CACHE_TTL, json.dumps(data, default=str))
        record_cache_operation("set", hit=False)
        logger.debug("cache_set", key=key, ttl=settings.REDIS_CACHE_TTL)
    except Exception as e:
        logger.error("cache_set_error", key=key, error=str(e))


async def invalidate_journey_cache() -> None:
    """Delete every cached journey listing."""
    client = await get_redis()
    if not client:
        return

    try:
        deleted = 0
        async for key in client.scan_iter(match=f"{JOURNEY_LIST_PREFIX}*", count=100):
            await client.delete(key)
            deleted += 1
        logger.info("cache_invalidated", keys_deleted=deleted)
    except Exception as e:
        logger.error("cache_invalidation_error", error=str(e))


async def get_cache_stats() -> dict:
    """Get Redis cache statistics for monitoring."""
    client = await get_redis()
    if not client:
        return {"status": "disabled"}

    try:
        info = await client.info("stats")
        hits = info.get("keyspace_hits", 0)
        misses = info.get("keyspace_misses", 0)
        return {
            "status": "connected",
            "hits": hits,
            "misses": misses,
            "hit_rate": round(hits / max(hits + misses, 1) * 100, 2),
        }
    except Exception as e:
        return {"status": "error", "error": str(e)}
