"""
Seat-map cache in Redis.

A seat map is a join over every seat of the airplane and the flight's live
passengers, and it is what clients poll while choosing seats. It is stored as
JSON under "seats:flight={flight_id}:class={seat_class or 'all'}" with a short
TTL.

Write paths never read from here. Booking, seat changes and added passengers
query the database and the passenger seat index decides the claim, so a stale
map can show a taken seat as free but cannot sell it twice.

Every operation that takes or releases a seat drops all cached maps of that
flight (SCAN over "seats:flight={id}:*"). The TTL bounds staleness if an
invalidation is lost.

Redis is optional. When disabled or unreachable every lookup is a miss and the
database answers.
"""

import asyncio
import json
import time
from typing import Optional

import redis.asyncio as redis

from airline_booking.core.config import get_settings
from airline_booking.core.logging import get_logger
from airline_booking.core.metrics import record_cache_operation

logger = get_logger(__name__)
settings = get_settings()

REDIS_TIMEOUT_SECONDS = 2

_client: Optional[redis.Redis] = None
_retry_at = 0.0
_connect_lock: Optional[asyncio.Lock] = None


async def _connect() -> Optional[redis.Redis]:
    client = redis.Redis.from_url(
        settings.REDIS_URL,
        decode_responses=True,
        socket_connect_timeout=REDIS_TIMEOUT_SECONDS,
        socket_timeout=REDIS_TIMEOUT_SECONDS,
    )
    try:
        await client.ping()
    except redis.RedisError as e:
        logger.warning("redis_unreachable", url=settings.REDIS_URL, error=str(e))
        await client.aclose()
        return None
    logger.info("redis_connected", url=settings.REDIS_URL)
    return client


async def get_redis() -> Optional[redis.Redis]:
    """
    The shared client, connecting on first use. None when caching is off or
    Redis is down; after a failed connect no new attempt is made for
    REDIS_RETRY_SECONDS.
    """
    global _client, _retry_at, _connect_lock
    if not settings.REDIS_ENABLED:
        return None
    if _client is not None or time.monotonic() < _retry_at:
        return _client

    if _connect_lock is None:
        _connect_lock = asyncio.Lock()
    async with _connect_lock:
        # Another task may have connected or failed while we waited.
        if _client is None and time.monotonic() >= _retry_at:
            _client = await _connect()
            if _client is None:
                _retry_at = time.monotonic() + settings.REDIS_RETRY_SECONDS
    return _client


async def close_redis() -> None:
    global _client, _retry_at, _connect_lock
    if _client is not None:
        await _client.aclose()
    _client = None
    _retry_at = 0.0
    _connect_lock = None


def _make_seat_map_key(flight_id: int, seat_class: Optional[str]) -> str:
    return f"seats:flight={flight_id}:class={seat_class or 'all'}"


async def get_cached_seat_map(flight_id: int, seat_class: Optional[str]) -> Optional[dict]:
    client = await get_redis()
    if not client:
        return None

    key = _make_seat_map_key(flight_id, seat_class)
    try:
        data = await client.get(key)
    except redis.RedisError as e:
        logger.error("cache_get_error", key=key, error=str(e))
        return None

    record_cache_operation("get", hit=data is not None)
    if data:
        logger.debug("cache_hit", key=key)
        return json.loads(data)
    logger.debug("cache_miss", key=key)
    return None


async def set_cached_seat_map(flight_id: int, seat_class: Optional[str], data: dict) -> None:
    client = await get_redis()
    if not client:
        return

    key = _make_seat_map_key(flight_id, seat_class)
    try:
        await client.setex(key, settings.SEAT_MAP_CACHE_TTL, json.dumps(data, default=str))
        logger.debug("cache_set", key=key, ttl=settings.SEAT_MAP_CACHE_TTL)
    except redis.RedisError as e:
        logger.error("cache_set_error", key=key, error=str(e))


async def invalidate_seat_map_cache(flight_id: int) -> None:
    """Drop every cached seat map of one flight."""
    client = await get_redis()
    if not client:
        return

    pattern = f"seats:flight={flight_id}:*"
    try:
        keys = [key async for key in client.scan_iter(match=pattern, count=100)]
        if keys:
            await client.delete(*keys)
    except redis.RedisError as e:
        logger.error("cache_invalidation_error", flight_id=flight_id, error=str(e))
        return
    logger.info("cache_invalidated", flight_id=flight_id, keys_deleted=len(keys))


async def get_cache_stats() -> dict:
    """Redis keyspace statistics for the health endpoint."""
    client = await get_redis()
    if not client:
        return {"status": "disabled"}

    try:
        info = await client.info("stats")
    except redis.RedisError as e:
        return {"status": "error", "error": str(e)}

    hits = info.get("keyspace_hits", 0)
    misses = info.get("keyspace_misses", 0)
    return {
        "status": "connected",
        "hits": hits,
        "misses": misses,
        "hit_rate": round(hits / max(hits + misses, 1) * 100, 2),
    }
