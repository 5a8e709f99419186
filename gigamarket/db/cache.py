from __future__ import annotations

import json
from functools import lru_cache
from typing import Any

from redis.asyncio import Redis
from redis.exceptions import RedisError

from ..config import settings
from ..logging import get_logger

_log = get_logger()


@lru_cache(maxsize=1)
def get_redis() -> Redis[str]:
    return Redis.from_url(settings.REDIS_URL, decode_responses=True)


def ns(namespace: str, key: str) -> str:
    return f"{namespace}:{key}"


async def get_json(key: str) -> Any | None:
    """Return the cached JSON value, or None on miss, when disabled or on Redis errors."""
    if not settings.CACHE_ENABLED:
        return None
    try:
        raw = await get_redis().get(key)
    except RedisError as exc:
        _log.warning("cache_get_failed", key=key, error=str(exc))
        return None
    if raw is None:
        return None
    return json.loads(raw)


async def set_json(key: str, value: Any, ttl: int | None = None) -> None:
    if not settings.CACHE_ENABLED:
        return
    data = json.dumps(value)
    try:
        r = get_redis()
        if ttl and ttl > 0:
            await r.set(key, data, ex=ttl)
        else:
            await r.set(key, data)
    except RedisError as exc:
        _log.warning("cache_set_failed", key=key, error=str(exc))


async def ping() -> bool | None:
    """Redis liveness; None when caching is disabled."""
    if not settings.CACHE_ENABLED:
        return None
    try:
        res = await get_redis().ping()
        return bool(res)
    except (RedisError, OSError):
        return False
