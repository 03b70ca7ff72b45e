"""Redis-backed cache of rendered views, invalidated by path."""
from __future__ import annotations

import logging
from typing import Callable, Iterable

import redis
from redis.exceptions import RedisError

from ..config import settings

logger = logging.getLogger(__name__)

_redis_client = None


def _get_redis():
    global _redis_client
    if _redis_client is None:
        _redis_client = redis.from_url(settings.REDIS_URL, decode_responses=True)
    return _redis_client


def view_cache_key(path: str, prefix: str | None = None) -> str:
    return f"{prefix or settings.VIEW_CACHE_PREFIX}:{path}"


class ViewCacheInvalidator:
    """Drops cached views; fail-open when Redis is unavailable."""

    def __init__(self, client_factory: Callable[[], object] = _get_redis, prefix: str | None = None) -> None:
        self._client_factory = client_factory
        self._prefix = prefix or settings.VIEW_CACHE_PREFIX

    def invalidate(self, paths: Iterable[str]) -> int:
        keys = [view_cache_key(path, self._prefix) for path in dict.fromkeys(paths)]
        if not keys:
            return 0
        try:
            return int(self._client_factory().delete(*keys))
        except RedisError:
            # Stale views expire on their own TTL; never fail the caller.
            logger.exception("Redis error during view cache invalidation (ignored)")
            return 0


def get_view_cache_invalidator() -> ViewCacheInvalidator:
    """FastAPI dependency."""
    return ViewCacheInvalidator()
