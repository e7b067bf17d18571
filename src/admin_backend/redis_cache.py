"""
Read-through cache for configs, dictionary entries and permission sets.
"""

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Union

from aiocache import BaseCache, Cache
from aiocache.serializers import JsonSerializer
from fastapi import Request
from redis.exceptions import RedisError

from admin_backend.settings import BackendSettings

logger = logging.getLogger(__name__)

CACHE_ERRORS = (RedisError, OSError, asyncio.TimeoutError)

Loader = Callable[[], Union[Any, Awaitable[Any]]]


def build_cache(settings: BackendSettings) -> BaseCache:
    return Cache(
        Cache.REDIS,
        endpoint=settings.REDIS_HOST,
        port=settings.REDIS_PORT,
        password=settings.REDIS_PASSWORD if settings.REDIS_PASSWORD else None,
        pool_max_size=settings.REDIS_POOL_SIZE,
        db=settings.REDIS_DB,
        timeout=settings.REDIS_TIMEOUT,
        serializer=JsonSerializer()
    )


class CacheLayer:
    """
    Cache-aside helper over an aiocache backend.

    Values must be JSON serialisable. A loader that raises leaves the cache
    untouched; a broken cache degrades to calling the loader every time.
    Writers must invalidate only after their relational commit.
    """

    def __init__(self, cache: BaseCache):
        self._cache = cache

    async def get_or_compute(self, key: str, loader: Loader, ttl: int) -> Any:
        try:
            cached = await self._cache.get(key)
        except CACHE_ERRORS as e:
            logger.warning(f"Cache read error for {key}: {e}")
            cached = None

        if cached is not None:
            logger.debug(f"Cache hit for {key}")
            return cached

        logger.debug(f"Cache miss for {key}")
        value = loader()
        if inspect.isawaitable(value):
            value = await value

        try:
            await self._cache.set(key, value, ttl=ttl)
        except CACHE_ERRORS as e:
            logger.warning(f"Failed to cache {key}: {e}")

        return value

    async def invalidate(self, *keys: str):
        for key in keys:
            try:
                await self._cache.delete(key)
            except CACHE_ERRORS as e:
                logger.warning(f"Failed to invalidate {key}: {e}")
        if keys:
            logger.debug(f"Invalidated {len(keys)} cache keys")

    async def invalidate_prefix(self, prefix: str):
        """Drop every key under ``prefix`` (given without the trailing colon)."""
        try:
            await self._cache.clear(namespace=prefix)
            logger.info(f"Invalidated cache prefix {prefix}")
        except CACHE_ERRORS as e:
            logger.warning(f"Failed to invalidate cache prefix {prefix}: {e}")

    async def close(self):
        await self._cache.close()


def get_cache_layer(request: Request) -> CacheLayer:
    return request.app.state.app.cache
