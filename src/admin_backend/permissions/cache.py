"""
Permission-set caching.

Resolved ``Principal`` values are stored as JSON under
``{prefix}:{user_id}``. Everything that changes who holds which
permission must invalidate the affected users after committing.
"""

import logging
from typing import Callable, Iterable

from admin_backend.permissions.principal import Principal
from admin_backend.redis_cache import CacheLayer

logger = logging.getLogger(__name__)


class PermissionCache:

    def __init__(self, cache: CacheLayer, prefix: str = "cache:perms", ttl_seconds: int = 600):
        """
        Args:
            cache: Shared cache layer
            prefix: Key prefix, without the trailing colon
            ttl_seconds: Time to live for cached permission sets
        """
        self.cache = cache
        self.prefix = prefix
        self.ttl_seconds = ttl_seconds

    def key(self, user_id: int) -> str:
        return f"{self.prefix}:{user_id}"

    async def get_or_compute(self, user_id: int, loader: Callable[[], Principal]) -> Principal:
        data = await self.cache.get_or_compute(
            self.key(user_id),
            lambda: loader().model_dump(mode="json"),
            self.ttl_seconds
        )
        return Principal.model_validate(data)

    async def invalidate_user(self, user_id: int):
        await self.cache.invalidate(self.key(user_id))

    async def invalidate_users(self, user_ids: Iterable[int]):
        keys = [self.key(user_id) for user_id in sorted(set(user_ids))]
        if keys:
            await self.cache.invalidate(*keys)
            logger.info(f"Invalidated cached permissions of {len(keys)} users")

    async def invalidate_all(self):
        await self.cache.invalidate_prefix(self.prefix)
