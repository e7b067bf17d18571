"""
Cached reads of configuration and dictionary data.
"""

import logging
from typing import List

from sqlalchemy.orm import Session

from admin_backend.api.exceptions import NotFoundException
from admin_backend.redis_cache import CacheLayer
from admin_backend.repositories import ConfigRepository, DictDataRepository, DictTypeRepository
from admin_backend.settings import BackendSettings

logger = logging.getLogger(__name__)


def config_cache_key(settings: BackendSettings, key: str) -> str:
    return f"{settings.CACHE_CONFIG_PREFIX}:{key}"


def dict_cache_key(settings: BackendSettings, code: str) -> str:
    return f"{settings.CACHE_DICT_PREFIX}:{code}"


class SystemDataService:

    def __init__(self, db: Session, cache: CacheLayer, settings: BackendSettings):
        self.db = db
        self.cache = cache
        self.settings = settings

    async def config_by_key(self, key: str) -> dict:
        def load() -> dict:
            config = ConfigRepository(self.db).get_by_key(key)
            if config is None:
                raise NotFoundException(f"Config {key} not found")
            return {
                "id": config.id,
                "name": config.name,
                "type": config.type,
                "key": config.key,
                "value": config.value,
                "is_frontend": config.is_frontend,
            }

        return await self.cache.get_or_compute(config_cache_key(self.settings, key), load, self.settings.CACHE_CONFIG_TTL)

    async def dict_by_code(self, code: str) -> List[dict]:
        def load() -> List[dict]:
            if DictTypeRepository(self.db).get_by_code(code) is None:
                raise NotFoundException(f"Dict type {code} not found")
            return [
                {"id": data.id, "label": data.label, "value": data.value, "sort": data.sort}
                for data in DictDataRepository(self.db).list_by_type_code(code)
            ]

        return await self.cache.get_or_compute(dict_cache_key(self.settings, code), load, self.settings.CACHE_DICT_TTL)

    async def refresh_all(self):
        """Drop every cached config, dictionary and permission set."""
        for prefix in (self.settings.CACHE_CONFIG_PREFIX, self.settings.CACHE_DICT_PREFIX, self.settings.CACHE_PERMS_PREFIX):
            await self.cache.invalidate_prefix(prefix)
        logger.info("Cleared config, dict and permission caches")
