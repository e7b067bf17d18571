"""
Composition root.

One ``App`` owns every long-lived handle of a running server: the session
factory, the key-value client, the cache layer and the services built on
top of them. ``create_app`` stores it on ``app.state.app`` and request
dependencies read it from there, so tests can swap in an in-memory
database and fake stores without touching module globals.
"""

import logging
from typing import Optional

from aiocache import BaseCache
from fastapi import Request
from sqlalchemy.orm import sessionmaker

from admin_backend.auth.captcha import CaptchaIssuer
from admin_backend.auth.gateway import AuthGateway
from admin_backend.auth.online import KickNotifier, OnlineSessionService
from admin_backend.auth.passwords import PasswordHasher
from admin_backend.auth.service import AuthService
from admin_backend.auth.sessions import SessionKeys, SessionStore
from admin_backend.auth.tokens import TokenCodec
from admin_backend.permissions.cache import PermissionCache
from admin_backend.permissions.data_rules import DataRuleEvaluator
from admin_backend.permissions.data_scope import DataScopeEngine
from admin_backend.permissions.resolver import PermissionResolver
from admin_backend.redis import KVClient
from admin_backend.redis_cache import CacheLayer
from admin_backend.settings import BackendSettings

logger = logging.getLogger(__name__)


class App:

    def __init__(self, settings: BackendSettings, session_factory: sessionmaker, redis, cache: BaseCache,
                 notifier: Optional[KickNotifier] = None):
        """
        Args:
            settings: Configuration snapshot
            session_factory: Relational session factory
            redis: redis.asyncio client (or anything speaking the same commands)
            cache: aiocache backend for derived data
            notifier: Receives forced-logout notifications
        """
        self.settings = settings
        self.session_factory = session_factory
        self.kv = KVClient(redis, timeout=settings.REDIS_TIMEOUT)
        self.cache = CacheLayer(cache)

        self.hasher = PasswordHasher(rounds=settings.PASSWORD_HASH_ROUNDS)
        self.tokens = TokenCodec(settings.token_secret, settings.TOKEN_ALGORITHM)
        self.sessions = SessionStore(
            self.kv,
            SessionKeys.from_settings(settings),
            scan_count=settings.ONLINE_SCAN_COUNT,
            scan_limit=settings.ONLINE_SCAN_LIMIT,
            blacklist_ttl=settings.TOKEN_EXPIRE_SECONDS,
        )
        self.captcha = CaptchaIssuer(
            self.kv,
            prefix=settings.CAPTCHA_REDIS_PREFIX,
            ttl=settings.CAPTCHA_EXPIRE_SECONDS,
            length=settings.CAPTCHA_LENGTH,
        )

        self.permission_cache = PermissionCache(self.cache, settings.CACHE_PERMS_PREFIX, settings.CACHE_PERMS_TTL)
        self.resolver = PermissionResolver(self.permission_cache)
        self.rules = DataRuleEvaluator(column_exclude=settings.DATA_PERMISSION_COLUMN_EXCLUDE)
        self.data_scope = DataScopeEngine(self.rules)

        self.gateway = AuthGateway(self.tokens, self.sessions, settings.TOKEN_EXCLUDE_PATHS)
        self.auth = AuthService(settings, self.hasher, self.tokens, self.sessions, self.captcha, self.resolver)
        self.online = OnlineSessionService(self.sessions, settings.TOKEN_EXPIRE_SECONDS, notifier)

    async def close(self):
        await self.cache.close()
        await self.kv.close()
        logger.info("Closed key-value and cache connections")


def get_app(request: Request) -> App:
    return request.app.state.app
