"""
Thin async wrapper around the key-value store.

Only the handful of commands the session and captcha stores need are
exposed. GETDEL counts as a write. Reads are retried once on transient failure, writes never are;
both surface an outage as ``ServiceUnavailableException``.
"""

import asyncio
import logging
from typing import List, Optional, Set, Tuple

import redis.asyncio as aioredis
from fastapi import Request
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from admin_backend.api.exceptions import ServiceUnavailableException
from admin_backend.settings import BackendSettings

logger = logging.getLogger(__name__)

TRANSIENT_ERRORS = (RedisConnectionError, RedisTimeoutError, asyncio.TimeoutError)

READ_ATTEMPTS = 2
READ_BACKOFF_SECONDS = 0.05


def build_redis_client(settings: BackendSettings) -> aioredis.Redis:
    return aioredis.from_url(
        settings.REDIS_URL,
        password=settings.REDIS_PASSWORD or None,
        decode_responses=True,
        socket_timeout=settings.REDIS_TIMEOUT,
        socket_connect_timeout=settings.REDIS_TIMEOUT,
        max_connections=settings.REDIS_POOL_SIZE,
    )


class KVClient:

    def __init__(self, client, timeout: float = 5.0):
        self._client = client
        self.timeout = timeout

    async def _read(self, command: str, *args, **kwargs):
        func = getattr(self._client, command)
        for attempt in range(1, READ_ATTEMPTS + 1):
            try:
                return await asyncio.wait_for(func(*args, **kwargs), self.timeout)
            except TRANSIENT_ERRORS as e:
                if attempt == READ_ATTEMPTS:
                    logger.error(f"KV {command} failed after {attempt} attempts: {e}")
                    raise ServiceUnavailableException("Key-value store unavailable") from e
                logger.warning(f"KV {command} failed, retrying: {e}")
                await asyncio.sleep(READ_BACKOFF_SECONDS * attempt)

    async def _write(self, command: str, *args, **kwargs):
        func = getattr(self._client, command)
        try:
            return await asyncio.wait_for(func(*args, **kwargs), self.timeout)
        except TRANSIENT_ERRORS as e:
            logger.error(f"KV {command} failed: {e}")
            raise ServiceUnavailableException("Key-value store unavailable") from e

    async def get(self, key: str) -> Optional[str]:
        return await self._read("get", key)

    async def set(self, key: str, value: str, ex: Optional[int] = None) -> bool:
        return await self._write("set", key, value, ex=ex)

    async def getdel(self, key: str) -> Optional[str]:
        """Read and remove ``key`` in one atomic GETDEL."""
        return await self._write("getdel", key)

    async def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        return await self._write("delete", *keys)

    async def exists(self, key: str) -> bool:
        return bool(await self._read("exists", key))

    async def expire(self, key: str, seconds: int) -> bool:
        return bool(await self._write("expire", key, seconds))

    async def ttl(self, key: str) -> int:
        return await self._read("ttl", key)

    async def sadd(self, key: str, *members: str) -> int:
        return await self._write("sadd", key, *members)

    async def srem(self, key: str, *members: str) -> int:
        return await self._write("srem", key, *members)

    async def sismember(self, key: str, member: str) -> bool:
        return bool(await self._read("sismember", key, member))

    async def smembers(self, key: str) -> Set[str]:
        return set(await self._read("smembers", key))

    async def scan(self, cursor: int = 0, match: Optional[str] = None, count: Optional[int] = None) -> Tuple[int, List[str]]:
        next_cursor, keys = await self._read("scan", cursor=cursor, match=match, count=count)
        return int(next_cursor), list(keys)

    async def close(self):
        await self._client.aclose()


def get_redis_client(request: Request) -> KVClient:
    return request.app.state.app.kv
