"""
Live-session registry in the key-value store.

Layout (prefixes configurable):

* ``auth:token:{sess}``            user id, TTL = access token lifetime
* ``auth:token_meta:{uid}:{sess}`` JSON client metadata, same TTL
* ``auth:online``                  set of session uuids
* ``auth:refresh:{sess}``          JSON refresh record, TTL = refresh lifetime
* ``auth:blacklist:{sess}``        marker written on logout, kick and forced logout
"""

import logging
from typing import List, Optional

from pydantic import BaseModel

from admin_backend.redis import KVClient
from admin_backend.settings import BackendSettings

logger = logging.getLogger(__name__)


class SessionMetadata(BaseModel):
    user_id: int
    username: str
    nickname: Optional[str] = None
    ip: Optional[str] = None
    location: Optional[str] = None
    os: Optional[str] = None
    browser: Optional[str] = None
    device: Optional[str] = None
    issued_at: int
    expire_time: int
    last_login_time: Optional[str] = None


class RefreshRecord(BaseModel):
    user_id: int
    refresh_token: str
    expire_time: int
    metadata: SessionMetadata


class SessionInfo(BaseModel):
    session_uuid: str
    user_id: int
    online: bool
    metadata: SessionMetadata


class SessionKeys:

    def __init__(self, token_prefix: str = "auth:token", meta_prefix: str = "auth:token_meta",
                 online_key: str = "auth:online", refresh_prefix: str = "auth:refresh",
                 blacklist_prefix: str = "auth:blacklist"):
        self.token_prefix = token_prefix
        self.meta_prefix = meta_prefix
        self.online_key = online_key
        self.refresh_prefix = refresh_prefix
        self.blacklist_prefix = blacklist_prefix

    @classmethod
    def from_settings(cls, settings: BackendSettings) -> "SessionKeys":
        return cls(
            token_prefix=settings.TOKEN_REDIS_PREFIX,
            meta_prefix=settings.TOKEN_META_REDIS_PREFIX,
            online_key=settings.TOKEN_ONLINE_REDIS_KEY,
            refresh_prefix=settings.TOKEN_REFRESH_REDIS_PREFIX,
            blacklist_prefix=settings.TOKEN_BLACKLIST_REDIS_PREFIX,
        )

    def token(self, session_uuid: str) -> str:
        return f"{self.token_prefix}:{session_uuid}"

    def meta(self, user_id: int, session_uuid: str) -> str:
        return f"{self.meta_prefix}:{user_id}:{session_uuid}"

    def refresh(self, session_uuid: str) -> str:
        return f"{self.refresh_prefix}:{session_uuid}"

    def blacklist(self, session_uuid: str) -> str:
        return f"{self.blacklist_prefix}:{session_uuid}"

    def session_from_token_key(self, key: str) -> str:
        return key[len(self.token_prefix) + 1:]


class SessionStore:

    def __init__(self, kv: KVClient, keys: Optional[SessionKeys] = None,
                 scan_count: int = 100, scan_limit: int = 1000, blacklist_ttl: int = 86400):
        self.kv = kv
        self.keys = keys or SessionKeys()
        self.scan_count = scan_count
        self.scan_limit = scan_limit
        # seconds a forcibly ended session stays blacklisted; match the access token lifetime
        self.blacklist_ttl = blacklist_ttl

    async def register(self, session_uuid: str, user_id: int, ttl: int, metadata: SessionMetadata):
        """Record a live session; safe to call again for the same session."""
        await self.kv.set(self.keys.token(session_uuid), str(user_id), ex=ttl)
        await self.kv.set(self.keys.meta(user_id, session_uuid), metadata.model_dump_json(), ex=ttl)
        await self.kv.sadd(self.keys.online_key, session_uuid)

    async def store_refresh(self, session_uuid: str, record: RefreshRecord, ttl: int):
        await self.kv.set(self.keys.refresh(session_uuid), record.model_dump_json(), ex=ttl)

    async def refresh_record(self, session_uuid: str) -> Optional[RefreshRecord]:
        raw = await self.kv.get(self.keys.refresh(session_uuid))
        if raw is None:
            return None
        return RefreshRecord.model_validate_json(raw)

    async def exists(self, session_uuid: str) -> bool:
        if await self.kv.exists(self.keys.token(session_uuid)):
            return True
        return await self.kv.exists(self.keys.refresh(session_uuid))

    async def metadata(self, user_id: int, session_uuid: str) -> Optional[SessionMetadata]:
        raw = await self.kv.get(self.keys.meta(user_id, session_uuid))
        if raw is None:
            return None
        return SessionMetadata.model_validate_json(raw)

    async def owner(self, session_uuid: str) -> Optional[int]:
        raw = await self.kv.get(self.keys.token(session_uuid))
        if raw is not None:
            return int(raw)
        record = await self.refresh_record(session_uuid)
        return record.user_id if record is not None else None

    async def blacklist(self, session_uuid: str, ttl: int):
        if ttl > 0:
            await self.kv.set(self.keys.blacklist(session_uuid), "1", ex=ttl)

    async def is_blacklisted(self, session_uuid: str) -> bool:
        return await self.kv.exists(self.keys.blacklist(session_uuid))

    async def invalidate(self, session_uuid: str):
        """Remove every entry of a session; unknown sessions are a no-op."""
        user_id = await self.owner(session_uuid)

        keys = [self.keys.token(session_uuid), self.keys.refresh(session_uuid)]
        if user_id is not None:
            keys.append(self.keys.meta(user_id, session_uuid))
        else:
            keys.extend(await self._scan(f"{self.keys.meta_prefix}:*:{session_uuid}"))

        await self.kv.delete(*keys)
        await self.kv.srem(self.keys.online_key, session_uuid)
        logger.info(f"Invalidated session {session_uuid} of user {user_id}")

    async def sessions_of(self, user_id: int) -> List[str]:
        prefix = f"{self.keys.meta_prefix}:{user_id}:"
        keys = await self._scan(f"{prefix}*")
        return [key[len(prefix):] for key in keys]

    async def invalidate_user(self, user_id: int, keep: Optional[str] = None) -> int:
        """
        Blacklist and invalidate every session of a user except ``keep``.

        Access tokens already handed out for those sessions are refused from
        then on, not only their refresh tokens.
        """
        count = 0
        for session_uuid in await self.sessions_of(user_id):
            if session_uuid == keep:
                continue
            await self.blacklist(session_uuid, self.blacklist_ttl)
            await self.invalidate(session_uuid)
            count += 1
        return count

    async def enumerate(self, username: Optional[str] = None) -> List[SessionInfo]:
        """
        List live sessions, optionally only those whose username contains
        ``username`` (case-insensitive).

        Token keys are walked with a cursor scan; at most ``scan_limit`` keys
        are examined per call.
        """
        needle = username.lower() if username else None
        sessions = []

        for key in await self._scan(f"{self.keys.token_prefix}:*"):
            session_uuid = self.keys.session_from_token_key(key)
            raw_user_id = await self.kv.get(key)
            if raw_user_id is None:
                continue

            metadata = await self.metadata(int(raw_user_id), session_uuid)
            if metadata is None:
                continue
            if needle and needle not in metadata.username.lower():
                continue

            sessions.append(SessionInfo(
                session_uuid=session_uuid,
                user_id=int(raw_user_id),
                online=await self.kv.sismember(self.keys.online_key, session_uuid),
                metadata=metadata,
            ))

        sessions.sort(key=lambda s: s.metadata.issued_at, reverse=True)
        return sessions

    async def _scan(self, match: str) -> List[str]:
        found = []
        cursor = 0
        examined = 0
        while True:
            cursor, keys = await self.kv.scan(cursor=cursor, match=match, count=self.scan_count)
            found.extend(keys)
            examined += self.scan_count
            if cursor == 0:
                break
            if examined >= self.scan_limit:
                logger.warning(f"Scan of {match} stopped after {examined} keys")
                break
        return list(dict.fromkeys(found))[:self.scan_limit]

