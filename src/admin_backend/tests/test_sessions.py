"""
Tests for the session registry kept in the key-value store.
"""

import pytest

from admin_backend.auth.sessions import RefreshRecord, SessionKeys, SessionMetadata, SessionStore
from admin_backend.redis import KVClient
from admin_backend.tests.fixtures import FakeRedis

ACCESS_TTL = 86400


def metadata(user_id, username="admin", issued_at=1_700_000_000):
    return SessionMetadata(
        user_id=user_id,
        username=username,
        ip="127.0.0.1",
        location="LAN",
        issued_at=issued_at,
        expire_time=issued_at + ACCESS_TTL,
    )


@pytest.fixture
def redis():
    return FakeRedis()


@pytest.fixture
def store(redis):
    return SessionStore(KVClient(redis))


class TestRegister:

    @pytest.mark.asyncio
    async def test_register_writes_token_meta_and_online(self, store, redis):
        await store.register("s1", 7, ACCESS_TTL, metadata(7))

        assert await redis.get("auth:token:s1") == "7"
        assert await redis.ttl("auth:token:s1") == ACCESS_TTL
        assert await redis.ttl("auth:token_meta:7:s1") == ACCESS_TTL
        assert await redis.sismember("auth:online", "s1")

        stored = await store.metadata(7, "s1")
        assert stored.username == "admin"
        assert stored.location == "LAN"

    @pytest.mark.asyncio
    async def test_register_twice_is_idempotent(self, store, redis):
        await store.register("s1", 7, ACCESS_TTL, metadata(7))
        await store.register("s1", 7, ACCESS_TTL, metadata(7))

        assert redis.keys("auth:token:*") == ["auth:token:s1"]
        assert await redis.smembers("auth:online") == {"s1"}


class TestExists:

    @pytest.mark.asyncio
    async def test_unknown_session(self, store):
        assert await store.exists("missing") is False

    @pytest.mark.asyncio
    async def test_refresh_record_keeps_session_alive(self, store, redis):
        await store.register("s1", 7, 60, metadata(7))
        await store.store_refresh("s1", RefreshRecord(
            user_id=7, refresh_token="r", expire_time=0, metadata=metadata(7),
        ), 600)

        redis.advance(120)

        assert await redis.get("auth:token:s1") is None
        assert await store.exists("s1") is True
        assert await store.owner("s1") == 7

    @pytest.mark.asyncio
    async def test_expired_session(self, store, redis):
        await store.register("s1", 7, 60, metadata(7))
        redis.advance(61)
        assert await store.exists("s1") is False


class TestInvalidate:

    @pytest.mark.asyncio
    async def test_invalidate_removes_all_keys(self, store, redis):
        await store.register("s1", 7, ACCESS_TTL, metadata(7))
        await store.store_refresh("s1", RefreshRecord(
            user_id=7, refresh_token="r", expire_time=0, metadata=metadata(7),
        ), 600)

        await store.invalidate("s1")

        assert redis.keys("auth:*:s1") == []
        assert redis.keys("auth:token_meta:*") == []
        assert await redis.sismember("auth:online", "s1") == 0
        assert await store.exists("s1") is False

    @pytest.mark.asyncio
    async def test_invalidate_unknown_session_is_noop(self, store, redis):
        await store.register("s1", 7, ACCESS_TTL, metadata(7))

        await store.invalidate("missing")

        assert await store.exists("s1") is True

    @pytest.mark.asyncio
    async def test_invalidate_user_keeps_current(self, store):
        for session_uuid in ("s1", "s2", "s3"):
            await store.register(session_uuid, 1, ACCESS_TTL, metadata(1))
        await store.register("s4", 10, ACCESS_TTL, metadata(10, username="other"))

        removed = await store.invalidate_user(1, keep="s2")

        assert removed == 2
        assert await store.exists("s1") is False
        assert await store.exists("s2") is True
        assert await store.exists("s3") is False
        assert await store.exists("s4") is True

    @pytest.mark.asyncio
    async def test_invalidate_user_blacklists_ended_sessions(self, redis):
        store = SessionStore(KVClient(redis), blacklist_ttl=600)
        for session_uuid in ("s1", "s2"):
            await store.register(session_uuid, 1, ACCESS_TTL, metadata(1))

        await store.invalidate_user(1, keep="s2")

        assert await store.is_blacklisted("s1") is True
        assert await store.is_blacklisted("s2") is False
        assert await redis.ttl("auth:blacklist:s1") == 600

    @pytest.mark.asyncio
    async def test_sessions_of_does_not_match_longer_ids(self, store):
        await store.register("s1", 1, ACCESS_TTL, metadata(1))
        await store.register("s2", 10, ACCESS_TTL, metadata(10))

        assert await store.sessions_of(1) == ["s1"]


class TestBlacklist:

    @pytest.mark.asyncio
    async def test_blacklist_expires(self, store, redis):
        await store.blacklist("s1", 60)
        assert await store.is_blacklisted("s1") is True

        redis.advance(61)
        assert await store.is_blacklisted("s1") is False

    @pytest.mark.asyncio
    async def test_non_positive_ttl_is_ignored(self, store, redis):
        await store.blacklist("s1", 0)
        assert redis.keys("auth:blacklist:*") == []


class TestEnumerate:

    @pytest.mark.asyncio
    async def test_sorted_newest_first(self, store):
        await store.register("old", 1, ACCESS_TTL, metadata(1, issued_at=100))
        await store.register("new", 2, ACCESS_TTL, metadata(2, username="bob", issued_at=300))
        await store.register("mid", 3, ACCESS_TTL, metadata(3, username="carol", issued_at=200))

        sessions = await store.enumerate()

        assert [s.session_uuid for s in sessions] == ["new", "mid", "old"]
        assert all(s.online for s in sessions)

    @pytest.mark.asyncio
    async def test_username_filter_is_case_insensitive_substring(self, store):
        await store.register("s1", 1, ACCESS_TTL, metadata(1, username="admin"))
        await store.register("s2", 2, ACCESS_TTL, metadata(2, username="Alice"))
        await store.register("s3", 3, ACCESS_TTL, metadata(3, username="bob"))

        sessions = await store.enumerate("AL")

        assert [s.metadata.username for s in sessions] == ["Alice"]

    @pytest.mark.asyncio
    async def test_session_without_metadata_is_skipped(self, store, redis):
        await store.register("s1", 1, ACCESS_TTL, metadata(1))
        await redis.set("auth:token:orphan", "2", ex=ACCESS_TTL)

        sessions = await store.enumerate()

        assert [s.session_uuid for s in sessions] == ["s1"]

    @pytest.mark.asyncio
    async def test_scan_is_bounded(self, redis):
        store = SessionStore(KVClient(redis), SessionKeys(), scan_count=2, scan_limit=4)
        for index in range(10):
            await store.register(f"s{index}", index + 1, ACCESS_TTL, metadata(index + 1))
        redis.clear_log()

        sessions = await store.enumerate()

        scans = [call for call in redis.call_log if call[0] == "scan"]
        assert len(scans) == 2
        assert len(sessions) <= 4
