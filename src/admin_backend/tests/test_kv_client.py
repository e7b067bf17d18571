import pytest
from unittest.mock import AsyncMock, Mock
from redis.exceptions import ConnectionError as RedisConnectionError

from admin_backend.api.exceptions import ErrorCode, ServiceUnavailableException
from admin_backend.redis import KVClient


@pytest.fixture
def client():
    return Mock()


class TestKVClient:

    @pytest.mark.asyncio
    async def test_read_is_retried_once(self, client):
        client.get = AsyncMock(side_effect=[RedisConnectionError("down"), "value"])
        kv = KVClient(client, timeout=1)

        assert await kv.get("key") == "value"
        assert client.get.await_count == 2

    @pytest.mark.asyncio
    async def test_read_fails_after_second_attempt(self, client):
        client.get = AsyncMock(side_effect=RedisConnectionError("down"))
        kv = KVClient(client, timeout=1)

        with pytest.raises(ServiceUnavailableException) as exc_info:
            await kv.get("key")

        assert client.get.await_count == 2
        assert exc_info.value.code == ErrorCode.UPSTREAM_UNAVAILABLE
        assert exc_info.value.status_code == 503

    @pytest.mark.asyncio
    async def test_write_is_not_retried(self, client):
        client.set = AsyncMock(side_effect=RedisConnectionError("down"))
        kv = KVClient(client, timeout=1)

        with pytest.raises(ServiceUnavailableException):
            await kv.set("key", "value", ex=10)

        assert client.set.await_count == 1

    @pytest.mark.asyncio
    async def test_getdel_is_a_single_write(self, client):
        client.getdel = AsyncMock(side_effect=RedisConnectionError("down"))
        kv = KVClient(client, timeout=1)

        with pytest.raises(ServiceUnavailableException):
            await kv.getdel("key")

        assert client.getdel.await_count == 1

    @pytest.mark.asyncio
    async def test_delete_without_keys_skips_the_store(self, client):
        client.delete = AsyncMock(return_value=0)
        kv = KVClient(client)

        assert await kv.delete() == 0
        client.delete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_scan_normalises_cursor(self, client):
        client.scan = AsyncMock(return_value=("12", ["a", "b"]))
        kv = KVClient(client)

        assert await kv.scan(0, match="a*", count=5) == (12, ["a", "b"])
        client.scan.assert_awaited_once_with(cursor=0, match="a*", count=5)
