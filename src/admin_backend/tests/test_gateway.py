import time

import pytest

from admin_backend.api.exceptions import TokenExpiredException, TokenInvalidException, UnauthorizedException
from admin_backend.auth.gateway import AuthGateway, extract_token
from admin_backend.auth.sessions import RefreshRecord, SessionMetadata, SessionStore
from admin_backend.auth.tokens import REFRESH_TOKEN, TokenCodec
from admin_backend.redis import KVClient
from admin_backend.tests.fixtures import FakeRedis

SECRET = "gateway-test-secret-with-enough-entropy"


@pytest.fixture
def codec():
    return TokenCodec(SECRET)


@pytest.fixture
def sessions():
    return SessionStore(KVClient(FakeRedis()))


@pytest.fixture
def gateway(codec, sessions):
    return AuthGateway(codec, sessions, ["/api/v1/auth/login", "/", "/docs"])


async def open_session(codec, sessions, user_id=1, session_uuid="s1"):
    now = int(time.time())
    access = codec.encode(user_id, session_uuid, 60, now=now)
    refresh = codec.encode(user_id, session_uuid, 600, now=now, token_type=REFRESH_TOKEN)
    metadata = SessionMetadata(user_id=user_id, username="admin", issued_at=now, expire_time=access.expire_time)
    await sessions.register(session_uuid, user_id, 60, metadata)
    await sessions.store_refresh(session_uuid, RefreshRecord(
        user_id=user_id, refresh_token=refresh.token, expire_time=refresh.expire_time, metadata=metadata,
    ), 600)
    return access.token, refresh.token


class TestExtractToken:

    @pytest.mark.parametrize("header", ["Bearer abc", "bearer abc", "  Bearer abc  ", "abc"])
    def test_accepted_forms(self, header):
        assert extract_token(header) == "abc"

    @pytest.mark.parametrize("header", [None, "", "   ", "Bearer", "Basic abc"])
    def test_rejected_forms(self, header):
        with pytest.raises(UnauthorizedException):
            extract_token(header)


class TestExcludedPaths:

    @pytest.mark.parametrize("path,expected", [
        ("/", True),
        ("/api/v1/auth/login", True),
        ("/docs", True),
        ("/docs/oauth2-redirect", True),
        ("/api/v1/auth/loginx", False),
        ("/api/v1/sys/users", False),
    ])
    def test_is_excluded(self, gateway, path, expected):
        assert gateway.is_excluded(path) is expected


class TestAuthenticate:

    @pytest.mark.asyncio
    async def test_valid_token(self, gateway, codec, sessions):
        access, _ = await open_session(codec, sessions, user_id=5)

        auth = await gateway.authenticate(f"Bearer {access}")

        assert auth.user_id == 5
        assert auth.session_uuid == "s1"

    @pytest.mark.asyncio
    async def test_blacklisted_session(self, gateway, codec, sessions):
        access, _ = await open_session(codec, sessions)
        await sessions.blacklist("s1", 60)

        with pytest.raises(TokenInvalidException):
            await gateway.authenticate(f"Bearer {access}")

    @pytest.mark.asyncio
    async def test_expired_token(self, gateway, codec):
        expired = codec.encode(1, "s1", 10, now=time.time() - 100).token

        with pytest.raises(TokenExpiredException):
            await gateway.authenticate(f"Bearer {expired}")

    @pytest.mark.asyncio
    async def test_refresh_token_is_not_a_bearer(self, gateway, codec, sessions):
        _, refresh = await open_session(codec, sessions)

        with pytest.raises(TokenInvalidException):
            await gateway.authenticate(f"Bearer {refresh}")


class TestAuthenticateRefresh:

    @pytest.mark.asyncio
    async def test_valid_refresh(self, gateway, codec, sessions):
        _, refresh = await open_session(codec, sessions, user_id=3)

        payload, record = await gateway.authenticate_refresh(refresh)

        assert payload.session_uuid == "s1"
        assert record.user_id == 3

    @pytest.mark.asyncio
    async def test_missing_token(self, gateway):
        with pytest.raises(TokenInvalidException):
            await gateway.authenticate_refresh(None)

    @pytest.mark.asyncio
    async def test_token_not_issued_to_session(self, gateway, codec, sessions):
        await open_session(codec, sessions)
        forged = codec.encode(1, "s1", 300, token_type=REFRESH_TOKEN).token

        with pytest.raises(TokenInvalidException):
            await gateway.authenticate_refresh(forged)

    @pytest.mark.asyncio
    async def test_access_token_is_not_a_refresh_token(self, gateway, codec, sessions):
        access, _ = await open_session(codec, sessions)

        with pytest.raises(TokenInvalidException):
            await gateway.authenticate_refresh(access)

    @pytest.mark.asyncio
    async def test_session_gone(self, gateway, codec, sessions):
        _, refresh = await open_session(codec, sessions)
        await sessions.invalidate("s1")

        with pytest.raises(TokenInvalidException):
            await gateway.authenticate_refresh(refresh)

    @pytest.mark.asyncio
    async def test_session_blacklisted(self, gateway, codec, sessions):
        _, refresh = await open_session(codec, sessions)
        await sessions.blacklist("s1", 60)

        with pytest.raises(TokenInvalidException):
            await gateway.authenticate_refresh(refresh)
