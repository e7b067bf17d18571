import time

import jwt
import pytest

from admin_backend.api.exceptions import ErrorCode, TokenExpiredException, TokenInvalidException
from admin_backend.auth.tokens import REFRESH_TOKEN, TokenCodec

SECRET = "unit-test-secret-with-enough-entropy"


@pytest.fixture
def codec():
    return TokenCodec(SECRET)


class TestTokenCodec:

    def test_encode_decode_round_trip(self, codec):
        issued = codec.encode(42, "session-1", 60)
        payload = codec.decode(issued.token)

        assert payload.sub == "42"
        assert payload.user_id == 42
        assert payload.session_uuid == "session-1"
        assert payload.exp == issued.expire_time

    def test_expiry_is_now_plus_ttl(self, codec):
        issued = codec.encode(1, "s", 86400, now=1_700_000_000)
        claims = jwt.decode(issued.token, SECRET, algorithms=["HS256"], options={"verify_exp": False})

        assert claims == {"sub": "1", "session_uuid": "s", "typ": "access", "exp": 1_700_086_400}

    def test_expired_token(self, codec):
        issued = codec.encode(1, "s", 10, now=time.time() - 100)

        with pytest.raises(TokenExpiredException) as exc_info:
            codec.decode(issued.token)
        assert exc_info.value.code == ErrorCode.TOKEN_EXPIRED
        assert exc_info.value.status_code == 401

    def test_wrong_secret(self, codec):
        issued = TokenCodec("another-secret-with-enough-entropy").encode(1, "s", 60)

        with pytest.raises(TokenInvalidException) as exc_info:
            codec.decode(issued.token)
        assert exc_info.value.code == ErrorCode.TOKEN_INVALID

    def test_garbage_token(self, codec):
        with pytest.raises(TokenInvalidException):
            codec.decode("not.a.token")

    def test_missing_session_uuid(self, codec):
        token = jwt.encode({"sub": "1", "typ": "access", "exp": int(time.time()) + 60}, SECRET, algorithm="HS256")
        with pytest.raises(TokenInvalidException):
            codec.decode(token)

    def test_non_numeric_subject(self, codec):
        token = jwt.encode({"sub": "admin", "session_uuid": "s", "typ": "access", "exp": int(time.time()) + 60}, SECRET, algorithm="HS256")
        with pytest.raises(TokenInvalidException):
            codec.decode(token)

    def test_refresh_token_is_not_an_access_token(self, codec):
        refresh = codec.encode(1, "s", 600, token_type=REFRESH_TOKEN)

        assert codec.decode(refresh.token, REFRESH_TOKEN).typ == REFRESH_TOKEN
        with pytest.raises(TokenInvalidException):
            codec.decode(refresh.token)

    def test_access_token_is_not_a_refresh_token(self, codec):
        access = codec.encode(1, "s", 60)

        with pytest.raises(TokenInvalidException):
            codec.decode(access.token, REFRESH_TOKEN)

    def test_untyped_token(self, codec):
        token = jwt.encode({"sub": "1", "session_uuid": "s", "exp": int(time.time()) + 60}, SECRET, algorithm="HS256")
        with pytest.raises(TokenInvalidException):
            codec.decode(token)
