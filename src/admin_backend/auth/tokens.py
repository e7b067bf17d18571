"""
Signed bearer tokens.

Payload is ``{sub, session_uuid, typ, exp}``; ``sub`` is the user id as a
string and ``typ`` tells access tokens from refresh tokens, so neither is
accepted where the other is expected. Verification is purely
cryptographic; whether the session is still live is checked elsewhere.
"""

import time
from typing import Optional
import jwt
from pydantic import BaseModel

from admin_backend.api.exceptions import TokenExpiredException, TokenInvalidException

ACCESS_TOKEN = "access"
REFRESH_TOKEN = "refresh"


class TokenPayload(BaseModel):
    sub: str
    session_uuid: str
    typ: str = ACCESS_TOKEN
    exp: int

    @property
    def user_id(self) -> int:
        return int(self.sub)


class IssuedToken(BaseModel):
    token: str
    session_uuid: str
    expire_time: int


class TokenCodec:

    def __init__(self, secret: str, algorithm: str = "HS256"):
        self._secret = secret
        self.algorithm = algorithm

    def encode(self, user_id: int, session_uuid: str, ttl: int, now: Optional[float] = None,
               token_type: str = ACCESS_TOKEN) -> IssuedToken:
        expire_time = int(now if now is not None else time.time()) + ttl
        payload = {"sub": str(user_id), "session_uuid": session_uuid, "typ": token_type, "exp": expire_time}
        token = jwt.encode(payload, self._secret, algorithm=self.algorithm)
        return IssuedToken(token=token, session_uuid=session_uuid, expire_time=expire_time)

    def decode(self, token: str, token_type: str = ACCESS_TOKEN) -> TokenPayload:
        """
        Verify signature, expiry and token type.

        Raises:
            TokenExpiredException: If ``exp`` lies in the past
            TokenInvalidException: For any other defect, including a token of
                another type than ``token_type``
        """
        try:
            data = jwt.decode(
                token,
                self._secret,
                algorithms=[self.algorithm],
                options={"require": ["sub", "exp"]},
            )
        except jwt.ExpiredSignatureError:
            raise TokenExpiredException()
        except jwt.PyJWTError:
            raise TokenInvalidException()

        session_uuid = data.get("session_uuid")
        if not session_uuid or not str(data.get("sub", "")).isdigit():
            raise TokenInvalidException()
        if data.get("typ") != token_type:
            raise TokenInvalidException(f"Wrong token type, expected {token_type}")

        return TokenPayload(sub=str(data["sub"]), session_uuid=session_uuid, typ=token_type, exp=int(data["exp"]))
