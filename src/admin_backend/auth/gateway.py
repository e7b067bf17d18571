"""
Bearer-token authentication shared by the middleware and the refresh flow.
"""

import logging
from typing import Iterable, Optional, Tuple

from fastapi.security.utils import get_authorization_scheme_param

from admin_backend.api.exceptions import TokenInvalidException, UnauthorizedException
from admin_backend.auth.sessions import RefreshRecord, SessionStore
from admin_backend.auth.tokens import REFRESH_TOKEN, TokenCodec, TokenPayload
from admin_backend.permissions.principal import AuthContext

logger = logging.getLogger(__name__)


def extract_token(authorization: Optional[str]) -> str:
    """Accept ``Bearer <token>`` as well as a bare token."""
    if not authorization or not authorization.strip():
        raise UnauthorizedException("No authorization provided")

    scheme, param = get_authorization_scheme_param(authorization.strip())
    if scheme.lower() == "bearer":
        if not param:
            raise UnauthorizedException("Invalid authorization format")
        return param
    if param:
        raise UnauthorizedException(f"Unsupported auth scheme: {scheme}")
    return scheme


class AuthGateway:

    def __init__(self, tokens: TokenCodec, sessions: SessionStore, exclude_paths: Iterable[str] = ()):
        self.tokens = tokens
        self.sessions = sessions
        self.exclude_paths = list(exclude_paths)

    def is_excluded(self, path: str) -> bool:
        for allowed in self.exclude_paths:
            if path == allowed:
                return True
            if allowed != "/" and path.startswith(allowed.rstrip("/") + "/"):
                return True
        return False

    async def authenticate(self, authorization: Optional[str]) -> AuthContext:
        """
        Verify a bearer and build the request's AuthContext.

        Raises:
            UnauthorizedException: Missing or malformed header
            TokenExpiredException: Token past its expiry
            TokenInvalidException: Bad signature, bad payload, a refresh token or a
                logged out session
        """
        payload = self.tokens.decode(extract_token(authorization))
        if await self.sessions.is_blacklisted(payload.session_uuid):
            raise TokenInvalidException("Session has been logged out")
        return AuthContext(user_id=payload.user_id, session_uuid=payload.session_uuid)

    async def authenticate_refresh(self, refresh_token: Optional[str]) -> Tuple[TokenPayload, RefreshRecord]:
        """
        Verify a refresh token and the session it belongs to.

        Beyond the signature the session must still be registered, must not be
        blacklisted, and must have been issued this very token.
        """
        if not refresh_token:
            raise TokenInvalidException("Refresh token missing")

        payload = self.tokens.decode(refresh_token, REFRESH_TOKEN)

        if not await self.sessions.exists(payload.session_uuid):
            raise TokenInvalidException("Session no longer exists")
        if await self.sessions.is_blacklisted(payload.session_uuid):
            raise TokenInvalidException("Session has been logged out")

        record = await self.sessions.refresh_record(payload.session_uuid)
        if record is None or record.refresh_token != refresh_token or record.user_id != payload.user_id:
            raise TokenInvalidException("Refresh token is not valid for this session")

        return payload, record
