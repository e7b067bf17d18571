"""
Login, refresh and logout.
"""

import logging
import time
from datetime import datetime
from uuid import uuid4

from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from admin_backend.api.exceptions import AuthFailureException, TokenInvalidException
from admin_backend.auth.captcha import CaptchaIssuer
from admin_backend.auth.fingerprint import ClientInfo
from admin_backend.auth.passwords import PasswordHasher
from admin_backend.auth.sessions import RefreshRecord, SessionMetadata, SessionStore
from admin_backend.auth.tokens import REFRESH_TOKEN, TokenCodec, TokenPayload
from admin_backend.interface.auth import LoginRequest, LoginResult, RefreshResult, UserInfo
from admin_backend.model.auth import User
from admin_backend.permissions.principal import AuthContext
from admin_backend.permissions.resolver import PermissionResolver
from admin_backend.repositories.user import UserRepository
from admin_backend.settings import BackendSettings

logger = logging.getLogger(__name__)

LOGIN_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"


class AuthFailure:
    CAPTCHA_MISSING = "CAPTCHA_MISSING"
    CAPTCHA_MISMATCH = "CAPTCHA_MISMATCH"
    USER_NOT_FOUND = "USER_NOT_FOUND"
    USER_DISABLED = "USER_DISABLED"
    USER_DELETED = "USER_DELETED"
    PASSWORD_MISMATCH = "PASSWORD_MISMATCH"


def build_user_info(user: User) -> UserInfo:
    return UserInfo(
        id=user.id,
        uuid=user.uuid,
        username=user.username,
        nickname=user.nickname,
        email=user.email,
        phone=user.phone,
        avatar=user.avatar,
        dept_id=user.dept_id,
        dept=user.dept.name if user.dept is not None else None,
        status=user.status,
        is_superuser=user.is_superuser,
        is_staff=user.is_staff,
        is_multi_login=user.is_multi_login,
        join_time=user.join_time,
        last_login_time=user.last_login_time,
        roles=[role.name for role in user.roles if role.status == 1],
    )


class AuthService:

    def __init__(self, settings: BackendSettings, hasher: PasswordHasher, tokens: TokenCodec,
                 sessions: SessionStore, captcha: CaptchaIssuer, resolver: PermissionResolver):
        self.settings = settings
        self.hasher = hasher
        self.tokens = tokens
        self.sessions = sessions
        self.captcha = captcha
        self.resolver = resolver

    def _fail(self, sub_code: str, username: str, client: ClientInfo):
        logger.warning(f"Login failed for {username!r} from {client.ip}: {sub_code}")
        raise AuthFailureException(sub_code)

    async def login(self, db: Session, request: LoginRequest, client: ClientInfo) -> LoginResult:
        if self.settings.CAPTCHA_ENABLED:
            if not await self.captcha.consume(request.uuid, request.captcha):
                code = AuthFailure.CAPTCHA_MISSING if not (request.uuid and request.captcha) else AuthFailure.CAPTCHA_MISMATCH
                self._fail(code, request.username, client)

        users = UserRepository(db)
        user = users.find_for_login(request.username)
        if user is None:
            self._fail(AuthFailure.USER_NOT_FOUND, request.username, client)
        if user.del_flag != 0:
            self._fail(AuthFailure.USER_DELETED, request.username, client)
        if user.status != 1:
            self._fail(AuthFailure.USER_DISABLED, request.username, client)

        if not await run_in_threadpool(self.hasher.verify, request.password, user.password):
            self._fail(AuthFailure.PASSWORD_MISMATCH, request.username, client)

        if not user.is_multi_login:
            await self.sessions.invalidate_user(user.id)

        now = int(time.time())
        session_uuid = str(uuid4())
        access = self.tokens.encode(user.id, session_uuid, self.settings.TOKEN_EXPIRE_SECONDS, now=now)
        refresh = self.tokens.encode(user.id, session_uuid, self.settings.TOKEN_REFRESH_EXPIRE_SECONDS, now=now,
                                     token_type=REFRESH_TOKEN)

        users.touch_login(user)

        metadata = SessionMetadata(
            user_id=user.id,
            username=user.username,
            nickname=user.nickname,
            ip=client.ip,
            location=client.location,
            os=client.os,
            browser=client.browser,
            device=client.device,
            issued_at=now,
            expire_time=access.expire_time,
            last_login_time=user.last_login_time.strftime(LOGIN_TIME_FORMAT),
        )
        await self.sessions.register(session_uuid, user.id, self.settings.TOKEN_EXPIRE_SECONDS, metadata)
        await self.sessions.store_refresh(
            session_uuid,
            RefreshRecord(user_id=user.id, refresh_token=refresh.token, expire_time=refresh.expire_time, metadata=metadata),
            self.settings.TOKEN_REFRESH_EXPIRE_SECONDS,
        )

        await self.resolver.resolve(db, user.id)

        logger.info(f"User {user.username} logged in from {client.ip} (session {session_uuid})")

        return LoginResult(
            access_token=access.token,
            access_token_expire_time=datetime.fromtimestamp(access.expire_time),
            refresh_token=refresh.token,
            refresh_token_expire_time=datetime.fromtimestamp(refresh.expire_time),
            session_uuid=session_uuid,
            user_info=build_user_info(user),
        )

    async def refresh(self, db: Session, payload: TokenPayload, record: RefreshRecord) -> RefreshResult:
        """
        Mint a new access token for an already verified refresh token.

        The session uuid is kept and the session entries get a fresh TTL.
        """
        user = UserRepository(db).get_by_id_optional(payload.user_id)
        if user is None or not user.is_active:
            await self.sessions.invalidate(payload.session_uuid)
            raise TokenInvalidException("User is disabled or no longer exists")

        access = self.tokens.encode(user.id, payload.session_uuid, self.settings.TOKEN_EXPIRE_SECONDS)
        metadata = record.metadata.model_copy(update={"expire_time": access.expire_time})
        await self.sessions.register(payload.session_uuid, user.id, self.settings.TOKEN_EXPIRE_SECONDS, metadata)

        logger.info(f"Refreshed session {payload.session_uuid} of user {user.id}")

        return RefreshResult(
            access_token=access.token,
            access_token_expire_time=datetime.fromtimestamp(access.expire_time),
            session_uuid=payload.session_uuid,
        )

    async def logout(self, auth: AuthContext):
        # outstanding access tokens of the session stay rejected until they expire
        await self.sessions.blacklist(auth.session_uuid, self.settings.TOKEN_EXPIRE_SECONDS)
        await self.sessions.invalidate(auth.session_uuid)
        logger.info(f"User {auth.user_id} logged out (session {auth.session_uuid})")
