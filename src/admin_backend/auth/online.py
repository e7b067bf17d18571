"""
Online-session listing and forced logout for the monitor API.
"""

import logging
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from admin_backend.api.exceptions import NotFoundException
from admin_backend.auth.sessions import SessionInfo, SessionStore

logger = logging.getLogger(__name__)


class OnlineSession(BaseModel):
    session_uuid: str
    user_id: int
    username: str
    nickname: Optional[str] = None
    ip: Optional[str] = None
    location: Optional[str] = None
    os: Optional[str] = None
    browser: Optional[str] = None
    device: Optional[str] = None
    online: bool
    current: bool = False
    login_time: datetime
    expire_time: datetime
    last_login_time: Optional[str] = None


class KickNotifier:
    """Tells a kicked client that its session is gone. The default only logs."""

    async def notify(self, session_uuid: str, user_id: int):
        logger.info(f"Session {session_uuid} of user {user_id} was terminated")


def to_online_session(info: SessionInfo, current_session: Optional[str] = None) -> OnlineSession:
    meta = info.metadata
    return OnlineSession(
        session_uuid=info.session_uuid,
        user_id=info.user_id,
        username=meta.username,
        nickname=meta.nickname,
        ip=meta.ip,
        location=meta.location,
        os=meta.os,
        browser=meta.browser,
        device=meta.device,
        online=info.online,
        current=info.session_uuid == current_session,
        login_time=datetime.fromtimestamp(meta.issued_at),
        expire_time=datetime.fromtimestamp(meta.expire_time),
        last_login_time=meta.last_login_time,
    )


class OnlineSessionService:

    def __init__(self, sessions: SessionStore, blacklist_ttl: int, notifier: Optional[KickNotifier] = None):
        self.sessions = sessions
        self.blacklist_ttl = blacklist_ttl
        self.notifier = notifier or KickNotifier()

    async def list(self, username: Optional[str] = None, current_session: Optional[str] = None) -> List[OnlineSession]:
        infos = await self.sessions.enumerate(username=username)
        return [to_online_session(info, current_session) for info in infos]

    async def kick(self, session_uuid: str):
        """
        Terminate a session immediately.

        Raises:
            NotFoundException: If the session is unknown or already gone
        """
        user_id = await self.sessions.owner(session_uuid)
        if user_id is None:
            raise NotFoundException(f"Session {session_uuid} not found")

        await self.sessions.blacklist(session_uuid, self.blacklist_ttl)
        await self.sessions.invalidate(session_uuid)
        await self.notifier.notify(session_uuid, user_id)
        logger.info(f"Kicked session {session_uuid} of user {user_id}")
