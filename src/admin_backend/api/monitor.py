from typing import Annotated, List, Optional
from fastapi import APIRouter, Depends

from admin_backend.api.auth import get_auth_context, requires
from admin_backend.app_state import App, get_app
from admin_backend.auth.online import OnlineSession
from admin_backend.interface.base import ResponseModel, response_ok
from admin_backend.permissions.principal import AuthContext, Principal

monitor_router = APIRouter(prefix="/api/v1/monitors", tags=["monitors"])


@monitor_router.get("/sessions", response_model=ResponseModel[List[OnlineSession]])
async def list_sessions(app: Annotated[App, Depends(get_app)],
                        auth: Annotated[AuthContext, Depends(get_auth_context)],
                        principal: Annotated[Principal, Depends(requires("sys:session:list"))],
                        username: Optional[str] = None):
    return response_ok(await app.online.list(username=username, current_session=auth.session_uuid))


@monitor_router.delete("/sessions/{session_uuid}", response_model=ResponseModel)
async def kick_session(session_uuid: str, app: Annotated[App, Depends(get_app)],
                       principal: Annotated[Principal, Depends(requires("sys:session:delete"))]):
    await app.online.kick(session_uuid)
    return response_ok()
