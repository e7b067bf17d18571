import logging
from typing import Annotated, List, Optional
from fastapi import APIRouter, Body, Depends, Request, Response
from sqlalchemy.orm import Session

from admin_backend.api.auth import get_auth_context, get_current_principal
from admin_backend.app_state import App, get_app
from admin_backend.auth.captcha import CaptchaChallenge
from admin_backend.auth.fingerprint import client_info
from admin_backend.database import get_db
from admin_backend.interface.auth import LoginRequest, LoginResult, RefreshRequest, RefreshResult
from admin_backend.interface.base import ResponseModel, response_ok
from admin_backend.permissions.principal import ALL_PERMISSIONS, AuthContext, Principal

logger = logging.getLogger(__name__)

auth_router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


def _set_refresh_cookie(app: App, response: Response, token: str):
    response.set_cookie(
        key=app.settings.COOKIE_REFRESH_TOKEN_KEY,
        value=token,
        max_age=app.settings.TOKEN_REFRESH_EXPIRE_SECONDS,
        httponly=True,
        samesite="lax",
        secure=app.settings.is_production,
    )


@auth_router.post("/login", response_model=ResponseModel[LoginResult])
async def login(request: Request, response: Response, credentials: LoginRequest,
                app: Annotated[App, Depends(get_app)], db: Session = Depends(get_db)):
    result = await app.auth.login(db, credentials, client_info(request))
    _set_refresh_cookie(app, response, result.refresh_token)
    return response_ok(result)


@auth_router.post("/refresh", response_model=ResponseModel[RefreshResult])
async def refresh(request: Request, app: Annotated[App, Depends(get_app)],
                  body: Optional[RefreshRequest] = Body(None), db: Session = Depends(get_db)):
    token = body.refresh_token if body is not None and body.refresh_token else None
    if token is None:
        token = request.cookies.get(app.settings.COOKIE_REFRESH_TOKEN_KEY)

    payload, record = await app.gateway.authenticate_refresh(token)
    return response_ok(await app.auth.refresh(db, payload, record))


@auth_router.post("/logout", response_model=ResponseModel)
async def logout(response: Response, auth: Annotated[AuthContext, Depends(get_auth_context)],
                 app: Annotated[App, Depends(get_app)]):
    await app.auth.logout(auth)
    response.delete_cookie(app.settings.COOKIE_REFRESH_TOKEN_KEY)
    return response_ok()


@auth_router.get("/captcha", response_model=ResponseModel[CaptchaChallenge])
async def captcha(app: Annotated[App, Depends(get_app)]):
    return response_ok(await app.captcha.issue())


@auth_router.get("/codes", response_model=ResponseModel[List[str]])
async def codes(principal: Annotated[Principal, Depends(get_current_principal)]):
    if principal.is_superuser:
        return response_ok([ALL_PERMISSIONS])
    return response_ok(sorted(principal.permission_codes))
