import logging
from typing import Annotated, Callable
from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session
from starlette.middleware.base import BaseHTTPMiddleware

from admin_backend.api.exceptions import UnauthorizedException, error_response
from admin_backend.database import get_db
from admin_backend.permissions.principal import AuthContext, Principal, require, require_any

logger = logging.getLogger(__name__)


class AuthGatewayMiddleware(BaseHTTPMiddleware):
    """
    Rejects unauthenticated requests before they reach a route.

    Excluded paths and CORS preflights pass through untouched. Errors are
    rendered here because exception handlers do not see middleware errors.
    """

    async def dispatch(self, request: Request, call_next):
        gateway = request.app.state.app.gateway

        if request.method == "OPTIONS" or gateway.is_excluded(request.url.path):
            return await call_next(request)

        try:
            request.state.auth = await gateway.authenticate(request.headers.get("Authorization"))
        except HTTPException as e:
            logger.debug(f"Rejected {request.method} {request.url.path}: {e.detail}")
            return error_response(e)

        return await call_next(request)


def get_auth_context(request: Request) -> AuthContext:
    auth = getattr(request.state, "auth", None)
    if auth is None:
        raise UnauthorizedException("Not authenticated")
    return auth


async def get_current_principal(request: Request, auth: Annotated[AuthContext, Depends(get_auth_context)],
                                db: Session = Depends(get_db)) -> Principal:
    return await request.app.state.app.resolver.resolve(db, auth.user_id)


def requires(code: str) -> Callable:
    """Dependency that resolves the caller and enforces one permission code."""

    async def dependency(principal: Annotated[Principal, Depends(get_current_principal)]) -> Principal:
        require(principal, code)
        return principal

    return dependency


def requires_any(*codes: str) -> Callable:

    async def dependency(principal: Annotated[Principal, Depends(get_current_principal)]) -> Principal:
        require_any(principal, *codes)
        return principal

    return dependency
