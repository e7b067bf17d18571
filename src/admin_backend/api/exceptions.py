import logging
from typing import Any, Dict, Optional
from fastapi import FastAPI, HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from admin_backend.repositories.base import DuplicateError, NotFoundError, ReferencedError, RepositoryError

logger = logging.getLogger(__name__)

AUTH_FAILURE_MESSAGE = "Invalid username, password or captcha"


class ErrorCode:
    SUCCESS = 200
    BAD_INPUT = 400
    NOT_FOUND = 404
    INTERNAL = 500
    AUTH_FAILURE = 10001
    TOKEN_EXPIRED = 10003
    TOKEN_INVALID = 10004
    FORBIDDEN = 20001
    CONFLICT = 30001
    UPSTREAM_UNAVAILABLE = 70001


class NotFoundException(HTTPException):
    code = ErrorCode.NOT_FOUND

    def __init__(self, detail: Any = None, headers: Optional[Dict[str, str]] = None):
        self.headers = headers
        self.status_code = status.HTTP_404_NOT_FOUND
        self.detail = detail or "Not found"

class ForbiddenException(HTTPException):
    code = ErrorCode.FORBIDDEN

    def __init__(self, detail: Any = None, headers: Optional[Dict[str, str]] = None):
        self.headers = headers
        self.status_code = status.HTTP_403_FORBIDDEN
        self.detail = detail or "Forbidden"

class BadRequestException(HTTPException):
    code = ErrorCode.BAD_INPUT

    def __init__(self, detail: Any = None, headers: Optional[Dict[str, str]] = None):
        self.headers = headers
        self.status_code = status.HTTP_400_BAD_REQUEST
        self.detail = detail or "Bad request"

class ConflictException(HTTPException):
    code = ErrorCode.CONFLICT

    def __init__(self, detail: Any = None, headers: Optional[Dict[str, str]] = None):
        self.headers = headers
        self.status_code = status.HTTP_409_CONFLICT
        self.detail = detail or "Conflict"

class UnauthorizedException(HTTPException):
    code = ErrorCode.TOKEN_INVALID

    def __init__(self, detail: Any = None, headers: Optional[Dict[str, str]] = None):
        self.headers = headers or {"WWW-Authenticate": "Bearer"}
        self.status_code = status.HTTP_401_UNAUTHORIZED
        self.detail = detail or "Unauthorized"

class TokenInvalidException(UnauthorizedException):
    code = ErrorCode.TOKEN_INVALID

    def __init__(self, detail: Any = None, headers: Optional[Dict[str, str]] = None):
        super().__init__(detail or "Token is invalid", headers)

class TokenExpiredException(UnauthorizedException):
    code = ErrorCode.TOKEN_EXPIRED

    def __init__(self, detail: Any = None, headers: Optional[Dict[str, str]] = None):
        super().__init__(detail or "Token has expired", headers)

class AuthFailureException(HTTPException):
    """Credential or captcha failure.

    The client only ever sees the generic message; ``sub_code`` records which
    check failed for auditing.
    """
    code = ErrorCode.AUTH_FAILURE

    def __init__(self, sub_code: str, headers: Optional[Dict[str, str]] = None):
        self.headers = headers
        self.status_code = status.HTTP_400_BAD_REQUEST
        self.detail = AUTH_FAILURE_MESSAGE
        self.sub_code = sub_code

class InternalServerException(HTTPException):
    code = ErrorCode.INTERNAL

    def __init__(self, detail: Any = None, headers: Optional[Dict[str, str]] = None):
        self.headers = headers
        self.status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
        self.detail = detail or "Internal server error"

class ServiceUnavailableException(HTTPException):
    code = ErrorCode.UPSTREAM_UNAVAILABLE

    def __init__(self, detail: Any = None, headers: Optional[Dict[str, str]] = None):
        self.headers = headers
        self.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        self.detail = detail or "Service unavailable error"


def repository_to_http_exception(error: RepositoryError) -> HTTPException:
    if isinstance(error, NotFoundError):
        return NotFoundException(detail=str(error))
    elif isinstance(error, (DuplicateError, ReferencedError)):
        return ConflictException(detail=str(error))
    else:
        return InternalServerException()


def error_body(code: int, msg: Any, data: Any = None) -> dict:
    return {"code": code, "msg": msg if isinstance(msg, str) else str(msg), "data": data}


def error_response(exc: HTTPException) -> JSONResponse:
    code = getattr(exc, "code", exc.status_code)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(code, exc.detail),
        headers=getattr(exc, "headers", None),
    )


def register_exception_handlers(app: FastAPI):
    """Render every error as a ``{code, msg, data}`` envelope."""

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return error_response(exc)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=error_body(ErrorCode.BAD_INPUT, "Request validation failed", jsonable_encoder(exc.errors())),
        )

    @app.exception_handler(ValidationError)
    async def model_validation_exception_handler(request: Request, exc: ValidationError):
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=error_body(ErrorCode.BAD_INPUT, "Request validation failed", jsonable_encoder(exc.errors(include_url=False))),
        )

    @app.exception_handler(RepositoryError)
    async def repository_exception_handler(request: Request, exc: RepositoryError):
        if not isinstance(exc, (NotFoundError, DuplicateError, ReferencedError)):
            logger.error(f"Repository error on {request.url.path}: {exc}")
        return error_response(repository_to_http_exception(exc))

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return error_response(InternalServerException())
