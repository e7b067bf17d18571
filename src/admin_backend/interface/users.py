from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from sqlalchemy.orm import Query
from starlette.concurrency import run_in_threadpool

from admin_backend.api.exceptions import ForbiddenException
from admin_backend.auth.passwords import MAX_PASSWORD_BYTES, password_too_long
from admin_backend.interface.base import BaseEntityList, EntityInterface, Invalidation, ListQuery
from admin_backend.model.auth import User
from admin_backend.repositories.dept import DeptRepository
from admin_backend.repositories.user import UserRepository


def _check_username(value: str) -> str:
    if not value.replace('_', '').replace('-', '').replace('.', '').isalnum():
        raise ValueError('Username can only contain alphanumeric characters, underscores, hyphens, and dots')
    return value


def _check_password(value: str) -> str:
    if password_too_long(value):
        raise ValueError(f'Password must not exceed {MAX_PASSWORD_BYTES} bytes')
    return value


class UserCreate(BaseModel):
    username: str = Field(min_length=3, max_length=20, description="Unique login handle")
    password: str = Field(min_length=6, max_length=64, description="Plain password, stored hashed")
    nickname: Optional[str] = Field(None, max_length=20, description="Display name, defaults to the username")
    email: Optional[EmailStr] = Field(None, description="Unique email address")
    phone: Optional[str] = Field(None, max_length=11, description="Phone number")
    avatar: Optional[str] = Field(None, max_length=255, description="Avatar URL")
    dept_id: Optional[int] = Field(None, description="Home department")
    status: int = Field(1, ge=0, le=1, description="1 enabled, 0 disabled")
    is_superuser: bool = Field(False, description="Bypasses every permission check")
    is_staff: bool = Field(False, description="May use the admin console")
    is_multi_login: bool = Field(False, description="Keep other sessions alive on login")

    @field_validator('username')
    @classmethod
    def validate_username(cls, v):
        return _check_username(v)

    @field_validator('password')
    @classmethod
    def validate_password(cls, v):
        return _check_password(v)


class UserGet(BaseEntityList):
    id: int = Field(description="User id")
    uuid: str = Field(description="Public user uuid")
    username: str = Field(description="Login handle")
    nickname: str = Field(description="Display name")
    email: Optional[str] = None
    phone: Optional[str] = None
    avatar: Optional[str] = None
    dept_id: Optional[int] = None
    status: int
    is_superuser: bool
    is_staff: bool
    is_multi_login: bool
    join_time: Optional[datetime] = None
    last_login_time: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class UserList(BaseModel):
    id: int
    username: str
    nickname: str
    email: Optional[str] = None
    dept_id: Optional[int] = None
    status: int
    is_superuser: bool
    last_login_time: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class UserUpdate(BaseModel):
    nickname: Optional[str] = Field(None, max_length=20)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=11)
    avatar: Optional[str] = Field(None, max_length=255)
    dept_id: Optional[int] = None
    status: Optional[int] = Field(None, ge=0, le=1)
    is_superuser: Optional[bool] = None
    is_staff: Optional[bool] = None
    is_multi_login: Optional[bool] = None


class UserQuery(ListQuery):
    username: Optional[str] = None
    nickname: Optional[str] = None
    dept_id: Optional[int] = None
    status: Optional[int] = None


class UserPasswordReset(BaseModel):
    password: str = Field(min_length=6, max_length=64, description="New plain password")

    @field_validator('password')
    @classmethod
    def validate_password(cls, v):
        return _check_password(v)


class UserStatusUpdate(BaseModel):
    status: int = Field(ge=0, le=1, description="1 enabled, 0 disabled")


class UserRolesUpdate(BaseModel):
    roles: List[int] = Field(default_factory=list, description="Ids of every role the user should hold")


def user_search(query: Query, params: UserQuery) -> Query:
    return UserRepository.search(query, params.username, params.nickname, params.dept_id, params.status)


def _check_fields(principal, db, values: dict):
    if values.get("is_superuser") and not principal.is_superuser:
        raise ForbiddenException("Only superusers may grant superuser rights")
    if values.get("dept_id") is not None:
        DeptRepository(db).get_by_id(values["dept_id"])


async def prepare_create(app, principal, db, values: dict) -> dict:
    _check_fields(principal, db, values)
    values["password"] = await run_in_threadpool(app.hasher.hash, values["password"])
    return values


def prepare_update(app, principal, db, user: User, values: dict) -> dict:
    _check_fields(principal, db, values)
    return values


def user_invalidation(app, db, user: User) -> Invalidation:
    return Invalidation(user_ids={user.id})


async def drop_sessions(app, user: UserGet, action: str):
    # disabled or deleted users lose every live session at once
    if action == "delete" or (action == "update" and user.status != 1):
        await app.sessions.invalidate_user(user.id)


class UserInterface(EntityInterface):
    create = UserCreate
    get = UserGet
    list = UserList
    update = UserUpdate
    query = UserQuery
    search = user_search
    endpoint = "users"
    model = User
    repository = UserRepository
    permission = "sys:user"
    scoped = True
    pre_create = prepare_create
    pre_update = prepare_update
    invalidation = user_invalidation
    post_write = drop_sessions
