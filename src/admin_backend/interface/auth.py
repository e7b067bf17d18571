from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field


class LoginRequest(BaseModel):
    username: str = Field(description="User handle")
    password: str = Field(description="Plain password")
    captcha: Optional[str] = Field(None, description="Captcha answer")
    uuid: Optional[str] = Field(None, description="Captcha uuid")


class RefreshRequest(BaseModel):
    refresh_token: Optional[str] = Field(None, description="Refresh token; falls back to the cookie")


class UserInfo(BaseModel):
    id: int
    uuid: str
    username: str
    nickname: str
    email: Optional[str] = None
    phone: Optional[str] = None
    avatar: Optional[str] = None
    dept_id: Optional[int] = None
    dept: Optional[str] = None
    status: int
    is_superuser: bool
    is_staff: bool
    is_multi_login: bool
    join_time: Optional[datetime] = None
    last_login_time: Optional[datetime] = None
    roles: List[str] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class LoginResult(BaseModel):
    access_token: str
    access_token_expire_time: datetime
    refresh_token: str
    refresh_token_expire_time: datetime
    session_uuid: str
    user_info: UserInfo


class RefreshResult(BaseModel):
    access_token: str
    access_token_expire_time: datetime
    session_uuid: str
