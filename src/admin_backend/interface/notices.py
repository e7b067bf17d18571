from typing import Optional
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Query

from admin_backend.interface.base import BaseEntityList, EntityInterface, ListQuery
from admin_backend.model.system import Notice
from admin_backend.repositories.system import NoticeRepository


class NoticeCreate(BaseModel):
    title: str = Field(min_length=1, max_length=50)
    type: int = Field(0, ge=0, le=1, description="0 notice, 1 announcement")
    status: int = Field(1, ge=0, le=1)
    content: str


class NoticeGet(BaseEntityList):
    id: int
    title: str
    type: int
    status: int
    content: str
    user_id: Optional[int] = None
    dept_id: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)


class NoticeList(BaseEntityList):
    id: int
    title: str
    type: int
    status: int
    user_id: Optional[int] = None
    dept_id: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)


class NoticeUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=50)
    type: Optional[int] = Field(None, ge=0, le=1)
    status: Optional[int] = Field(None, ge=0, le=1)
    content: Optional[str] = None


class NoticeQuery(ListQuery):
    title: Optional[str] = None
    type: Optional[int] = None
    status: Optional[int] = None


def notice_search(query: Query, params: NoticeQuery) -> Query:
    if params.title:
        query = query.filter(Notice.title.like(f"%{params.title}%"))
    if params.type is not None:
        query = query.filter(Notice.type == params.type)
    if params.status is not None:
        query = query.filter(Notice.status == params.status)
    return query


def stamp_owner(app, principal, db, values: dict) -> dict:
    values["user_id"] = principal.user_id
    values["dept_id"] = principal.dept_id
    return values


class NoticeInterface(EntityInterface):
    create = NoticeCreate
    get = NoticeGet
    list = NoticeList
    update = NoticeUpdate
    query = NoticeQuery
    search = notice_search
    endpoint = "notices"
    model = Notice
    repository = NoticeRepository
    permission = "sys:notice"
    scoped = True
    pre_create = stamp_owner
