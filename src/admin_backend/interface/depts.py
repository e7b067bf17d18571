from typing import Optional
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from sqlalchemy.orm import Query

from admin_backend.interface.base import BaseEntityList, EntityInterface, ListQuery
from admin_backend.model.auth import Dept
from admin_backend.repositories.dept import DeptRepository


class DeptCreate(BaseModel):
    name: str = Field(min_length=1, max_length=64, description="Department name")
    parent_id: Optional[int] = Field(None, description="Parent department")
    sort: int = Field(0, description="Display order")
    leader: Optional[str] = Field(None, max_length=32)
    phone: Optional[str] = Field(None, max_length=11)
    email: Optional[EmailStr] = None
    status: int = Field(1, ge=0, le=1)


class DeptGet(BaseEntityList):
    id: int
    name: str
    parent_id: Optional[int] = None
    sort: int
    leader: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    status: int

    model_config = ConfigDict(from_attributes=True)


class DeptUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=64)
    parent_id: Optional[int] = None
    sort: Optional[int] = None
    leader: Optional[str] = Field(None, max_length=32)
    phone: Optional[str] = Field(None, max_length=11)
    email: Optional[EmailStr] = None
    status: Optional[int] = Field(None, ge=0, le=1)


class DeptQuery(ListQuery):
    name: Optional[str] = None
    parent_id: Optional[int] = None
    status: Optional[int] = None


def dept_search(query: Query, params: DeptQuery) -> Query:
    if params.name:
        query = query.filter(Dept.name.like(f"%{params.name}%"))
    if params.parent_id is not None:
        query = query.filter(Dept.parent_id == params.parent_id)
    if params.status is not None:
        query = query.filter(Dept.status == params.status)
    return query


def check_parent(app, principal, db, values: dict) -> dict:
    DeptRepository(db).ensure_parent(None, values.get("parent_id"))
    return values


def check_parent_on_update(app, principal, db, dept: Dept, values: dict) -> dict:
    if "parent_id" in values:
        DeptRepository(db).ensure_parent(dept.id, values["parent_id"])
    return values


class DeptInterface(EntityInterface):
    create = DeptCreate
    get = DeptGet
    list = DeptGet
    update = DeptUpdate
    query = DeptQuery
    search = dept_search
    endpoint = "depts"
    model = Dept
    repository = DeptRepository
    permission = "sys:dept"
    scoped = True
    pre_create = check_parent
    pre_update = check_parent_on_update
