from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Query

from admin_backend.interface.base import BaseEntityList, EntityInterface, Invalidation, ListQuery
from admin_backend.model.role import Role
from admin_backend.permissions.principal import ScopeMode
from admin_backend.repositories.role import RoleRepository
from admin_backend.repositories.user import UserRepository


class RoleCreate(BaseModel):
    name: str = Field(min_length=1, max_length=32, description="Unique role name")
    code: str = Field(min_length=1, max_length=64, description="Unique role code")
    sort: int = Field(0, description="Display order")
    status: int = Field(1, ge=0, le=1, description="1 enabled, 0 disabled")
    data_scope: ScopeMode = Field(ScopeMode.SELF, description="Row visibility granted by the role")
    is_filter_scopes: bool = Field(True, description="Whether data scopes filter rows for this role")
    remark: Optional[str] = Field(None, max_length=255)


class RoleGet(BaseEntityList):
    id: int
    name: str
    code: str
    sort: int
    status: int
    data_scope: ScopeMode
    is_filter_scopes: bool
    remark: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class RoleUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=32)
    code: Optional[str] = Field(None, min_length=1, max_length=64)
    sort: Optional[int] = None
    status: Optional[int] = Field(None, ge=0, le=1)
    is_filter_scopes: Optional[bool] = None
    remark: Optional[str] = Field(None, max_length=255)


class RoleQuery(ListQuery):
    name: Optional[str] = None
    code: Optional[str] = None
    status: Optional[int] = None


class RoleMenusUpdate(BaseModel):
    menus: List[int] = Field(default_factory=list, description="Ids of every menu the role grants")


class RoleScopesUpdate(BaseModel):
    scopes: List[int] = Field(default_factory=list, description="Ids of every data scope bound to the role")


class RoleDataScopeUpdate(BaseModel):
    data_scope: ScopeMode = Field(description="Row visibility granted by the role")
    dept_ids: List[int] = Field(default_factory=list, description="Departments for the custom scope")


def role_search(query: Query, params: RoleQuery) -> Query:
    if params.name:
        query = query.filter(Role.name.like(f"%{params.name}%"))
    if params.code:
        query = query.filter(Role.code.like(f"%{params.code}%"))
    if params.status is not None:
        query = query.filter(Role.status == params.status)
    return query


def role_invalidation(app, db, role: Role) -> Invalidation:
    return Invalidation(user_ids=UserRepository(db).ids_by_roles([role.id]))


class RoleInterface(EntityInterface):
    create = RoleCreate
    get = RoleGet
    list = RoleGet
    update = RoleUpdate
    query = RoleQuery
    search = role_search
    endpoint = "roles"
    model = Role
    repository = RoleRepository
    permission = "sys:role"
    invalidation = role_invalidation
