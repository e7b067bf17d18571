from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Query

from admin_backend.interface.base import BaseEntityList, EntityInterface, Invalidation, ListQuery
from admin_backend.model.role import DataScope
from admin_backend.repositories.data_scope import DataScopeRepository
from admin_backend.repositories.role import RoleRepository
from admin_backend.repositories.user import UserRepository


class DataScopeCreate(BaseModel):
    name: str = Field(min_length=1, max_length=64, description="Unique scope name")
    status: int = Field(1, ge=0, le=1)


class DataScopeGet(BaseEntityList):
    id: int
    name: str
    status: int

    model_config = ConfigDict(from_attributes=True)


class DataScopeUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=64)
    status: Optional[int] = Field(None, ge=0, le=1)


class DataScopeQuery(ListQuery):
    name: Optional[str] = None
    status: Optional[int] = None


class DataScopeRulesUpdate(BaseModel):
    rules: List[int] = Field(default_factory=list, description="Ids of every rule in the scope")


def data_scope_search(query: Query, params: DataScopeQuery) -> Query:
    if params.name:
        query = query.filter(DataScope.name.like(f"%{params.name}%"))
    if params.status is not None:
        query = query.filter(DataScope.status == params.status)
    return query


def data_scope_invalidation(app, db, scope: DataScope) -> Invalidation:
    role_ids = RoleRepository(db).ids_by_scope(scope.id)
    return Invalidation(user_ids=UserRepository(db).ids_by_roles(role_ids))


class DataScopeInterface(EntityInterface):
    create = DataScopeCreate
    get = DataScopeGet
    list = DataScopeGet
    update = DataScopeUpdate
    query = DataScopeQuery
    search = data_scope_search
    endpoint = "data-scopes"
    model = DataScope
    repository = DataScopeRepository
    permission = "sys:data-scope"
    invalidation = data_scope_invalidation
