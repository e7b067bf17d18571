from typing import Optional
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Query

from admin_backend.interface.base import BaseEntityList, EntityInterface, Invalidation, ListQuery
from admin_backend.model.system import SysConfig
from admin_backend.repositories.system import ConfigRepository
from admin_backend.services.system import config_cache_key


class ConfigCreate(BaseModel):
    name: str = Field(min_length=1, max_length=32, description="Human readable name")
    type: Optional[str] = Field(None, max_length=32, description="Grouping type")
    key: str = Field(min_length=1, max_length=64, description="Unique lookup key")
    value: str = Field(description="Config value")
    is_frontend: bool = Field(False, description="Exposed to the frontend")
    remark: Optional[str] = Field(None, max_length=255)


class ConfigGet(BaseEntityList):
    id: int
    name: str
    type: Optional[str] = None
    key: str
    value: str
    is_frontend: bool
    remark: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class ConfigUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=32)
    type: Optional[str] = Field(None, max_length=32)
    key: Optional[str] = Field(None, min_length=1, max_length=64)
    value: Optional[str] = None
    is_frontend: Optional[bool] = None
    remark: Optional[str] = Field(None, max_length=255)


class ConfigQuery(ListQuery):
    name: Optional[str] = None
    type: Optional[str] = None


def config_search(query: Query, params: ConfigQuery) -> Query:
    if params.name:
        query = query.filter(SysConfig.name.like(f"%{params.name}%"))
    if params.type:
        query = query.filter(SysConfig.type == params.type)
    return query


def config_invalidation(app, db, config: SysConfig) -> Invalidation:
    return Invalidation(cache_keys={config_cache_key(app.settings, config.key)})


class ConfigInterface(EntityInterface):
    create = ConfigCreate
    get = ConfigGet
    list = ConfigGet
    update = ConfigUpdate
    query = ConfigQuery
    search = config_search
    endpoint = "configs"
    model = SysConfig
    repository = ConfigRepository
    permission = "sys:config"
    invalidation = config_invalidation
