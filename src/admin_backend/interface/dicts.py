from typing import Optional
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Query

from admin_backend.interface.base import BaseEntityList, EntityInterface, Invalidation, ListQuery
from admin_backend.model.system import DictData, DictType
from admin_backend.repositories.system import DictDataRepository, DictTypeRepository
from admin_backend.services.system import dict_cache_key


class DictTypeCreate(BaseModel):
    name: str = Field(min_length=1, max_length=32)
    code: str = Field(min_length=1, max_length=32, description="Unique dictionary code")
    status: int = Field(1, ge=0, le=1)
    remark: Optional[str] = Field(None, max_length=255)


class DictTypeGet(BaseEntityList):
    id: int
    name: str
    code: str
    status: int
    remark: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class DictTypeUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=32)
    code: Optional[str] = Field(None, min_length=1, max_length=32)
    status: Optional[int] = Field(None, ge=0, le=1)
    remark: Optional[str] = Field(None, max_length=255)


class DictTypeQuery(ListQuery):
    name: Optional[str] = None
    code: Optional[str] = None
    status: Optional[int] = None


class DictDataCreate(BaseModel):
    type_id: int = Field(description="Owning dictionary type")
    label: str = Field(min_length=1, max_length=32)
    value: str = Field(min_length=1, max_length=32)
    sort: int = Field(0)
    status: int = Field(1, ge=0, le=1)
    remark: Optional[str] = Field(None, max_length=255)


class DictDataGet(BaseEntityList):
    id: int
    type_id: int
    label: str
    value: str
    sort: int
    status: int
    remark: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class DictDataUpdate(BaseModel):
    type_id: Optional[int] = None
    label: Optional[str] = Field(None, min_length=1, max_length=32)
    value: Optional[str] = Field(None, min_length=1, max_length=32)
    sort: Optional[int] = None
    status: Optional[int] = Field(None, ge=0, le=1)
    remark: Optional[str] = Field(None, max_length=255)


class DictDataQuery(ListQuery):
    type_id: Optional[int] = None
    label: Optional[str] = None
    status: Optional[int] = None


def dict_type_search(query: Query, params: DictTypeQuery) -> Query:
    if params.name:
        query = query.filter(DictType.name.like(f"%{params.name}%"))
    if params.code:
        query = query.filter(DictType.code.like(f"%{params.code}%"))
    if params.status is not None:
        query = query.filter(DictType.status == params.status)
    return query


def dict_data_search(query: Query, params: DictDataQuery) -> Query:
    if params.type_id is not None:
        query = query.filter(DictData.type_id == params.type_id)
    if params.label:
        query = query.filter(DictData.label.like(f"%{params.label}%"))
    if params.status is not None:
        query = query.filter(DictData.status == params.status)
    return query


def dict_type_invalidation(app, db, dict_type: DictType) -> Invalidation:
    return Invalidation(cache_keys={dict_cache_key(app.settings, dict_type.code)})


def dict_data_invalidation(app, db, data: DictData) -> Invalidation:
    dict_type = DictTypeRepository(db).get_by_id_optional(data.type_id)
    if dict_type is None:
        return Invalidation()
    return Invalidation(cache_keys={dict_cache_key(app.settings, dict_type.code)})


def check_type(app, principal, db, values: dict) -> dict:
    if values.get("type_id") is not None:
        DictTypeRepository(db).get_by_id(values["type_id"])
    return values


def check_type_on_update(app, principal, db, data: DictData, values: dict) -> dict:
    return check_type(app, principal, db, values)


class DictTypeInterface(EntityInterface):
    create = DictTypeCreate
    get = DictTypeGet
    list = DictTypeGet
    update = DictTypeUpdate
    query = DictTypeQuery
    search = dict_type_search
    endpoint = "dict-types"
    model = DictType
    repository = DictTypeRepository
    permission = "sys:dict-type"
    invalidation = dict_type_invalidation


class DictDataInterface(EntityInterface):
    create = DictDataCreate
    get = DictDataGet
    list = DictDataGet
    update = DictDataUpdate
    query = DictDataQuery
    search = dict_data_search
    endpoint = "dict-datas"
    model = DictData
    repository = DictDataRepository
    permission = "sys:dict-data"
    pre_create = check_type
    pre_update = check_type_on_update
    invalidation = dict_data_invalidation
