import math
from abc import ABC
from datetime import datetime
from typing import Any, Callable, Dict, Generic, List, Optional, Set, TypeVar
from fastapi import Request
from pydantic import BaseModel, Field

T = TypeVar("T")

SUCCESS_CODE = 200
SUCCESS_MSG = "Success"


class ResponseModel(BaseModel, Generic[T]):
    """Envelope wrapping every response body"""
    code: int = SUCCESS_CODE
    msg: str = SUCCESS_MSG
    data: Optional[T] = None


def response_ok(data: Any = None, msg: str = SUCCESS_MSG) -> ResponseModel:
    return ResponseModel(code=SUCCESS_CODE, msg=msg, data=data)


class ListQuery(BaseModel):
    page: int = Field(1, ge=1, description="1-based page number")
    size: int = Field(20, ge=1, le=200, description="Page size")


class Page(BaseModel, Generic[T]):
    items: List[T] = Field(default_factory=list)
    total: int = 0
    page: int = 1
    size: int = 20
    total_pages: int = 0
    links: Dict[str, str] = Field(default_factory=dict)


def page_links(request: Request, page: int, size: int, total_pages: int) -> Dict[str, str]:
    def link(number: int) -> str:
        return str(request.url.include_query_params(page=number, size=size))

    links = {
        "first": link(1),
        "last": link(max(total_pages, 1)),
        "self": link(page),
    }
    if page < total_pages:
        links["next"] = link(page + 1)
    if page > 1:
        links["prev"] = link(page - 1)
    return links


def build_page(request: Request, items: List[Any], total: int, params: ListQuery) -> Page:
    total_pages = math.ceil(total / params.size) if total else 0
    return Page(
        items=items,
        total=total,
        page=params.page,
        size=params.size,
        total_pages=total_pages,
        links=page_links(request, params.page, params.size, total_pages),
    )


class Invalidation(BaseModel):
    """Derived state to drop once a write has been committed"""
    user_ids: Set[int] = Field(default_factory=set)
    cache_keys: Set[str] = Field(default_factory=set)

    def merge(self, other: "Invalidation") -> "Invalidation":
        return Invalidation(user_ids=self.user_ids | other.user_ids, cache_keys=self.cache_keys | other.cache_keys)


ACTIONS = {
    "create": "add",
    "get":    "get",
    "list":   "list",
    "update": "edit",
    "delete": "del",
}


class EntityInterface(ABC):
    create: BaseModel = None
    get: BaseModel = None
    list: BaseModel = None
    update: BaseModel = None
    query: BaseModel = None
    search: Any = None
    endpoint: str = None
    model: Any = None
    repository: Any = None

    # permission code prefix, e.g. "sys:user"
    permission: str = None
    # whether reads and writes go through the data-scope engine
    scoped: bool = False

    # (app, principal, db, values) -> values, run before insert/update; may be async
    pre_create: Callable = None
    pre_update: Callable = None
    # (app, db, entity) -> Invalidation, evaluated before and after each write
    invalidation: Callable = None
    # async (app, entity, action), run after commit and invalidation
    post_write: Callable = None

    @classmethod
    def permission_code(cls, action: str) -> str:
        return f"{cls.permission}:{ACTIONS[action]}"

    @classmethod
    def permission_codes(cls) -> List[str]:
        return [cls.permission_code(action) for action in ACTIONS]


class BaseEntityList(BaseModel):
    created_time: Optional[datetime] = Field(None, description="Creation timestamp")
    updated_time: Optional[datetime] = Field(None, description="Update timestamp")
