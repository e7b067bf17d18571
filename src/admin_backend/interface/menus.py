from enum import IntEnum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Query

from admin_backend.api.exceptions import BadRequestException
from admin_backend.interface.base import BaseEntityList, EntityInterface, Invalidation, ListQuery
from admin_backend.model.role import Menu
from admin_backend.repositories.menu import MenuRepository
from admin_backend.repositories.role import RoleRepository
from admin_backend.repositories.user import UserRepository


class MenuType(IntEnum):
    DIRECTORY = 0
    MENU = 1
    BUTTON = 2


class MenuCreate(BaseModel):
    title: str = Field(min_length=1, max_length=64, description="Menu title")
    name: Optional[str] = Field(None, max_length=64, description="Route name")
    path: Optional[str] = Field(None, max_length=200, description="Route path")
    parent_id: Optional[int] = Field(None, description="Parent menu")
    sort: int = Field(0, description="Display order")
    icon: Optional[str] = Field(None, max_length=100)
    type: MenuType = Field(MenuType.DIRECTORY, description="0 directory, 1 menu, 2 button")
    perms: Optional[str] = Field(None, max_length=255, description="Comma separated permission codes")
    status: int = Field(1, ge=0, le=1)
    display: int = Field(1, ge=0, le=1)
    remark: Optional[str] = Field(None, max_length=255)


class MenuGet(BaseEntityList):
    id: int
    title: str
    name: Optional[str] = None
    path: Optional[str] = None
    parent_id: Optional[int] = None
    sort: int
    icon: Optional[str] = None
    type: MenuType
    perms: Optional[str] = None
    status: int
    display: int
    remark: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class MenuUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=64)
    name: Optional[str] = Field(None, max_length=64)
    path: Optional[str] = Field(None, max_length=200)
    parent_id: Optional[int] = None
    sort: Optional[int] = None
    icon: Optional[str] = Field(None, max_length=100)
    type: Optional[MenuType] = None
    perms: Optional[str] = Field(None, max_length=255)
    status: Optional[int] = Field(None, ge=0, le=1)
    display: Optional[int] = Field(None, ge=0, le=1)
    remark: Optional[str] = Field(None, max_length=255)


class MenuQuery(ListQuery):
    title: Optional[str] = None
    status: Optional[int] = None


def menu_search(query: Query, params: MenuQuery) -> Query:
    if params.title:
        query = query.filter(Menu.title.like(f"%{params.title}%"))
    if params.status is not None:
        query = query.filter(Menu.status == params.status)
    return query


def check_parent(app, principal, db, values: dict) -> dict:
    if values.get("parent_id") is not None:
        MenuRepository(db).get_by_id(values["parent_id"])
    return values


def check_parent_on_update(app, principal, db, menu: Menu, values: dict) -> dict:
    if values.get("parent_id") == menu.id:
        raise BadRequestException("A menu cannot be its own parent")
    return check_parent(app, principal, db, values)


def menu_invalidation(app, db, menu: Menu) -> Invalidation:
    return Invalidation(user_ids=UserRepository(db).ids_by_roles(RoleRepository(db).ids_by_menu(menu.id)))


class MenuInterface(EntityInterface):
    create = MenuCreate
    get = MenuGet
    list = MenuGet
    update = MenuUpdate
    query = MenuQuery
    search = menu_search
    endpoint = "menus"
    model = Menu
    repository = MenuRepository
    permission = "sys:menu"
    pre_create = check_parent
    pre_update = check_parent_on_update
    invalidation = menu_invalidation
