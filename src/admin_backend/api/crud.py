import inspect
import logging
from enum import Enum
from typing import Any, Dict, List, Tuple
from pydantic import BaseModel
from sqlalchemy.orm import Session

from admin_backend.api.exceptions import ForbiddenException, NotFoundException
from admin_backend.interface.base import EntityInterface, Invalidation, ListQuery
from admin_backend.permissions.principal import Principal, require

logger = logging.getLogger(__name__)


def _values(entity: BaseModel) -> Dict[str, Any]:
    values = entity.model_dump(exclude_unset=True)
    return {key: value.value if isinstance(value, Enum) else value for key, value in values.items()}


def _invalidation(app, db: Session, interface: EntityInterface, item) -> Invalidation:
    if interface.invalidation is None or item is None:
        return Invalidation()
    return interface.invalidation(app, db, item)


async def _run_hook(hook, *args):
    result = hook(*args)
    if inspect.isawaitable(result):
        result = await result
    return result


async def _after_write(app, interface: EntityInterface, invalidation: Invalidation, snapshot: BaseModel, action: str):
    if invalidation.user_ids:
        await app.permission_cache.invalidate_users(invalidation.user_ids)
    if invalidation.cache_keys:
        await app.cache.invalidate(*sorted(invalidation.cache_keys))

    if interface.post_write is not None:
        await _run_hook(interface.post_write, app, snapshot, action)


def _load_visible(app, principal: Principal, db: Session, id: int, interface: EntityInterface):
    repository = interface.repository(db)
    item = repository.get_by_id(id)

    if interface.scoped and not app.data_scope.can_view(db, principal, repository, item):
        raise NotFoundException(detail=f"{interface.model.__name__} with id [{id}] not found")
    return repository, item


async def create_db(app, principal: Principal, db: Session, entity: BaseModel, interface: EntityInterface):
    require(principal, interface.permission_code("create"))

    values = _values(entity)
    if interface.pre_create is not None:
        values = await _run_hook(interface.pre_create, app, principal, db, values)

    item = interface.repository(db).create(values)
    response = interface.get.model_validate(item, from_attributes=True)

    await _after_write(app, interface, _invalidation(app, db, interface, item), response, "create")
    logger.info(f"User {principal.user_id} created {interface.model.__name__} {item.id}")
    return response


async def get_id_db(app, principal: Principal, db: Session, id: int, interface: EntityInterface):
    require(principal, interface.permission_code("get"))

    _, item = _load_visible(app, principal, db, id, interface)
    return interface.get.model_validate(item, from_attributes=True)


async def list_db(app, principal: Principal, db: Session, params: ListQuery, interface: EntityInterface) -> Tuple[List[BaseModel], int]:
    require(principal, interface.permission_code("list"))

    repository = interface.repository(db)
    query = repository.query()

    if interface.scoped:
        query = app.data_scope.apply(db, principal, repository, query)
    if interface.search is not None:
        query = interface.search(query, params)

    items, total = repository.paginate(query, params.page, params.size)
    return [interface.list.model_validate(item, from_attributes=True) for item in items], total


async def update_db(app, principal: Principal, db: Session, id: int, entity: BaseModel, interface: EntityInterface):
    require(principal, interface.permission_code("update"))

    repository, item = _load_visible(app, principal, db, id, interface)
    if interface.scoped and not app.data_scope.can_edit(db, principal, repository, item):
        raise ForbiddenException(f"Not allowed to edit {interface.model.__name__} {id}")

    before = _invalidation(app, db, interface, item)

    values = _values(entity)
    if interface.pre_update is not None:
        values = await _run_hook(interface.pre_update, app, principal, db, item, values)

    item = repository.update(id, values)
    response = interface.get.model_validate(item, from_attributes=True)

    await _after_write(app, interface, before.merge(_invalidation(app, db, interface, item)), response, "update")
    return response


async def delete_db(app, principal: Principal, db: Session, id: int, interface: EntityInterface):
    require(principal, interface.permission_code("delete"))

    repository, item = _load_visible(app, principal, db, id, interface)
    if interface.scoped and not app.data_scope.can_delete(db, principal, repository, item):
        raise ForbiddenException(f"Not allowed to delete {interface.model.__name__} {id}")

    snapshot = interface.get.model_validate(item, from_attributes=True)
    invalidation = _invalidation(app, db, interface, item)

    repository.delete(id)

    await _after_write(app, interface, invalidation, snapshot, "delete")
    logger.info(f"User {principal.user_id} deleted {interface.model.__name__} {id}")
