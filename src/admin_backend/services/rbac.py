"""
Role, menu, user and data-scope bindings.

Every binding call validates all referenced ids up front, replaces the
binding set in a single transaction and, once committed, drops the cached
permission sets of every user whose effective permissions may have moved.
"""

import logging
from typing import Iterable, List, Set

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from admin_backend.api.exceptions import BadRequestException
from admin_backend.model.auth import User
from admin_backend.model.role import DataScope, Role
from admin_backend.permissions.cache import PermissionCache
from admin_backend.permissions.principal import ScopeMode
from admin_backend.repositories import (
    DataRuleRepository,
    DataScopeRepository,
    DeptRepository,
    MenuRepository,
    RepositoryError,
    RoleRepository,
    UserRepository,
)

logger = logging.getLogger(__name__)


class RbacBindingService:

    def __init__(self, db: Session, permission_cache: PermissionCache):
        self.db = db
        self.permission_cache = permission_cache

    def _commit(self):
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise RepositoryError(f"Failed to update bindings: {e}")

    def _users_of_roles(self, role_ids: Iterable[int]) -> Set[int]:
        return UserRepository(self.db).ids_by_roles(list(role_ids))

    async def _invalidate(self, user_ids: Set[int]):
        await self.permission_cache.invalidate_users(user_ids)

    async def set_user_roles(self, user_id: int, role_ids: List[int]) -> User:
        users = UserRepository(self.db)
        users.get_by_id(user_id)
        roles = RoleRepository(self.db).get_many(role_ids)

        user = users.set_roles(user_id, roles, commit=False)
        self._commit()

        await self._invalidate({user_id})
        logger.info(f"User {user_id} now holds roles {[role.id for role in roles]}")
        return user

    async def set_role_menus(self, role_id: int, menu_ids: List[int]) -> Role:
        roles = RoleRepository(self.db)
        roles.get_by_id(role_id)
        menus = MenuRepository(self.db).get_many(menu_ids)

        role = roles.set_menus(role_id, menus, commit=False)
        affected = self._users_of_roles([role_id])
        self._commit()

        await self._invalidate(affected)
        logger.info(f"Role {role_id} now grants menus {[menu.id for menu in menus]}")
        return role

    async def set_role_scopes(self, role_id: int, scope_ids: List[int]) -> Role:
        roles = RoleRepository(self.db)
        roles.get_by_id(role_id)
        scopes = DataScopeRepository(self.db).get_many(scope_ids)

        role = roles.set_scopes(role_id, scopes, commit=False)
        affected = self._users_of_roles([role_id])
        self._commit()

        await self._invalidate(affected)
        logger.info(f"Role {role_id} now uses data scopes {[scope.id for scope in scopes]}")
        return role

    async def set_role_data_scope(self, role_id: int, mode: ScopeMode, dept_ids: List[int]) -> Role:
        roles = RoleRepository(self.db)
        roles.get_by_id(role_id)
        if mode == ScopeMode.CUSTOM:
            if not dept_ids:
                raise BadRequestException("Custom data scope needs at least one department")
            depts = DeptRepository(self.db).get_many(dept_ids)
        else:
            depts = []

        role = roles.set_data_scope(role_id, mode.value, depts, commit=False)
        affected = self._users_of_roles([role_id])
        self._commit()

        await self._invalidate(affected)
        logger.info(f"Role {role_id} data scope set to {mode.value}")
        return role

    async def set_scope_rules(self, scope_id: int, rule_ids: List[int]) -> DataScope:
        scopes = DataScopeRepository(self.db)
        scopes.get_by_id(scope_id)
        rules = DataRuleRepository(self.db).get_many(rule_ids)

        scope = scopes.set_rules(scope_id, rules, commit=False)
        affected = self._users_of_roles(RoleRepository(self.db).ids_by_scope(scope_id))
        self._commit()

        await self._invalidate(affected)
        logger.info(f"Data scope {scope_id} now applies rules {[rule.id for rule in rules]}")
        return scope
