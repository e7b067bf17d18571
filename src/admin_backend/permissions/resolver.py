"""
Resolution of a user's effective permissions.
"""

import logging
from typing import Optional, Set

from sqlalchemy.orm import Session

from admin_backend.api.exceptions import UnauthorizedException
from admin_backend.permissions.cache import PermissionCache
from admin_backend.permissions.principal import ALL_PERMISSIONS, Principal, RoleScope, ScopeMode
from admin_backend.repositories.menu import MenuRepository
from admin_backend.repositories.role import RoleRepository
from admin_backend.repositories.user import UserRepository

logger = logging.getLogger(__name__)


def split_perms(raw: Optional[str]) -> Set[str]:
    """Comma-split a menu ``perms`` field, dropping blanks"""
    if not raw:
        return set()
    return {token.strip() for token in raw.split(",") if token.strip()}


class PermissionResolver:

    def __init__(self, cache: PermissionCache):
        self.cache = cache

    def compute(self, db: Session, user_id: int) -> Principal:
        """
        Build the permission set of a user straight from the database.

        Superusers get ``*`` and unrestricted data access. Everyone else gets
        the union of the perms of every enabled menu bound to any of their
        enabled roles, plus one scope entry per role.

        Raises:
            UnauthorizedException: If the user no longer exists or is disabled
        """
        user = UserRepository(db).get_by_id_optional(user_id)
        if user is None or not user.is_active:
            raise UnauthorizedException("User is disabled or no longer exists")

        if user.is_superuser:
            return Principal(
                user_id=user.id,
                is_superuser=True,
                dept_id=user.dept_id,
                permission_codes={ALL_PERMISSIONS},
            )

        roles = RoleRepository(db).active_for_user(user.id)
        role_ids = [role.id for role in roles]

        codes: Set[str] = set()
        for _, perms in MenuRepository(db).perms_for_roles(role_ids):
            codes |= split_perms(perms)

        scopes = [
            RoleScope(
                role_id=role.id,
                mode=ScopeMode(role.data_scope),
                custom_dept_ids=sorted(dept.id for dept in role.depts) if role.data_scope == ScopeMode.CUSTOM.value else [],
                filter_scopes=bool(role.is_filter_scopes),
            )
            for role in roles
        ]

        return Principal(
            user_id=user.id,
            dept_id=user.dept_id,
            role_ids=role_ids,
            permission_codes=codes,
            scopes=scopes,
        )

    async def resolve(self, db: Session, user_id: int) -> Principal:
        return await self.cache.get_or_compute(user_id, lambda: self.compute(db, user_id))
