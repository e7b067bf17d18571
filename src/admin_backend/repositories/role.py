from typing import List
from sqlalchemy.orm import Session

from .base import BaseRepository, ReferencedError
from ..model.auth import Dept
from ..model.role import DataScope, Menu, Role, RoleMenu, UserRole


class RoleRepository(BaseRepository[Role]):

    defaults = {"sort": 0, "status": 1, "data_scope": "self", "is_filter_scopes": True}
    unique_columns = ("name", "code")

    def __init__(self, db: Session):
        super().__init__(db, Role)

    def active_for_user(self, user_id: int) -> List[Role]:
        return (
            self.db.query(Role)
            .join(UserRole, UserRole.c.role_id == Role.id)
            .filter(UserRole.c.user_id == user_id, Role.status == 1)
            .order_by(Role.id)
            .all()
        )

    def ids_by_menu(self, menu_id: int) -> List[int]:
        rows = self.db.query(RoleMenu.c.role_id).filter(RoleMenu.c.menu_id == menu_id).all()
        return [row[0] for row in rows]

    def ids_by_scope(self, scope_id: int) -> List[int]:
        scope = self.db.query(DataScope).filter(DataScope.id == scope_id).first()
        return [role.id for role in scope.roles] if scope is not None else []

    def set_menus(self, role_id: int, menus: List[Menu], commit: bool = True) -> Role:
        role = self.get_by_id(role_id)
        role.menus = list(menus)
        role.updated_time = self.now()
        self._finish(commit)
        return role

    def set_scopes(self, role_id: int, scopes: List[DataScope], commit: bool = True) -> Role:
        role = self.get_by_id(role_id)
        role.scopes = list(scopes)
        role.updated_time = self.now()
        self._finish(commit)
        return role

    def set_data_scope(self, role_id: int, mode: str, depts: List[Dept], commit: bool = True) -> Role:
        role = self.get_by_id(role_id)
        role.data_scope = mode
        role.depts = list(depts) if mode == "custom" else []
        role.updated_time = self.now()
        self._finish(commit)
        return role

    def ensure_deletable(self, entity: Role):
        if self.db.query(UserRole.c.user_id).filter(UserRole.c.role_id == entity.id).first() is not None:
            raise ReferencedError("Role", entity.id, "users")
