from typing import List, Tuple
from sqlalchemy.orm import Session

from .base import BaseRepository, ReferencedError
from ..model.role import Menu, RoleMenu


class MenuRepository(BaseRepository[Menu]):

    defaults = {"sort": 0, "type": 0, "status": 1, "display": 1}

    def __init__(self, db: Session):
        super().__init__(db, Menu)

    def perms_for_roles(self, role_ids: List[int]) -> List[Tuple[int, str]]:
        """(role id, raw perms string) for every enabled menu bound to the roles"""
        if not role_ids:
            return []
        return (
            self.db.query(RoleMenu.c.role_id, Menu.perms)
            .join(Menu, Menu.id == RoleMenu.c.menu_id)
            .filter(RoleMenu.c.role_id.in_(role_ids), Menu.status == 1)
            .all()
        )

    def ensure_deletable(self, entity: Menu):
        if self.db.query(Menu.id).filter(Menu.parent_id == entity.id).first() is not None:
            raise ReferencedError("Menu", entity.id, "child menus")
