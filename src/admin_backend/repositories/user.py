"""
User repository for direct database access.
"""

from typing import List, Optional, Set
from uuid import uuid4
from sqlalchemy import or_
from sqlalchemy.orm import Query, Session

from .base import BaseRepository
from ..model.auth import User
from ..model.role import Role, UserRole


class UserRepository(BaseRepository[User]):
    """
    Repository for sys_user rows.

    Users are soft-deleted: ``del_flag`` is set and the row disappears from
    every read except ``find_for_login``.
    """

    defaults = {"status": 1, "del_flag": 0, "is_superuser": False, "is_staff": False, "is_multi_login": False}
    dept_column = "dept_id"
    user_column = "id"
    unique_columns = ("username", "email")

    def __init__(self, db: Session):
        super().__init__(db, User)

    def query(self) -> Query:
        return self.db.query(User).filter(User.del_flag == 0)

    def create(self, values: dict, commit: bool = True) -> User:
        data = dict(values)
        data.setdefault("uuid", str(uuid4()))
        if not data.get("nickname"):
            data["nickname"] = data.get("username")
        data.setdefault("join_time", self.now())
        return super().create(data, commit=commit)

    def find_for_login(self, username: str) -> Optional[User]:
        """Look up a user by handle, including disabled and deleted rows."""
        return self.db.query(User).filter(User.username == username).first()

    def find_by_username(self, username: str) -> Optional[User]:
        return self.query().filter(User.username == username).first()

    def soft_delete(self, user_id: int, commit: bool = True) -> User:
        return self.update(user_id, {"del_flag": 1}, commit=commit)

    def delete(self, entity_id: int, commit: bool = True) -> bool:
        self.soft_delete(entity_id, commit=commit)
        return True

    def touch_login(self, user: User, commit: bool = True):
        user.last_login_time = self.now()
        self._finish(commit)

    def role_ids(self, user_id: int) -> List[int]:
        rows = self.db.query(UserRole.c.role_id).filter(UserRole.c.user_id == user_id).all()
        return [row[0] for row in rows]

    def set_roles(self, user_id: int, roles: List[Role], commit: bool = True) -> User:
        user = self.get_by_id(user_id)
        user.roles = list(roles)
        user.updated_time = self.now()
        self._finish(commit)
        return user

    def ids_by_roles(self, role_ids: List[int]) -> Set[int]:
        """Ids of live users bound to any of ``role_ids``"""
        if not role_ids:
            return set()
        rows = (
            self.db.query(UserRole.c.user_id)
            .join(User, User.id == UserRole.c.user_id)
            .filter(UserRole.c.role_id.in_(role_ids), User.del_flag == 0)
            .distinct()
            .all()
        )
        return {row[0] for row in rows}

    @staticmethod
    def search(query: Query, username: Optional[str] = None, nickname: Optional[str] = None,
               dept_id: Optional[int] = None, status: Optional[int] = None) -> Query:
        if username:
            query = query.filter(User.username.like(f"%{username}%"))
        if nickname:
            query = query.filter(User.nickname.like(f"%{nickname}%"))
        if dept_id is not None:
            query = query.filter(User.dept_id == dept_id)
        if status is not None:
            query = query.filter(User.status == status)
        return query
