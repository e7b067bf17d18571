"""
Load departments, menus, roles and users from a YAML document.

Example::

    depts:
      - name: Head office
        children:
          - name: Engineering
    menus:
      - title: System
        children:
          - title: Users
            type: 1
            children:
              - {title: List users, type: 2, perms: "sys:user:list,sys:user:get"}
    roles:
      - {name: Operators, code: operator, data_scope: dept_and_children, menus: [List users]}
    users:
      - {username: alice, password: secret123, dept: Engineering, roles: [operator]}

Rows that already exist (by department name, menu title, role code or
username) are left untouched, so a seed file can be applied repeatedly.
"""

import logging
from typing import Any, Dict, List, Optional

import yaml
from sqlalchemy.orm import Session

from admin_backend.auth.passwords import MAX_PASSWORD_BYTES, PasswordHasher, password_too_long
from admin_backend.model.auth import Dept, User
from admin_backend.model.role import Menu, Role
from admin_backend.repositories import DeptRepository, MenuRepository, RoleRepository, UserRepository

logger = logging.getLogger(__name__)


def read_seed_file(path: str) -> Dict[str, Any]:
    with open(path, "r") as file:
        return yaml.safe_load(file) or {}


class Seeder:

    def __init__(self, db: Session, hasher: PasswordHasher):
        self.db = db
        self.hasher = hasher
        self.created = {"depts": 0, "menus": 0, "roles": 0, "users": 0}

    def run(self, data: Dict[str, Any]) -> Dict[str, int]:
        try:
            self._depts(data.get("depts", []))
            self._menus(data.get("menus", []))
            self._roles(data.get("roles", []))
            self._users(data.get("users", []))
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info(f"Seeded {self.created}")
        return self.created

    def _dept(self, name: str) -> Dept:
        dept = self.db.query(Dept).filter(Dept.name == name).first()
        if dept is None:
            raise ValueError(f"Unknown department in seed file: {name}")
        return dept

    def _menu(self, title: str) -> Menu:
        menu = self.db.query(Menu).filter(Menu.title == title).first()
        if menu is None:
            raise ValueError(f"Unknown menu in seed file: {title}")
        return menu

    def _role(self, code: str) -> Role:
        role = self.db.query(Role).filter(Role.code == code).first()
        if role is None:
            raise ValueError(f"Unknown role in seed file: {code}")
        return role

    def _depts(self, items: List[dict], parent_id: Optional[int] = None):
        repository = DeptRepository(self.db)
        for item in items:
            dept = self.db.query(Dept).filter(Dept.name == item["name"]).first()
            if dept is None:
                values = {k: v for k, v in item.items() if k != "children"}
                dept = repository.create({**values, "parent_id": parent_id}, commit=False)
                self.created["depts"] += 1
            self._depts(item.get("children", []), dept.id)

    def _menus(self, items: List[dict], parent_id: Optional[int] = None):
        repository = MenuRepository(self.db)
        for item in items:
            menu = self.db.query(Menu).filter(Menu.title == item["title"]).first()
            if menu is None:
                values = {k: v for k, v in item.items() if k != "children"}
                menu = repository.create({**values, "parent_id": parent_id}, commit=False)
                self.created["menus"] += 1
            self._menus(item.get("children", []), menu.id)

    def _roles(self, items: List[dict]):
        repository = RoleRepository(self.db)
        for item in items:
            if self.db.query(Role).filter(Role.code == item["code"]).first() is not None:
                continue
            values = {k: v for k, v in item.items() if k not in ("menus", "depts")}
            role = repository.create(values, commit=False)
            role.menus = [self._menu(title) for title in item.get("menus", [])]
            role.depts = [self._dept(name) for name in item.get("depts", [])]
            self.created["roles"] += 1

    def _users(self, items: List[dict]):
        repository = UserRepository(self.db)
        for item in items:
            if self.db.query(User).filter(User.username == item["username"]).first() is not None:
                continue
            values = {k: v for k, v in item.items() if k not in ("dept", "roles", "password")}
            if password_too_long(item["password"]):
                raise ValueError(f"Password of {item['username']} exceeds {MAX_PASSWORD_BYTES} bytes")
            values["password"] = self.hasher.hash(item["password"])
            if item.get("dept"):
                values["dept_id"] = self._dept(item["dept"]).id
            user = repository.create(values, commit=False)
            user.roles = [self._role(code) for code in item.get("roles", [])]
            self.created["users"] += 1
        self.db.flush()
