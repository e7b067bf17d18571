"""
Test doubles and seed helpers shared by the test suite.
"""

import asyncio
import fnmatch
import math
import time
from typing import Iterable, Optional
from uuid import uuid4

from admin_backend.auth.passwords import PasswordHasher
from admin_backend.model.auth import Dept, User
from admin_backend.model.role import DataRule, DataScope, Menu, Role
from admin_backend.repositories import (
    DataRuleRepository,
    DataScopeRepository,
    DeptRepository,
    MenuRepository,
    RoleRepository,
    UserRepository,
)

DEFAULT_PASSWORD = "Passw0rd!"


class FakeRedis:
    """In-memory stand-in for ``redis.asyncio.Redis`` with TTL bookkeeping"""

    def __init__(self):
        self._data = {}
        self._expires = {}
        self._call_log = []
        self._offset = 0.0

    def _now(self) -> float:
        return time.time() + self._offset

    def _purge(self, key):
        deadline = self._expires.get(key)
        if deadline is not None and deadline <= self._now():
            self._data.pop(key, None)
            self._expires.pop(key, None)

    def _live_keys(self):
        for key in list(self._data):
            self._purge(key)
        return sorted(self._data)

    def advance(self, seconds: float):
        """Move the clock forward so TTLs run out without sleeping"""
        self._offset += seconds

    async def get(self, key):
        self._call_log.append(('get', key))
        self._purge(key)
        value = self._data.get(key)
        return value if isinstance(value, str) else None

    async def set(self, key, value, ex=None):
        self._call_log.append(('set', key, ex))
        self._data[key] = str(value)
        if ex is not None:
            self._expires[key] = self._now() + ex
        else:
            self._expires.pop(key, None)
        return True

    async def getdel(self, key):
        self._call_log.append(('getdel', key))
        self._purge(key)
        value = self._data.get(key)
        if not isinstance(value, str):
            return None
        del self._data[key]
        self._expires.pop(key, None)
        return value

    async def delete(self, *keys):
        self._call_log.append(('delete', keys))
        removed = 0
        for key in keys:
            self._purge(key)
            if self._data.pop(key, None) is not None:
                removed += 1
            self._expires.pop(key, None)
        return removed

    async def exists(self, *keys):
        self._call_log.append(('exists', keys))
        count = 0
        for key in keys:
            self._purge(key)
            if key in self._data:
                count += 1
        return count

    async def expire(self, key, seconds):
        self._purge(key)
        if key not in self._data:
            return False
        self._expires[key] = self._now() + seconds
        return True

    async def ttl(self, key):
        self._purge(key)
        if key not in self._data:
            return -2
        if key not in self._expires:
            return -1
        return math.ceil(self._expires[key] - self._now())

    async def sadd(self, key, *members):
        self._call_log.append(('sadd', key, members))
        current = self._data.setdefault(key, set())
        before = len(current)
        current.update(members)
        return len(current) - before

    async def srem(self, key, *members):
        self._call_log.append(('srem', key, members))
        current = self._data.get(key, set())
        removed = len([member for member in members if member in current])
        current.difference_update(members)
        return removed

    async def sismember(self, key, member):
        return int(member in self._data.get(key, set()))

    async def smembers(self, key):
        return set(self._data.get(key, set()))

    async def scan(self, cursor=0, match=None, count=None):
        self._call_log.append(('scan', cursor, match, count))
        keys = self._live_keys()
        count = count or 10
        page = keys[cursor:cursor + count]
        next_cursor = cursor + count if cursor + count < len(keys) else 0
        if match is not None:
            page = [key for key in page if fnmatch.fnmatchcase(key, match)]
        return next_cursor, page

    async def aclose(self):
        self._call_log.append(('aclose',))

    def clear_log(self):
        self._call_log = []

    @property
    def call_log(self):
        return self._call_log

    def keys(self, pattern="*"):
        """Synchronous key listing for assertions"""
        return [key for key in self._live_keys() if fnmatch.fnmatchcase(key, pattern)]


class MockCache:
    """Mock aiocache backend recording every call"""

    def __init__(self):
        self._data = {}
        self._call_log = []

    async def get(self, key):
        self._call_log.append(('get', key))
        return self._data.get(key)

    async def set(self, key, value, ttl=None):
        self._call_log.append(('set', key, ttl))
        self._data[key] = value

    async def delete(self, key):
        self._call_log.append(('delete', key))
        return int(self._data.pop(key, None) is not None)

    async def clear(self, namespace=None):
        self._call_log.append(('clear', namespace))
        for key in list(self._data):
            if namespace is None or key.startswith(namespace):
                del self._data[key]

    async def close(self):
        pass

    def clear_log(self):
        self._call_log = []

    @property
    def call_log(self):
        return self._call_log


def make_dept(db, name: str, parent: Optional[Dept] = None) -> Dept:
    return DeptRepository(db).create({"name": name, "parent_id": parent.id if parent else None})


def make_menu(db, title: str, perms: Optional[str] = None, parent: Optional[Menu] = None,
              status: int = 1, type: int = 2) -> Menu:
    return MenuRepository(db).create({
        "title": title,
        "perms": perms,
        "parent_id": parent.id if parent else None,
        "status": status,
        "type": type,
    })


def make_role(db, name: str, menus: Iterable[Menu] = (), data_scope: str = "self",
              depts: Iterable[Dept] = (), is_filter_scopes: bool = True, status: int = 1,
              scopes: Iterable[DataScope] = ()) -> Role:
    roles = RoleRepository(db)
    role = roles.create({
        "name": name,
        "code": name.lower(),
        "data_scope": data_scope,
        "is_filter_scopes": is_filter_scopes,
        "status": status,
    })
    roles.set_menus(role.id, list(menus))
    roles.set_data_scope(role.id, data_scope, list(depts))
    roles.set_scopes(role.id, list(scopes))
    return role


def make_user(db, username: str, password: str = DEFAULT_PASSWORD, roles: Iterable[Role] = (),
              dept: Optional[Dept] = None, is_superuser: bool = False, status: int = 1,
              is_multi_login: bool = True, hasher: Optional[PasswordHasher] = None) -> User:
    hasher = hasher or PasswordHasher(rounds=4)
    users = UserRepository(db)
    user = users.create({
        "username": username,
        "password": hasher.hash(password),
        "dept_id": dept.id if dept else None,
        "is_superuser": is_superuser,
        "status": status,
        "is_multi_login": is_multi_login,
    })
    users.set_roles(user.id, list(roles))
    return user


def make_data_scope(db, name: str, rules: Iterable[DataRule] = ()) -> DataScope:
    scopes = DataScopeRepository(db)
    scope = scopes.create({"name": name})
    scopes.set_rules(scope.id, list(rules))
    return scope


def make_data_rule(db, name: str, model: str, column: str, operator: str, value: str,
                   combinator: str = "AND") -> DataRule:
    return DataRuleRepository(db).create({
        "name": name,
        "model": model,
        "column": column,
        "operator": operator,
        "value": value,
        "combinator": combinator,
    })


def seed_captcha(state, answer: str = "ABCD") -> str:
    captcha_uuid = str(uuid4())
    asyncio.run(state.captcha.store(captcha_uuid, answer))
    return captcha_uuid


def login(client, state, username: str, password: str = DEFAULT_PASSWORD) -> dict:
    captcha_uuid = seed_captcha(state)
    response = client.post("/api/v1/auth/login", json={
        "username": username,
        "password": password,
        "captcha": "abcd",
        "uuid": captcha_uuid,
    })
    assert response.status_code == 200, response.text
    return response.json()["data"]


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}
