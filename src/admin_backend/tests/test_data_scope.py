"""
Tests for row-level data scope over notices and departments.
"""

from types import SimpleNamespace

import pytest

from admin_backend.permissions.cache import PermissionCache
from admin_backend.permissions.data_rules import DataRuleEvaluator
from admin_backend.permissions.data_scope import DataScopeEngine
from admin_backend.permissions.principal import Principal, RoleScope, ScopeFilter, ScopeMode
from admin_backend.permissions.resolver import PermissionResolver
from admin_backend.redis_cache import CacheLayer
from admin_backend.repositories import DeptRepository, NoticeRepository
from admin_backend.tests.fixtures import MockCache, make_dept, make_role, make_user


def make_notice(db, title, user=None, dept=None):
    return NoticeRepository(db).create({
        "title": title,
        "content": "body",
        "user_id": user.id if user else None,
        "dept_id": dept.id if dept else None,
    })


@pytest.fixture
def scope_engine():
    return DataScopeEngine(DataRuleEvaluator())


@pytest.fixture
def resolver():
    return PermissionResolver(PermissionCache(CacheLayer(MockCache())))


@pytest.fixture
def org(db):
    head = make_dept(db, "Head")
    branch = make_dept(db, "Branch", head)
    team = make_dept(db, "Team", branch)
    other = make_dept(db, "Other")
    author = make_user(db, "author", dept=other)

    notices = {
        "head": make_notice(db, "head", author, head),
        "branch": make_notice(db, "branch", author, branch),
        "team": make_notice(db, "team", author, team),
        "other": make_notice(db, "other", author, other),
    }
    return SimpleNamespace(head=head, branch=branch, team=team, other=other, author=author, notices=notices)


def caller(db, org, roles=(), is_superuser=False):
    """User in the Branch department owning one notice without a department"""
    user = make_user(db, "caller", dept=org.branch, roles=list(roles), is_superuser=is_superuser)
    org.notices["mine"] = make_notice(db, "mine", user)
    return user


def visible(db, scope_engine, principal):
    repository = NoticeRepository(db)
    query = scope_engine.apply(db, principal, repository, repository.query())
    return sorted(notice.title for notice in query.all())


ALL_TITLES = ["branch", "head", "mine", "other", "team"]


class TestScopeModes:

    def test_self(self, db, scope_engine, resolver, org):
        user = caller(db, org, [make_role(db, "Own", data_scope="self")])
        assert visible(db, scope_engine, resolver.compute(db, user.id)) == ["mine"]

    def test_dept(self, db, scope_engine, resolver, org):
        user = caller(db, org, [make_role(db, "Dept", data_scope="dept")])
        assert visible(db, scope_engine, resolver.compute(db, user.id)) == ["branch"]

    def test_dept_and_children(self, db, scope_engine, resolver, org):
        user = caller(db, org, [make_role(db, "Tree", data_scope="dept_and_children")])
        assert visible(db, scope_engine, resolver.compute(db, user.id)) == ["branch", "team"]

    def test_custom(self, db, scope_engine, resolver, org):
        role = make_role(db, "Custom", data_scope="custom", depts=[org.head, org.other])
        user = caller(db, org, [role])
        assert visible(db, scope_engine, resolver.compute(db, user.id)) == ["head", "other"]

    def test_all(self, db, scope_engine, resolver, org):
        user = caller(db, org, [make_role(db, "Everything", data_scope="all")])
        assert visible(db, scope_engine, resolver.compute(db, user.id)) == ALL_TITLES

    def test_roles_are_unioned(self, db, scope_engine, resolver, org):
        roles = [
            make_role(db, "Own", data_scope="self"),
            make_role(db, "Custom", data_scope="custom", depts=[org.other]),
        ]
        user = caller(db, org, roles)
        assert visible(db, scope_engine, resolver.compute(db, user.id)) == ["mine", "other"]

    def test_all_wins_over_narrower_roles(self, db, scope_engine, resolver, org):
        roles = [make_role(db, "Own", data_scope="self"), make_role(db, "Everything", data_scope="all")]
        user = caller(db, org, roles)
        assert visible(db, scope_engine, resolver.compute(db, user.id)) == ALL_TITLES

    def test_no_roles_falls_back_to_own_rows(self, db, scope_engine, resolver, org):
        user = caller(db, org)
        assert visible(db, scope_engine, resolver.compute(db, user.id)) == ["mine"]

    def test_filtering_switched_off(self, db, scope_engine, resolver, org):
        user = caller(db, org, [make_role(db, "Open", data_scope="self", is_filter_scopes=False)])
        assert visible(db, scope_engine, resolver.compute(db, user.id)) == ALL_TITLES

    def test_superuser_sees_everything(self, db, scope_engine, resolver, org):
        user = caller(db, org, is_superuser=True)
        assert visible(db, scope_engine, resolver.compute(db, user.id)) == ALL_TITLES


class TestDeptTable:

    def test_self_scope_sees_no_departments(self, db, scope_engine, resolver, org):
        user = caller(db, org, [make_role(db, "Own", data_scope="self")])
        repository = DeptRepository(db)

        rows = scope_engine.apply(db, resolver.compute(db, user.id), repository, repository.query()).all()

        assert rows == []

    def test_dept_and_children_sees_subtree(self, db, scope_engine, resolver, org):
        user = caller(db, org, [make_role(db, "Tree", data_scope="dept_and_children")])
        repository = DeptRepository(db)

        rows = scope_engine.apply(db, resolver.compute(db, user.id), repository, repository.query()).all()

        assert sorted(dept.name for dept in rows) == ["Branch", "Team"]


class TestEntityChecks:

    def test_dept_scope_can_view_but_not_delete(self, db, scope_engine, resolver, org):
        user = caller(db, org, [make_role(db, "Dept", data_scope="dept")])
        principal = resolver.compute(db, user.id)
        repository = NoticeRepository(db)

        assert scope_engine.can_view(db, principal, repository, org.notices["branch"]) is True
        assert scope_engine.can_edit(db, principal, repository, org.notices["branch"]) is True
        assert scope_engine.can_delete(db, principal, repository, org.notices["branch"]) is False
        assert scope_engine.can_view(db, principal, repository, org.notices["head"]) is False

    def test_dept_and_children_can_delete_in_subtree(self, db, scope_engine, resolver, org):
        user = caller(db, org, [make_role(db, "Tree", data_scope="dept_and_children")])
        principal = resolver.compute(db, user.id)
        repository = NoticeRepository(db)

        assert scope_engine.can_delete(db, principal, repository, org.notices["team"]) is True
        assert scope_engine.can_delete(db, principal, repository, org.notices["head"]) is False

    def test_self_scope_can_delete_own_rows(self, db, scope_engine, resolver, org):
        user = caller(db, org, [make_role(db, "Own", data_scope="self")])
        principal = resolver.compute(db, user.id)
        repository = NoticeRepository(db)

        assert scope_engine.can_delete(db, principal, repository, org.notices["mine"]) is True
        assert scope_engine.can_delete(db, principal, repository, org.notices["branch"]) is False

    def test_unfiltered_caller_can_do_anything(self, db, scope_engine, resolver, org):
        user = caller(db, org, is_superuser=True)
        principal = resolver.compute(db, user.id)
        repository = NoticeRepository(db)

        assert scope_engine.can_delete(db, principal, repository, org.notices["head"]) is True


class TestScopeFilter:

    def test_admits(self):
        scope = ScopeFilter(dept_ids={1}, user_ids={7}, fallback_user_id=7)

        assert scope.admits(1, None) is True
        assert scope.admits(2, 7) is True
        assert scope.admits(2, 8) is False

    def test_empty_filter_admits_only_fallback_user(self):
        scope = ScopeFilter(fallback_user_id=7)

        assert scope.admits(1, 7) is True
        assert scope.admits(1, 8) is False
        assert scope.admits(1, None) is False

    def test_build_filter_without_dept(self, db, scope_engine):
        principal = Principal(user_id=7, scopes=[RoleScope(role_id=1, mode=ScopeMode.DEPT)])

        scope = scope_engine.build_filter(db, principal)

        assert scope.is_empty
        assert scope.fallback_user_id == 7
