"""
Row-level data scope.

Each role of the caller contributes department ids or the caller's own
user id; a row is visible when it matches any contribution. Any role with
scope ``all`` lifts the filter, and so does a caller whose every role has
``is_filter_scopes`` switched off. Data rules are layered on top.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Query, Session

from admin_backend.permissions.data_rules import DataRuleEvaluator
from admin_backend.permissions.principal import Principal, ScopeFilter, ScopeMode
from admin_backend.repositories.base import BaseRepository
from admin_backend.repositories.dept import DeptRepository

logger = logging.getLogger(__name__)


class DataScopeEngine:

    def __init__(self, rules: Optional[DataRuleEvaluator] = None):
        self.rules = rules

    def build_filter(self, db: Session, principal: Principal) -> ScopeFilter:
        if not principal.filter_scopes_enabled or principal.view_all:
            return ScopeFilter.unrestricted()

        dept_ids = set()
        user_ids = set()
        departments = DeptRepository(db)

        for scope in principal.scopes:
            if scope.mode == ScopeMode.DEPT:
                if principal.dept_id is not None:
                    dept_ids.add(principal.dept_id)
            elif scope.mode == ScopeMode.DEPT_AND_CHILDREN:
                if principal.dept_id is not None:
                    dept_ids |= departments.descendant_ids(principal.dept_id)
            elif scope.mode == ScopeMode.CUSTOM:
                dept_ids |= set(scope.custom_dept_ids)
            elif scope.mode == ScopeMode.SELF:
                user_ids.add(principal.user_id)

        return ScopeFilter(dept_ids=dept_ids, user_ids=user_ids, fallback_user_id=principal.user_id)

    def apply(self, db: Session, principal: Principal, repository: BaseRepository, query: Query) -> Query:
        """Narrow ``query`` over ``repository``'s table to the rows the caller may read"""
        if not principal.filter_scopes_enabled:
            return query

        scope = self.build_filter(db, principal)
        query = repository.apply_scope(query, scope)

        if self.rules is not None:
            query = self.rules.apply(db, principal, repository.model, query)
        return query

    def can_view(self, db: Session, principal: Principal, repository: BaseRepository, entity) -> bool:
        if not principal.filter_scopes_enabled:
            return True
        model = repository.model
        query = self.apply(db, principal, repository, db.query(model.id).filter(model.id == entity.id))
        return query.first() is not None

    def can_edit(self, db: Session, principal: Principal, repository: BaseRepository, entity) -> bool:
        return self.can_view(db, principal, repository, entity)

    def can_delete(self, db: Session, principal: Principal, repository: BaseRepository, entity) -> bool:
        """
        Stricter than viewing: needs scope ``all``, a ``dept_and_children``
        scope covering the row's department, or a ``self`` scope on the
        caller's own row.
        """
        if not principal.filter_scopes_enabled:
            return True

        dept_id, user_id = repository.scope_values(entity)
        for scope in principal.scopes:
            if scope.mode == ScopeMode.ALL:
                return True
            if scope.mode == ScopeMode.DEPT_AND_CHILDREN and dept_id is not None and principal.dept_id is not None:
                if dept_id in DeptRepository(db).descendant_ids(principal.dept_id):
                    return True
            if scope.mode == ScopeMode.SELF and user_id is not None and user_id == principal.user_id:
                return True
        return False
