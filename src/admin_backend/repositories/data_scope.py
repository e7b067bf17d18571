from typing import List
from sqlalchemy.orm import Session

from .base import BaseRepository, ReferencedError
from ..model.role import DataRule, DataScope, DataScopeRule, RoleDataScope


class DataScopeRepository(BaseRepository[DataScope]):

    defaults = {"status": 1}
    unique_columns = ("name",)

    def __init__(self, db: Session):
        super().__init__(db, DataScope)

    def set_rules(self, scope_id: int, rules: List[DataRule], commit: bool = True) -> DataScope:
        scope = self.get_by_id(scope_id)
        scope.rules = list(rules)
        scope.updated_time = self.now()
        self._finish(commit)
        return scope

    def ensure_deletable(self, entity: DataScope):
        if self.db.query(RoleDataScope.c.role_id).filter(RoleDataScope.c.data_scope_id == entity.id).first() is not None:
            raise ReferencedError("DataScope", entity.id, "roles")


class DataRuleRepository(BaseRepository[DataRule]):

    defaults = {"combinator": "AND"}
    unique_columns = ("name",)

    def __init__(self, db: Session):
        super().__init__(db, DataRule)

    def for_roles(self, role_ids: List[int], model_name: str) -> List[DataRule]:
        """Rules targeting ``model_name`` reachable through enabled scopes of the roles"""
        if not role_ids:
            return []
        return (
            self.db.query(DataRule)
            .join(DataScopeRule, DataScopeRule.c.data_rule_id == DataRule.id)
            .join(DataScope, DataScope.id == DataScopeRule.c.data_scope_id)
            .join(RoleDataScope, RoleDataScope.c.data_scope_id == DataScope.id)
            .filter(
                RoleDataScope.c.role_id.in_(role_ids),
                DataScope.status == 1,
                DataRule.model == model_name
            )
            .distinct()
            .order_by(DataRule.id)
            .all()
        )

    def scope_ids(self, rule_id: int) -> List[int]:
        rows = self.db.query(DataScopeRule.c.data_scope_id).filter(DataScopeRule.c.data_rule_id == rule_id).all()
        return [row[0] for row in rows]
