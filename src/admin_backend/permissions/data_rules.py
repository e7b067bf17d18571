"""
Configurable row predicates.

A rule reads ``<column> <operator> <value>`` against one model. Rules of the
same combinator are joined with that combinator; the AND group and the OR
group are then joined with AND. Rules are validated when saved, so a rule
that reaches a query always names a real column.
"""

import logging
import operator as op
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence

from sqlalchemy import and_, inspect, or_
from sqlalchemy.orm import Query, Session

from admin_backend.api.exceptions import BadRequestException, InternalServerException
from admin_backend.model.auth import Dept, User
from admin_backend.model.role import DataRule
from admin_backend.model.system import Notice
from admin_backend.permissions.principal import Principal
from admin_backend.repositories.data_scope import DataRuleRepository

logger = logging.getLogger(__name__)

COMBINATORS = ("AND", "OR")

COMPARISONS = {
    "==": op.eq,
    "!=": op.ne,
    ">": op.gt,
    ">=": op.ge,
    "<": op.lt,
    "<=": op.le,
}
SET_OPERATORS = ("IN", "NOT IN")
OPERATORS = tuple(COMPARISONS) + SET_OPERATORS

# models a rule may target, by name
DATA_PERMISSION_MODELS = {
    "User": User,
    "Dept": Dept,
    "Notice": Notice,
}

TRUE_VALUES = ("true", "1", "yes", "on")
FALSE_VALUES = ("false", "0", "no", "off")


class DataRuleError(BadRequestException):
    pass


def _python_type(column) -> type:
    try:
        return column.type.python_type
    except NotImplementedError:
        return str


def coerce_literal(column, raw: str) -> Any:
    """
    Parse one literal according to the column type.

    Raises:
        ValueError: If ``raw`` does not parse
    """
    target = _python_type(column)
    text = raw.strip()

    if target is bool:
        lowered = text.lower()
        if lowered in TRUE_VALUES:
            return True
        if lowered in FALSE_VALUES:
            return False
        raise ValueError(f"not a boolean: {raw!r}")
    if target is int:
        return int(text)
    if target is float:
        return float(text)
    if target is datetime:
        return datetime.fromisoformat(text)
    if target is date:
        return date.fromisoformat(text)
    return text


def coerce_value(column, operator: str, raw: str) -> Any:
    if operator in SET_OPERATORS:
        items = [item for item in raw.split(",") if item.strip()]
        if not items:
            raise ValueError("empty list")
        return [coerce_literal(column, item) for item in items]
    return coerce_literal(column, raw)


class DataRuleEvaluator:

    def __init__(self, models: Optional[Dict[str, type]] = None, column_exclude: Sequence[str] = ()):
        self.models = dict(models if models is not None else DATA_PERMISSION_MODELS)
        self.column_exclude = set(column_exclude)

    def available_models(self) -> List[str]:
        return sorted(self.models)

    def model(self, name: str) -> type:
        if name not in self.models:
            raise DataRuleError(f"Unknown data permission model: {name}")
        return self.models[name]

    def available_columns(self, model_name: str) -> List[Dict[str, str]]:
        columns = inspect(self.model(model_name)).columns
        return [
            {"name": column.key, "type": _python_type(column).__name__}
            for column in columns
            if column.key not in self.column_exclude
        ]

    def validate(self, model_name: str, column_name: str, operator: str, combinator: str, value: str):
        """
        Reject a rule that could not be evaluated.

        Raises:
            DataRuleError: Unknown model, column, operator or combinator, or a
                value that does not parse for the column type
        """
        model = self.model(model_name)
        columns = inspect(model).columns
        if column_name not in columns or column_name in self.column_exclude:
            raise DataRuleError(f"Column {column_name} is not available on {model_name}")
        if operator not in OPERATORS:
            raise DataRuleError(f"Unsupported operator: {operator}")
        if combinator not in COMBINATORS:
            raise DataRuleError(f"Unsupported combinator: {combinator}")
        try:
            coerce_value(columns[column_name], operator, value)
        except ValueError as e:
            raise DataRuleError(f"Value {value!r} does not fit column {column_name}: {e}")

    def predicate(self, model: type, rule: DataRule):
        column = inspect(model).columns[rule.column]
        attribute = getattr(model, column.key)
        try:
            value = coerce_value(column, rule.operator, rule.value)
        except ValueError as e:
            logger.error(f"Data rule {rule.name} cannot be evaluated: {e}")
            raise InternalServerException(f"Data rule {rule.name} is misconfigured")

        if rule.operator == "IN":
            return attribute.in_(value)
        if rule.operator == "NOT IN":
            return attribute.not_in(value)
        return COMPARISONS[rule.operator](attribute, value)

    def combine(self, model: type, rules: Iterable[DataRule]):
        """Single boolean expression for ``rules``, or None when there are none"""
        groups: Dict[str, list] = {combinator: [] for combinator in COMBINATORS}
        for rule in rules:
            groups[rule.combinator].append(self.predicate(model, rule))

        parts = []
        if groups["AND"]:
            parts.append(and_(*groups["AND"]))
        if groups["OR"]:
            parts.append(or_(*groups["OR"]))

        if not parts:
            return None
        return parts[0] if len(parts) == 1 else and_(*parts)

    def apply(self, db: Session, principal: Principal, model: type, query: Query) -> Query:
        name = model.__name__
        if name not in self.models:
            return query
        rules = DataRuleRepository(db).for_roles(principal.role_ids, name)
        expression = self.combine(model, rules)
        if expression is None:
            return query
        logger.debug(f"Applying {len(rules)} data rules to {name} for user {principal.user_id}")
        return query.filter(expression)
