from typing import Literal, Optional
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Query

from admin_backend.interface.base import BaseEntityList, EntityInterface, ListQuery
from admin_backend.model.role import DataRule
from admin_backend.repositories.data_scope import DataRuleRepository


class DataRuleCreate(BaseModel):
    name: str = Field(min_length=1, max_length=64, description="Unique rule name")
    model: str = Field(description="Model the rule filters, e.g. Notice")
    column: str = Field(description="Column compared by the rule")
    combinator: Literal["AND", "OR"] = Field("AND", description="How the rule joins its group")
    operator: str = Field(description="One of == != > >= < <= IN, NOT IN")
    value: str = Field(max_length=255, description="Literal, comma separated for IN and NOT IN")


class DataRuleGet(BaseEntityList):
    id: int
    name: str
    model: str
    column: str
    combinator: str
    operator: str
    value: str

    model_config = ConfigDict(from_attributes=True)


class DataRuleUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=64)
    model: Optional[str] = None
    column: Optional[str] = None
    combinator: Optional[Literal["AND", "OR"]] = None
    operator: Optional[str] = None
    value: Optional[str] = Field(None, max_length=255)


class DataRuleQuery(ListQuery):
    name: Optional[str] = None
    model: Optional[str] = None


def data_rule_search(query: Query, params: DataRuleQuery) -> Query:
    if params.name:
        query = query.filter(DataRule.name.like(f"%{params.name}%"))
    if params.model:
        query = query.filter(DataRule.model == params.model)
    return query


def validate_rule(app, principal, db, values: dict) -> dict:
    app.rules.validate(values["model"], values["column"], values["operator"],
                       values.get("combinator", "AND"), values["value"])
    return values


def validate_rule_update(app, principal, db, rule: DataRule, values: dict) -> dict:
    merged = {
        "model": rule.model,
        "column": rule.column,
        "operator": rule.operator,
        "combinator": rule.combinator,
        "value": rule.value,
    }
    updates = {key: value for key, value in values.items() if value is not None}
    merged.update(updates)
    validate_rule(app, principal, db, merged)
    return updates


class DataRuleInterface(EntityInterface):
    create = DataRuleCreate
    get = DataRuleGet
    list = DataRuleGet
    update = DataRuleUpdate
    query = DataRuleQuery
    search = data_rule_search
    endpoint = "data-rules"
    model = DataRule
    repository = DataRuleRepository
    permission = "sys:data-rule"
    pre_create = validate_rule
    pre_update = validate_rule_update
