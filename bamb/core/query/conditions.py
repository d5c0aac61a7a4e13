"""Condition and selection wire formats.

Conditions arrive as JSON strings (or already decoded dicts):

    {"field": "reusePotential", "expression": {"value": 0.7, "operator": "GREATER_OR_EQUAL"}}

Selections:

    {"field": "name", "order": "DESC"}

Older clients send ``ordering`` instead of ``order``. Anything malformed is
dropped and logged, never rejected.
"""

import json
from enum import Enum
from typing import Any, Iterable, List, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from bamb.core.logger import get_logger

logger = get_logger(__name__)


class Operator(str, Enum):
    EQUAL = "EQUAL"
    NOT_EQUAL = "NOT_EQUAL"
    GREATER = "GREATER"
    GREATER_OR_EQUAL = "GREATER_OR_EQUAL"
    LOWER = "LOWER"
    LOWER_OR_EQUAL = "LOWER_OR_EQUAL"
    LIKE = "LIKE"
    NOT_LIKE = "NOT_LIKE"
    IN = "IN"
    NOT_IN = "NOT_IN"
    IS_NULL = "IS_NULL"
    IS_NOT_NULL = "IS_NOT_NULL"


class Order(str, Enum):
    ASC = "ASC"
    DESC = "DESC"


class Expression(BaseModel):
    model_config = ConfigDict(extra="ignore")

    operator: Operator
    value: Any = None

    @field_validator("operator", mode="before")
    @classmethod
    def _upper_operator(cls, value):
        return value.upper() if isinstance(value, str) else value


class Condition(BaseModel):
    model_config = ConfigDict(extra="ignore")

    field: str = Field(min_length=1)
    expression: Expression

    @classmethod
    def of(cls, field: str, operator: Union[Operator, str], value: Any = None) -> "Condition":
        return cls(field=field, expression=Expression(operator=operator, value=value))

    @property
    def operator(self) -> Operator:
        return self.expression.operator

    @property
    def value(self) -> Any:
        return self.expression.value


class Selection(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    field: str = Field(min_length=1)
    order: Order = Field(Order.ASC, validation_alias=AliasChoices("order", "ordering"))

    @field_validator("order", mode="before")
    @classmethod
    def _upper_order(cls, value):
        return value.upper() if isinstance(value, str) else value

    @classmethod
    def of(cls, field: str, order: Union[Order, str] = Order.ASC) -> "Selection":
        return cls(field=field, order=order)


RawInput = Union[None, str, dict, Iterable[Union[str, dict]]]


def _decode(raw: RawInput) -> List[Any]:
    """Flatten the accepted input shapes into a list of candidate items."""
    if raw is None:
        return []
    if isinstance(raw, (str, bytes)):
        raw = raw.strip()
        if not raw:
            return []
        try:
            decoded = json.loads(raw)
        except json.JSONDecodeError:
            logger.info("Dropping malformed query expression: %r", raw)
            return []
        return decoded if isinstance(decoded, list) else [decoded]
    if isinstance(raw, dict):
        return [raw]
    return list(raw)


def _parse(raw: RawInput, model: type, kind: str) -> list:
    parsed = []
    for item in _decode(raw):
        if isinstance(item, model):
            parsed.append(item)
            continue
        if isinstance(item, (str, bytes)):
            try:
                item = json.loads(item)
            except json.JSONDecodeError:
                logger.info("Dropping malformed %s: %r", kind, item)
                continue
        if not isinstance(item, dict):
            logger.info("Dropping malformed %s: %r", kind, item)
            continue
        try:
            parsed.append(model.model_validate(item))
        except ValidationError as exc:
            logger.info("Dropping invalid %s %r: %s", kind, item, exc.errors()[0].get("msg"))
    return parsed


def parse_conditions(raw: RawInput) -> List[Condition]:
    return _parse(raw, Condition, "condition")


def parse_selections(raw: RawInput) -> List[Selection]:
    return _parse(raw, Selection, "selection")
