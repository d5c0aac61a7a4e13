"""Compile client conditions and selections into attribute-bounded queries.

Two gates run before anything is compiled:

  1. fields the resource schema does not know are dropped silently
  2. known fields outside the caller's granted attributes raise
     ``PermissionDeniedError``

The two never mix: an unknown field cannot cause a denial, and a forbidden
field is never silently ignored.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, AbstractSet, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Type

from sqlalchemy import func, select
from sqlalchemy.orm import Session, aliased

from bamb.core.access.attributes import SEPARATOR, covers
from bamb.core.exceptions import PermissionDeniedError
from bamb.core.logger import get_logger
from bamb.core.query.conditions import Condition, Operator, Order, RawInput, Selection, parse_conditions, parse_selections

logger = get_logger(__name__)

QUERY_ATTRIBUTE_NOT_ALLOWED = "queryAttributeNotAllowed"

UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE
)


def is_uuid(value: Any) -> bool:
    return isinstance(value, str) and bool(UUID_PATTERN.match(value))


@dataclass(frozen=True)
class Relation:
    """A relation a query may join through.

    ``attribute`` is the mapped relationship (e.g. ``Element.element_type``),
    ``properties`` maps wire names to attributes of the related model and
    ``key`` names the related attribute compared when the relation itself is
    the condition field.
    """

    alias: str
    attribute: Any
    properties: Mapping[str, str] = field(default_factory=dict)
    key: str = "uid"

    @property
    def target(self) -> type:
        return self.attribute.property.mapper.class_


@dataclass(frozen=True)
class QuerySchema:
    """Queryable shape of one resource."""

    model: type
    properties: Mapping[str, str]
    dependencies: Mapping[str, Relation] = field(default_factory=dict)
    primary_key: str = "uid"
    enums: Mapping[str, Type[Enum]] = field(default_factory=dict)

    def column(self, name: str):
        return getattr(self.model, self.properties[name])

    @property
    def primary_column(self):
        return self.column(self.primary_key)


def _like_pattern(value: Any) -> str:
    return f"%{value}%"


_PredicateBuilder = Callable[[Any, Any], Any]

_PREDICATE_BUILDERS: Dict[Operator, _PredicateBuilder] = {
    Operator.NOT_EQUAL: lambda column, value: column.is_not(None) if value is None else column != value,
    Operator.GREATER: lambda column, value: column > value,
    Operator.GREATER_OR_EQUAL: lambda column, value: column >= value,
    Operator.LOWER: lambda column, value: column < value,
    Operator.LOWER_OR_EQUAL: lambda column, value: column <= value,
    Operator.LIKE: lambda column, value: column.ilike(_like_pattern(value)),
    Operator.NOT_LIKE: lambda column, value: ~column.ilike(_like_pattern(value)),
    Operator.IN: lambda column, value: column.in_(value),
    Operator.NOT_IN: lambda column, value: ~column.in_(value),
    Operator.IS_NULL: lambda column, _value: column.is_(None),
    Operator.IS_NOT_NULL: lambda column, _value: column.is_not(None),
}

_LIST_OPERATORS = {Operator.IN, Operator.NOT_IN}
_VALUELESS_OPERATORS = {Operator.IS_NULL, Operator.IS_NOT_NULL}


@dataclass
class CompiledQuery:
    """Predicates, joins and ordering shared by the count and the fetch."""

    schema: QuerySchema
    predicates: List[Any]
    joins: List[Tuple[Any, Any]]
    order_by: List[Any]

    def _filter(self, stmt):
        if not self.joins:
            return stmt.where(*self.predicates)
        # joins can multiply rows; filter on the matching ids instead
        ids = select(self.schema.primary_column).select_from(self.schema.model)
        for target, onclause in self.joins:
            ids = ids.join(target, onclause)
        ids = ids.where(*self.predicates)
        return stmt.where(self.schema.primary_column.in_(ids))

    def count_statement(self):
        return self._filter(select(func.count()).select_from(self.schema.model))

    def select_statement(self, offset: Optional[int] = None, size: Optional[int] = None):
        stmt = self._filter(select(self.schema.model)).order_by(*self.order_by)
        if offset:
            stmt = stmt.offset(offset)
        if size:
            stmt = stmt.limit(size)
        return stmt

    def count(self, session: Session) -> int:
        return session.execute(self.count_statement()).scalar_one()

    def fetch(self, session: Session, offset: Optional[int] = None, size: Optional[int] = None) -> list:
        return list(session.execute(self.select_statement(offset, size)).scalars().all())


class QueryCompiler:
    def __init__(self, schema: QuerySchema):
        self.schema = schema

    def _resolve(self, name: str) -> Optional[Tuple[Optional[Relation], str]]:
        """Map a wire field to ``(relation, attribute)``; ``None`` when unknown."""
        if name in self.schema.properties:
            return None, self.schema.properties[name]
        relation_name, _, nested = name.partition(SEPARATOR)
        relation = self.schema.dependencies.get(relation_name)
        if relation is None:
            return None
        if not nested:
            return relation, relation.key
        if nested in relation.properties:
            return relation, relation.properties[nested]
        return None

    def _permitted(self, allowed: AbstractSet[str], name: str, relation: Optional[Relation]) -> bool:
        if covers(allowed, name):
            return True
        if relation is not None and SEPARATOR not in name:
            return covers(allowed, f"{name}{SEPARATOR}{relation.key}")
        return False

    def _deny(self, name: str):
        raise PermissionDeniedError(
            f"Querying '{name}' is not allowed",
            QUERY_ATTRIBUTE_NOT_ALLOWED,
            {"field": name},
        )

    def _is_exact(self, name: str, value: Any) -> bool:
        if is_uuid(value):
            return True
        enum = self.schema.enums.get(name)
        return enum is not None and value in {member.value for member in enum}

    def _predicate(self, name: str, column, operator: Operator, value: Any):
        if operator in _LIST_OPERATORS:
            items = list(value) if isinstance(value, (list, tuple, set)) else [value]
            value = [item for item in items if not isinstance(item, (list, dict))]
            if len(value) != len(items):
                logger.info("Dropping nested values from %s condition on %s", operator.value, name)
            return _PREDICATE_BUILDERS[operator](column, value)

        if operator not in _VALUELESS_OPERATORS and isinstance(value, (list, dict)):
            logger.info("Dropping condition on %s: %s does not take %r", name, operator.value, value)
            return None

        if operator == Operator.EQUAL:
            if value is None:
                return column.is_(None)
            if isinstance(value, str) and not self._is_exact(name, value):
                return column.ilike(_like_pattern(value))
            return column == value
        return _PREDICATE_BUILDERS[operator](column, value)

    def compile(
        self,
        conditions: RawInput = None,
        selections: RawInput = None,
        allowed: AbstractSet[str] = frozenset(),
        scope: Optional[Mapping[str, Any]] = None,
    ) -> CompiledQuery:
        """Compile client input bounded by ``allowed``.

        ``scope`` holds trusted equality predicates (such as ``projectId``)
        added by the service; they skip the permission gate.
        """
        parsed_conditions: Sequence[Condition] = parse_conditions(conditions)
        parsed_selections: Sequence[Selection] = parse_selections(selections)

        predicates = []
        joins: Dict[str, Tuple[Any, Any]] = {}

        for name, value in (scope or {}).items():
            if name not in self.schema.properties:
                raise ValueError(f"Unknown scope field '{name}' for {self.schema.model.__name__}")
            predicates.append(self.schema.column(name) == value)

        resolved_conditions = []
        for condition in parsed_conditions:
            resolved = self._resolve(condition.field)
            if resolved is None:
                logger.debug("Ignoring unknown condition field %s", condition.field)
                continue
            resolved_conditions.append((condition, resolved))

        resolved_selections = []
        for selection in parsed_selections:
            resolved = self._resolve(selection.field)
            if resolved is None:
                logger.debug("Ignoring unknown selection field %s", selection.field)
                continue
            resolved_selections.append((selection, resolved))

        # Permission gate runs on the whole request before anything compiles
        for condition, (relation, _) in resolved_conditions:
            if not self._permitted(allowed, condition.field, relation):
                self._deny(condition.field)
        for selection, (relation, _) in resolved_selections:
            if not self._permitted(allowed, selection.field, relation):
                self._deny(selection.field)

        orderable = []
        for selection, (relation, _) in resolved_selections:
            if relation is not None:
                logger.debug("Ignoring selection on relation field %s", selection.field)
                continue
            orderable.append(selection)

        for condition, (relation, attribute) in resolved_conditions:
            if relation is None:
                column = getattr(self.schema.model, attribute)
            else:
                name = condition.field.partition(SEPARATOR)[0]
                if name not in joins:
                    target = aliased(relation.target, name=relation.alias)
                    joins[name] = (target, relation.attribute.of_type(target))
                column = getattr(joins[name][0], attribute)

            predicate = self._predicate(condition.field, column, condition.operator, condition.value)
            if predicate is not None:
                predicates.append(predicate)

        order_by = []
        for selection in orderable:
            column = self.schema.column(selection.field)
            order_by.append(column.desc() if selection.order == Order.DESC else column.asc())
        if not any(s.field == self.schema.primary_key for s in orderable):
            order_by.append(self.schema.primary_column.asc())

        return CompiledQuery(self.schema, predicates, list(joins.values()), order_by)
