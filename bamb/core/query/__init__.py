"""Condition/selection query language."""

from .compiler import CompiledQuery, QueryCompiler, QuerySchema, Relation, is_uuid
from .conditions import Condition, Operator, Order, Selection, parse_conditions, parse_selections

__all__ = [
    "CompiledQuery",
    "Condition",
    "Operator",
    "Order",
    "QueryCompiler",
    "QuerySchema",
    "Relation",
    "Selection",
    "is_uuid",
    "parse_conditions",
    "parse_selections",
]
