"""Attribute-level access control.

Modules declare grants, the registry merges them, the scope resolver picks
the scoped resource name for a caller, and the filter projects responses.
"""

from .attributes import ALL, is_allowed
from .filter import filter_attributes
from .grants import Action, GrantTable, ResourceTriplet
from .guard import AccessChecker, Privilege
from .registry import GrantRegistry
from .scope import Caller, Relationship, Resolution, Scope, ScopeResolver

__all__ = [
    "ALL",
    "AccessChecker",
    "Action",
    "Caller",
    "GrantRegistry",
    "GrantTable",
    "Privilege",
    "Relationship",
    "Resolution",
    "ResourceTriplet",
    "Scope",
    "ScopeResolver",
    "filter_attributes",
    "is_allowed",
]
