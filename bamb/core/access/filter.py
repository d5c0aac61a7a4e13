"""Projection of response data onto a granted attribute set."""

from typing import AbstractSet, Any

from bamb.core.access.attributes import SEPARATOR, covers, is_allowed


def filter_attributes(value: Any, attributes: AbstractSet[str]) -> Any:
    """Return a copy of ``value`` keeping only granted keys.

    Dicts are projected key by key (nested dicts use dotted paths), lists
    item by item, scalars pass through. The input is never mutated and
    ``filter_attributes(filter_attributes(x, a), a) == filter_attributes(x, a)``.

    With an empty attribute set the result is ``{}`` or ``[]``. Callers must
    have raised a permission error before getting here.
    """
    if not attributes:
        if isinstance(value, (list, tuple)):
            return []
        if isinstance(value, dict):
            return {}
        return None
    return _project(value, attributes, "")


def _project(value: Any, attributes: AbstractSet[str], prefix: str) -> Any:
    if isinstance(value, dict):
        result = {}
        for key, item in value.items():
            path = f"{prefix}{SEPARATOR}{key}" if prefix else str(key)
            if covers(attributes, path):
                result[key] = _project(item, attributes, path)
            elif is_allowed(attributes, path) and isinstance(item, (dict, list, tuple)):
                # only some nested paths are granted
                result[key] = _project(item, attributes, path)
        return result
    if isinstance(value, (list, tuple)):
        return [_project(item, attributes, prefix) for item in value]
    return value
