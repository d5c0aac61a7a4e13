"""Attribute set algebra.

An attribute set is a ``frozenset`` of attribute names. Besides plain names
it may hold:

  - ``"*"``: every attribute of the resource
  - ``"!name"``: ``name`` is excluded (only meaningful next to ``"*"``)
  - dotted paths such as ``"elementType.name"``: only ``name`` inside the
    nested ``elementType`` object

An empty set means "nothing", i.e. the action is forbidden.
"""

from typing import AbstractSet, FrozenSet, Iterable, Iterator, Optional

ALL = "*"
NEGATION = "!"
SEPARATOR = "."

Attributes = FrozenSet[str]
EMPTY: Attributes = frozenset()


def _prefixes(path: str) -> Iterator[str]:
    """Yield ``a``, ``a.b``, ``a.b.c`` for ``a.b.c``."""
    parts = path.split(SEPARATOR)
    for i in range(1, len(parts) + 1):
        yield SEPARATOR.join(parts[:i])


def is_negation(attribute: str) -> bool:
    return attribute.startswith(NEGATION)


def negated(attributes: AbstractSet[str]) -> FrozenSet[str]:
    """Names excluded through ``!name`` entries."""
    return frozenset(a[len(NEGATION):] for a in attributes if is_negation(a))


def explicit(attributes: AbstractSet[str]) -> FrozenSet[str]:
    """Plain attribute names, without the sentinel and negations."""
    return frozenset(a for a in attributes if a != ALL and not is_negation(a))


def is_all(attributes: AbstractSet[str]) -> bool:
    """True when the set grants every attribute without exclusions."""
    return ALL in attributes and not negated(attributes)


def normalize(attributes: Iterable[str], universe: Optional[AbstractSet[str]] = None) -> Attributes:
    """Build an attribute set, dropping names outside ``universe``.

    Only the root segment of a dotted path is checked against the universe.
    A set holding ``"*"`` keeps the sentinel, its negations and the paths
    nested under a negation.
    """
    result = set()
    for attribute in attributes:
        attribute = attribute.strip()
        if not attribute:
            continue
        if attribute == ALL:
            result.add(ALL)
            continue
        name = attribute[len(NEGATION):] if is_negation(attribute) else attribute
        if universe is not None and name.split(SEPARATOR)[0] not in universe:
            continue
        result.add(attribute)

    if ALL in result:
        return union(frozenset(a for a in result if a == ALL or is_negation(a)), explicit(result))
    return frozenset(a for a in result if not is_negation(a))


def union(*sets: AbstractSet[str]) -> Attributes:
    """Union of attribute sets.

    Plain names are unioned. If any member holds ``"*"`` the result holds
    ``"*"`` and keeps a negation only when every ``"*"`` member negates that
    name and no member grants it explicitly. Explicit paths below a kept
    negation stay in the result.
    """
    sets = [s for s in sets if s]
    if not sets:
        return EMPTY

    names = frozenset().union(*(explicit(s) for s in sets))
    starred = [s for s in sets if ALL in s]
    if not starred:
        return names

    excluded = frozenset.intersection(*(negated(s) for s in starred))
    excluded = frozenset(
        name for name in excluded
        if not any(prefix in names for prefix in _prefixes(name))
    )
    return (
        frozenset({ALL})
        | frozenset(NEGATION + name for name in excluded)
        | _below(names, excluded)
    )


def _below(names: AbstractSet[str], excluded: AbstractSet[str]) -> FrozenSet[str]:
    """Names nested under one of the ``excluded`` paths."""
    return frozenset(
        name for name in names
        if any(prefix in excluded for prefix in _prefixes(name))
    )


def _granted_explicitly(attributes: AbstractSet[str], path: str) -> bool:
    return any(prefix in attributes for prefix in _prefixes(path))


def covers(attributes: AbstractSet[str], path: str) -> bool:
    """Check whether ``path`` and everything below it is granted."""
    if not attributes or not path:
        return False
    if ALL in attributes:
        if _granted_explicitly(explicit(attributes), path):
            return True
        excluded = negated(attributes)
        nested = path + SEPARATOR
        return not any(
            prefix in excluded for prefix in _prefixes(path)
        ) and not any(name.startswith(nested) for name in excluded)
    return _granted_explicitly(attributes, path)


def is_allowed(attributes: AbstractSet[str], path: str) -> bool:
    """Check whether ``path`` (possibly dotted) is visible under ``attributes``.

    A parent key is visible when one of its nested paths is granted, so that
    nested projection can keep the granted children.
    """
    if not attributes or not path:
        return False

    nested = path + SEPARATOR
    names = explicit(attributes)
    if _granted_explicitly(names, path) or any(a.startswith(nested) for a in names):
        return True

    if ALL in attributes:
        excluded = negated(attributes)
        return not any(prefix in excluded for prefix in _prefixes(path))
    return False


def intersection(*sets: AbstractSet[str]) -> Attributes:
    """Least-privilege combination: names visible under every set."""
    if not sets or any(not s for s in sets):
        return EMPTY

    result = frozenset(sets[0])
    for other in sets[1:]:
        result = _intersect_pair(result, frozenset(other))
        if not result:
            return EMPTY
    return result


def _intersect_pair(left: Attributes, right: Attributes) -> Attributes:
    kept = {name for name in explicit(left) if covers(right, name)}
    kept |= {name for name in explicit(right) if covers(left, name)}
    if ALL in left and ALL in right:
        excluded = negated(left) | negated(right)
        return frozenset({ALL}) | frozenset(NEGATION + n for n in excluded) | _below(kept, excluded)
    return frozenset(kept)


def describe(attributes: AbstractSet[str]) -> list:
    """Sorted list form used in JSON/YAML output."""
    return sorted(attributes)
