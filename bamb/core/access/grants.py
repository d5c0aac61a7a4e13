"""Grant declarations built by each domain module.

A module describes its resources and who may do what with them in a
``GrantTable``, without knowing about any other module:

    table = GrantTable("inventory")
    table.declare(INVENTORY, ELEMENT_ATTRIBUTES)
    table.role("ProjectAdministrator").read(INVENTORY.global_, ["*"])
    table.role("BasicUser").read(INVENTORY.owned, ["uid", "name"])

The ``GrantRegistry`` merges these tables at startup.
"""

from enum import Enum
from typing import Dict, FrozenSet, Iterable, Iterator, NamedTuple, Optional, Tuple

from bamb.core.access import attributes as attrs
from bamb.core.logger import get_logger

logger = get_logger(__name__)


class Action(str, Enum):
    """Actions that can be performed on resources."""

    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"


class ResourceTriplet(NamedTuple):
    """The three scoped names of one resource domain.

    ``owned`` is the caller's own project and ``shared`` a project the caller
    participates in. Global-only resources leave both unset.
    """

    global_: str
    owned: Optional[str] = None
    shared: Optional[str] = None

    def names(self) -> Tuple[str, ...]:
        return tuple(name for name in (self.global_, self.owned, self.shared) if name)

    def message_code(self, action: "Action") -> str:
        """``readInventoryNotAllowed`` for ``(read, inventory)``."""
        return f"{Action(action).value}{self.global_[:1].upper()}{self.global_[1:]}NotAllowed"


GrantKey = Tuple[str, Action, str]


class _Grantee:
    """Fluent helper returned by ``GrantTable.role``."""

    def __init__(self, table: "GrantTable", role: str):
        self._table = table
        self._role = role

    def grant(self, action: Action, resource: str, attributes: Iterable[str]) -> "_Grantee":
        self._table.grant(self._role, action, resource, attributes)
        return self

    def create(self, resource: str, attributes: Iterable[str]) -> "_Grantee":
        return self.grant(Action.CREATE, resource, attributes)

    def read(self, resource: str, attributes: Iterable[str]) -> "_Grantee":
        return self.grant(Action.READ, resource, attributes)

    def update(self, resource: str, attributes: Iterable[str]) -> "_Grantee":
        return self.grant(Action.UPDATE, resource, attributes)

    def delete(self, resource: str, attributes: Iterable[str]) -> "_Grantee":
        return self.grant(Action.DELETE, resource, attributes)


class GrantTable:
    """Module-local table of (role, action, resource) -> attributes."""

    def __init__(self, module: str):
        self.module = module
        self._universe: Dict[str, FrozenSet[str]] = {}
        self._grants: Dict[GrantKey, FrozenSet[str]] = {}

    def declare(self, resource, attributes: Iterable[str]) -> "GrantTable":
        """Declare the attribute universe of a resource name or of every name of a triplet."""
        names = resource.names() if isinstance(resource, ResourceTriplet) else (resource,)
        universe = frozenset(attributes)
        for name in names:
            self._universe[name] = self._universe.get(name, frozenset()) | universe
        return self

    def role(self, name: str) -> _Grantee:
        return _Grantee(self, name)

    def grant(self, role: str, action: Action, resource: str, attributes: Iterable[str]) -> None:
        if resource not in self._universe:
            raise ValueError(
                f"Module '{self.module}' grants on undeclared resource '{resource}'"
            )
        action = Action(action)
        attributes = list(attributes)
        universe = self._universe[resource]
        normalized = attrs.normalize(attributes, universe)

        dropped = {
            a.lstrip(attrs.NEGATION) for a in attributes
            if a != attrs.ALL and a.lstrip(attrs.NEGATION).split(attrs.SEPARATOR)[0] not in universe
        }
        if dropped:
            logger.debug(
                "Module %s: dropping unknown attributes %s for %s/%s/%s",
                self.module, sorted(dropped), role, action.value, resource,
            )

        key = (role, action, resource)
        self._grants[key] = attrs.union(self._grants.get(key, attrs.EMPTY), normalized)

    def universe(self) -> Dict[str, FrozenSet[str]]:
        return dict(self._universe)

    def entries(self) -> Iterator[Tuple[GrantKey, FrozenSet[str]]]:
        return iter(self._grants.items())

    def __len__(self) -> int:
        return len(self._grants)

    def __repr__(self) -> str:
        return f"GrantTable({self.module!r}, grants={len(self._grants)})"
