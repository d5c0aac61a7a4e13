"""Route-level privilege checks.

Routes declare the privileges they accept; a caller passes when any role
holds any of them. The union of the granted attributes is handed back so
the response can be filtered with it.
"""

from typing import FrozenSet, Iterable, List, NamedTuple, Union

from bamb.core.access import attributes as attrs
from bamb.core.access.grants import Action
from bamb.core.exceptions import MISSING_PRIVILEGES, PermissionDeniedError


class Privilege(NamedTuple):
    """A privilege is a combination of resource and action."""

    resource: str
    action: Action

    def __str__(self) -> str:
        return f"{self.resource}:{Action(self.action).value}"

    @classmethod
    def from_string(cls, privilege: str) -> "Privilege":
        """Parse a privilege string like 'inventory:read'."""
        parts = privilege.split(":")
        if len(parts) != 2:
            raise ValueError(f"Invalid privilege format: {privilege}")
        return cls(parts[0], Action(parts[1]))


PrivilegeLike = Union[str, Privilege]


def _as_privilege(privilege: PrivilegeLike) -> Privilege:
    return privilege if isinstance(privilege, Privilege) else Privilege.from_string(privilege)


class AccessChecker:
    """Checks a caller's roles against the grant registry."""

    def __init__(self, registry, roles: Iterable[str]):
        self.registry = registry
        self.roles = frozenset(roles)

    def attributes_for(self, privilege: PrivilegeLike) -> FrozenSet[str]:
        privilege = _as_privilege(privilege)
        return self.registry.query(self.roles, privilege.action, privilege.resource)

    def has_privilege(self, privilege: PrivilegeLike) -> bool:
        return bool(self.attributes_for(privilege))

    def has_any_privilege(self, privileges: Iterable[PrivilegeLike]) -> bool:
        return any(self.has_privilege(p) for p in privileges)

    def granted_attributes(self, privileges: Iterable[PrivilegeLike]) -> FrozenSet[str]:
        """Union of the attributes granted through any of ``privileges``."""
        return attrs.union(*(self.attributes_for(p) for p in privileges))

    def require_any(self, privileges: Iterable[PrivilegeLike]) -> FrozenSet[str]:
        privileges = [_as_privilege(p) for p in privileges]
        granted = self.granted_attributes(privileges)
        if not granted:
            raise PermissionDeniedError(
                "Missing privileges",
                MISSING_PRIVILEGES,
                {"required": [str(p) for p in privileges]},
            )
        return granted

    def accessible_resources(self, action: Action) -> List[str]:
        """Resources the caller can perform ``action`` on."""
        return [
            resource for resource in self.registry.resources()
            if self.has_privilege(Privilege(resource, Action(action)))
        ]
