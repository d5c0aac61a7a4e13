"""Resource scope resolution.

Decides which scoped name of a ``ResourceTriplet`` applies to a caller and
returns the attribute set granted under it:

  - the global name first; if any role holds it, ownership is never checked
  - otherwise the caller's relationship to the project: owner -> owned name,
    participant -> shared name
  - otherwise nothing
"""

from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, FrozenSet, Iterable, Optional

from bamb.core.access import attributes as attrs
from bamb.core.access.grants import Action, ResourceTriplet
from bamb.core.exceptions import PermissionDeniedError
from bamb.core.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Caller:
    """Verified token payload ``{user: {id, roles[]}}``."""

    id: int
    roles: FrozenSet[str] = frozenset()

    @classmethod
    def from_payload(cls, payload: dict) -> "Caller":
        user = payload["user"]
        return cls(id=int(user["id"]), roles=frozenset(user.get("roles") or ()))


class Relationship(str, Enum):
    OWNER = "owner"
    PARTICIPANT = "participant"
    NONE = "none"


class Scope(str, Enum):
    GLOBAL = "global"
    OWNED = "owned"
    SHARED = "shared"
    NONE = "none"


# Least privileged last
_SCOPE_RANK = {Scope.GLOBAL: 0, Scope.OWNED: 1, Scope.SHARED: 2, Scope.NONE: 3}

OwnershipPredicate = Callable[[Caller, int], Awaitable[Relationship]]


@dataclass(frozen=True)
class Resolution:
    scope: Scope
    action: Action
    triplet: ResourceTriplet
    resource: Optional[str]
    attributes: FrozenSet[str]

    @property
    def granted(self) -> bool:
        return bool(self.attributes)

    @property
    def message_code(self) -> str:
        return self.triplet.message_code(self.action)

    def require(self) -> "Resolution":
        """Raise ``PermissionDeniedError`` unless something was granted."""
        if not self.granted:
            raise PermissionDeniedError(
                f"Action '{self.action.value}' on '{self.triplet.global_}' is not allowed",
                self.message_code,
                {"action": self.action.value, "resource": self.triplet.global_},
            )
        return self


class ScopeResolver:
    """Resolves effective attributes against a ``GrantRegistry``."""

    def __init__(self, registry):
        self.registry = registry

    def _denied(self, action: Action, triplet: ResourceTriplet) -> Resolution:
        return Resolution(Scope.NONE, action, triplet, None, attrs.EMPTY)

    def resolve_global(self, caller: Caller, action: Action, triplet: ResourceTriplet) -> Resolution:
        action = Action(action)
        granted = self.registry.query(caller.roles, action, triplet.global_)
        if granted:
            return Resolution(Scope.GLOBAL, action, triplet, triplet.global_, granted)
        return self._denied(action, triplet)

    async def resolve(
        self,
        caller: Caller,
        action: Action,
        triplet: ResourceTriplet,
        project_id: Optional[int] = None,
        ownership: Optional[OwnershipPredicate] = None,
    ) -> Resolution:
        resolution = self.resolve_global(caller, action, triplet)
        if resolution.granted or project_id is None or ownership is None:
            return resolution
        action = resolution.action

        relationship = await ownership(caller, project_id)
        if relationship == Relationship.OWNER and triplet.owned:
            scope, resource = Scope.OWNED, triplet.owned
        elif relationship == Relationship.PARTICIPANT and triplet.shared:
            scope, resource = Scope.SHARED, triplet.shared
        else:
            logger.debug(
                "Caller %s has no relationship to project %s for %s",
                caller.id, project_id, triplet.global_,
            )
            return self._denied(action, triplet)

        granted = self.registry.query(caller.roles, action, resource)
        if not granted:
            return self._denied(action, triplet)
        return Resolution(scope, action, triplet, resource, granted)

    async def resolve_many(
        self,
        caller: Caller,
        action: Action,
        triplet: ResourceTriplet,
        project_ids: Iterable[int],
        ownership: Optional[OwnershipPredicate] = None,
    ) -> Resolution:
        """Resolve once for a request touching several projects.

        The result is the least privileged combination: the intersection of
        every project's attributes. One forbidden project forbids the whole
        request.
        """
        resolution = self.resolve_global(caller, action, triplet)
        if resolution.granted:
            return resolution

        resolutions = []
        for project_id in sorted(set(project_ids)):
            current = await self.resolve(caller, action, triplet, project_id, ownership)
            if not current.granted:
                return current
            resolutions.append(current)

        if not resolutions:
            return resolution

        weakest = max(resolutions, key=lambda r: _SCOPE_RANK[r.scope])
        combined = attrs.intersection(*(r.attributes for r in resolutions))
        if not combined:
            return self._denied(weakest.action, triplet)
        return Resolution(weakest.scope, weakest.action, triplet, weakest.resource, combined)
