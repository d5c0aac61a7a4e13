"""Plumbing shared by the domain services."""

from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Optional

from sqlalchemy.orm import Session

from bamb.core.access.attributes import covers
from bamb.core.access.grants import Action, ResourceTriplet
from bamb.core.access.registry import GrantRegistry
from bamb.core.access.scope import Caller, Relationship, Resolution, ScopeResolver
from bamb.core.concurrency import run_with_deadline
from bamb.core.locator import ServiceLocator

PROJECT_PEER = "project"
CORE_PEER = "core"
INVENTORY_PEER = "inventory"


@dataclass
class ServiceContext:
    """Process-wide collaborators handed to every request-scoped service."""

    registry: GrantRegistry
    resolver: ScopeResolver
    locator: ServiceLocator
    query_timeout: Optional[float] = None

    async def ownership(self, caller: Caller, project_id: int) -> Relationship:
        relationship = await self.locator.call(PROJECT_PEER, "relationship", caller.id, project_id)
        return Relationship(relationship)


class DomainService:
    """Request-scoped service: one database session, one caller."""

    def __init__(self, db: Session, caller: Caller, context: ServiceContext):
        self.db = db
        self.caller = caller
        self.context = context

    async def authorize(
        self, action: Action, triplet: ResourceTriplet, project_id: Optional[int] = None
    ) -> Resolution:
        """Resolve and require a non-empty attribute set for this request."""
        if project_id is None:
            resolution = self.context.resolver.resolve_global(self.caller, action, triplet)
        else:
            resolution = await self.context.resolver.resolve(
                self.caller, action, triplet, project_id, self.context.ownership
            )
        return resolution.require()

    async def authorize_many(
        self, action: Action, triplet: ResourceTriplet, project_ids: Iterable[int]
    ) -> Resolution:
        resolution = await self.context.resolver.resolve_many(
            self.caller, action, triplet, project_ids, self.context.ownership
        )
        return resolution.require()

    async def run(self, func: Callable, *args, operation: Optional[str] = None, **kwargs) -> Any:
        """Run blocking database work under the configured query deadline."""
        return await run_with_deadline(
            func, *args, timeout=self.context.query_timeout, operation=operation, **kwargs
        )


def writable_fields(
    payload: Dict[str, Any],
    properties: Dict[str, str],
    allowed,
    read_only: Iterable[str] = (),
) -> Dict[str, Any]:
    """Map a wire payload to column values, keeping only granted, writable fields."""
    read_only = set(read_only)
    values = {}
    for name, value in payload.items():
        if name in read_only or name not in properties:
            continue
        if covers(allowed, name):
            values[properties[name]] = value
    return values
