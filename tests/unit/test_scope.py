"""Tests for scope resolution."""

import pytest

from bamb.core.access.grants import Action, GrantTable, ResourceTriplet
from bamb.core.access.registry import GrantRegistry
from bamb.core.access.scope import Caller, Relationship, Scope, ScopeResolver
from bamb.core.exceptions import PermissionDeniedError

INVENTORY = ResourceTriplet("inventory", "ownProjectInventory", "participatingProjectInventory")
ATTRIBUTES = ["uid", "name", "description", "reusePotential", "hazardAssessment"]


@pytest.fixture
def resolver():
    table = GrantTable("inventory").declare(INVENTORY, ATTRIBUTES)
    table.role("BasicUser").read(INVENTORY.owned, ["*"])
    table.role("BasicUser").read(INVENTORY.shared, ["uid", "name"])
    table.role("ProjectManager").read(INVENTORY.global_, ["*", "!hazardAssessment"])

    registry = GrantRegistry()
    registry.submit("inventory", table)
    registry.open()
    return ScopeResolver(registry)


class FakeOwnership:
    """Ownership predicate with a fixed answer per project."""

    def __init__(self, relationships):
        self.relationships = relationships
        self.calls = []

    async def __call__(self, caller, project_id):
        self.calls.append((caller.id, project_id))
        return self.relationships.get(project_id, Relationship.NONE)


BASIC = Caller(id=1, roles=frozenset({"BasicUser"}))
MANAGER = Caller(id=2, roles=frozenset({"ProjectManager", "BasicUser"}))


class TestResolve:

    async def test_global_grant_skips_ownership(self, resolver):
        ownership = FakeOwnership({7: Relationship.OWNER})
        resolution = await resolver.resolve(MANAGER, Action.READ, INVENTORY, 7, ownership)

        assert resolution.scope == Scope.GLOBAL
        assert resolution.attributes == {"*", "!hazardAssessment"}
        assert ownership.calls == []

    async def test_owner_gets_owned_scope(self, resolver):
        resolution = await resolver.resolve(
            BASIC, Action.READ, INVENTORY, 7, FakeOwnership({7: Relationship.OWNER})
        )
        assert resolution.scope == Scope.OWNED
        assert resolution.resource == "ownProjectInventory"
        assert resolution.attributes == {"*"}

    async def test_participant_gets_shared_scope(self, resolver):
        resolution = await resolver.resolve(
            BASIC, Action.READ, INVENTORY, 7, FakeOwnership({7: Relationship.PARTICIPANT})
        )
        assert resolution.scope == Scope.SHARED
        assert resolution.attributes == {"uid", "name"}

    async def test_stranger_is_denied(self, resolver):
        resolution = await resolver.resolve(BASIC, Action.READ, INVENTORY, 9, FakeOwnership({}))
        assert resolution.scope == Scope.NONE
        assert not resolution.granted
        with pytest.raises(PermissionDeniedError) as exc_info:
            resolution.require()
        assert exc_info.value.message_code == "readInventoryNotAllowed"
        assert exc_info.value.status_code == 403

    async def test_owner_without_scoped_grant_is_denied(self, resolver):
        resolution = await resolver.resolve(
            BASIC, Action.DELETE, INVENTORY, 7, FakeOwnership({7: Relationship.OWNER})
        )
        assert not resolution.granted

    async def test_unknown_roles_resolve_to_nothing(self, resolver):
        caller = Caller(id=3, roles=frozenset({"Intruder"}))
        resolution = await resolver.resolve(
            caller, Action.READ, INVENTORY, 7, FakeOwnership({7: Relationship.OWNER})
        )
        assert not resolution.granted

    def test_resolve_global_without_project(self, resolver):
        assert not resolver.resolve_global(BASIC, Action.READ, INVENTORY).granted
        assert resolver.resolve_global(MANAGER, Action.READ, INVENTORY).scope == Scope.GLOBAL


class TestResolveMany:

    async def test_weakest_scope_and_intersection(self, resolver):
        ownership = FakeOwnership({7: Relationship.OWNER, 8: Relationship.PARTICIPANT})
        resolution = await resolver.resolve_many(BASIC, Action.READ, INVENTORY, [8, 7, 7], ownership)

        assert resolution.scope == Scope.SHARED
        assert resolution.attributes == {"uid", "name"}
        assert ownership.calls == [(1, 7), (1, 8)]

    async def test_one_forbidden_project_forbids_all(self, resolver):
        ownership = FakeOwnership({7: Relationship.OWNER})
        resolution = await resolver.resolve_many(BASIC, Action.READ, INVENTORY, [7, 9], ownership)
        assert not resolution.granted

    async def test_global_short_circuits(self, resolver):
        ownership = FakeOwnership({})
        resolution = await resolver.resolve_many(MANAGER, Action.READ, INVENTORY, [7, 9], ownership)
        assert resolution.scope == Scope.GLOBAL
        assert ownership.calls == []


def test_caller_from_payload():
    caller = Caller.from_payload({"user": {"id": "5", "roles": ["BasicUser"]}})
    assert caller == Caller(id=5, roles=frozenset({"BasicUser"}))
