"""Tests for grant tables and the grant registry."""

import logging

import pytest

from bamb.core.access.attributes import covers
from bamb.core.access.grants import Action, GrantTable, ResourceTriplet
from bamb.core.access.registry import GrantRegistry
from bamb.core.exceptions import NotFoundError
from bamb.modules.inventory.grants import ELEMENT_ATTRIBUTES, INVENTORY

CIRCULARITY = ResourceTriplet("circularity", "ownProjectCircularity", "participatingProjectCircularity")
CIRCULARITY_ATTRIBUTES = ["uid", "marketValue", "savingsCO2", "socialBalance"]


def circularity_table(module, role, attributes, action=Action.READ):
    table = GrantTable(module)
    table.declare(CIRCULARITY, CIRCULARITY_ATTRIBUTES)
    table.role(role).grant(action, CIRCULARITY.global_, attributes)
    return table


class TestResourceTriplet:

    def test_names_skip_unset_scopes(self):
        assert ResourceTriplet("classificationSystems").names() == ("classificationSystems",)
        assert CIRCULARITY.names() == (
            "circularity", "ownProjectCircularity", "participatingProjectCircularity",
        )

    def test_message_code(self):
        assert ResourceTriplet("inventory").message_code(Action.READ) == "readInventoryNotAllowed"
        assert CIRCULARITY.message_code(Action.DELETE) == "deleteCircularityNotAllowed"


class TestGrantTable:

    def test_undeclared_resource_is_rejected(self):
        table = GrantTable("inventory")
        with pytest.raises(ValueError):
            table.role("BasicUser").read("inventory", ["uid"])

    def test_unknown_attributes_are_dropped(self, caplog):
        caplog.set_level(logging.DEBUG, logger="bamb")
        table = circularity_table("circularity", "BasicUser", ["uid", "price"])
        assert dict(table.entries()) == {("BasicUser", Action.READ, "circularity"): {"uid"}}
        assert "price" in caplog.text

    def test_repeated_grants_are_unioned(self):
        table = circularity_table("circularity", "BasicUser", ["uid"])
        table.role("BasicUser").read(CIRCULARITY.global_, ["marketValue"])
        assert len(table) == 1
        assert dict(table.entries())[("BasicUser", Action.READ, "circularity")] == {"uid", "marketValue"}

    def test_grantee_chains(self):
        table = GrantTable("circularity").declare(CIRCULARITY, CIRCULARITY_ATTRIBUTES)
        resource = CIRCULARITY.owned
        table.role("BasicUser").create(resource, ["*"]).read(resource, ["*"]).delete(resource, ["*"])
        assert len(table) == 3


class TestGrantRegistry:

    def test_grants_from_two_modules_are_merged(self):
        registry = GrantRegistry()
        registry.submit("a", circularity_table("a", "ProjectAdministrator", ["uid", "marketValue"]))
        registry.submit("b", circularity_table("b", "ProjectAdministrator", ["uid", "savingsCO2"]))
        registry.open()

        assert registry.lookup("ProjectAdministrator", Action.READ, "circularity") == {
            "uid", "marketValue", "savingsCO2",
        }

    def test_merge_does_not_depend_on_submission_order(self):
        tables = [
            ("a", ["uid", "marketValue"]),
            ("b", ["*", "!socialBalance"]),
            ("c", ["savingsCO2"]),
        ]
        results = []
        for order in (tables, list(reversed(tables))):
            registry = GrantRegistry()
            for module, attributes in order:
                registry.submit(module, circularity_table(module, "BasicUser", attributes))
            registry.open()
            results.append(registry.lookup("BasicUser", Action.READ, "circularity"))
        assert results[0] == results[1]

    def test_lookup_before_open_denies(self, caplog):
        registry = GrantRegistry()
        registry.submit("a", circularity_table("a", "BasicUser", ["uid"]))
        assert registry.lookup("BasicUser", Action.READ, "circularity") == frozenset()
        assert "before the grant registry opened" in caplog.text

    def test_submit_after_open_fails(self):
        registry = GrantRegistry()
        registry.open()
        with pytest.raises(RuntimeError):
            registry.submit("late", circularity_table("late", "BasicUser", ["uid"]))

    def test_failing_factory_contributes_nothing(self):
        def broken():
            raise KeyError("boom")

        registry = GrantRegistry()
        assert registry.submit("broken", broken) is False
        assert registry.submit("ok", lambda: circularity_table("ok", "BasicUser", ["uid"])) is True
        registry.open()

        assert registry.failed_modules == ["broken"]
        assert registry.lookup("BasicUser", Action.READ, "circularity") == {"uid"}

    def test_module_without_grants(self):
        registry = GrantRegistry()
        assert registry.submit("empty", lambda: None) is True
        assert registry.failed_modules == []

    def test_wrong_type_is_rejected(self):
        registry = GrantRegistry()
        assert registry.submit("bad", lambda: {"BasicUser": ["uid"]}) is False
        assert registry.failed_modules == ["bad"]

    def test_query_unions_roles(self):
        registry = GrantRegistry()
        registry.submit("a", circularity_table("a", "BasicUser", ["uid"]))
        registry.submit("b", circularity_table("b", "ProjectManager", ["savingsCO2"]))
        registry.open()

        assert registry.query({"BasicUser", "ProjectManager"}, Action.READ, "circularity") == {
            "uid", "savingsCO2",
        }
        assert registry.query({"Stranger"}, Action.READ, "circularity") == frozenset()

    def test_query_keeps_nested_grant_under_negated_parent(self):
        registry = GrantRegistry()
        for role, attributes in (("R1", ["*", "!elementType"]), ("R2", ["elementType.name"])):
            table = GrantTable(role).declare(INVENTORY, ELEMENT_ATTRIBUTES)
            table.role(role).read(INVENTORY.global_, attributes)
            registry.submit(role, table)
        registry.open()

        merged = registry.query({"R1", "R2"}, Action.READ, "inventory")
        assert covers(merged, "elementType.name")
        assert not covers(merged, "elementType.uid")

    def test_empty_grants_are_not_kept(self):
        registry = GrantRegistry()
        registry.submit("a", circularity_table("a", "BasicUser", ["nothingKnown"]))
        registry.open()
        assert registry.roles() == []


class TestRegistryIntrospection:

    @pytest.fixture
    def registry(self):
        registry = GrantRegistry()
        registry.submit("a", circularity_table("a", "BasicUser", ["uid", "savingsCO2"]))
        registry.submit("b", circularity_table("b", "ProjectAdministrator", ["*"], Action.DELETE))
        registry.open()
        return registry

    def test_roles_and_resources(self, registry):
        assert registry.roles() == ["BasicUser", "ProjectAdministrator"]
        assert registry.resources() == [
            "circularity", "ownProjectCircularity", "participatingProjectCircularity",
        ]
        assert registry.has_role("BasicUser")
        assert not registry.has_resource("inventory")

    def test_grants_view(self, registry):
        assert registry.grants() == {
            "BasicUser": {"circularity": {"read": ["savingsCO2", "uid"]}},
            "ProjectAdministrator": {"circularity": {"delete": ["*"]}},
        }

    def test_privileges_for_role(self, registry):
        assert registry.privileges_for_role("ProjectAdministrator") == {"circularity": {"delete": ["*"]}}
        with pytest.raises(NotFoundError) as exc_info:
            registry.privileges_for_role("Nobody")
        assert exc_info.value.message_code == "roleNotFound"

    def test_privileges_for_resource(self, registry):
        assert registry.privileges_for_resource("circularity") == {
            "BasicUser": {"read": ["savingsCO2", "uid"]},
            "ProjectAdministrator": {"delete": ["*"]},
        }
        assert registry.privileges_for_resource("ownProjectCircularity") == {}
        with pytest.raises(NotFoundError) as exc_info:
            registry.privileges_for_resource("nothing")
        assert exc_info.value.message_code == "resourceNotFound"

    def test_search_resources(self, registry):
        assert registry.search_resources("own circ") == ["ownProjectCircularity"]
        assert registry.search_resources("CIRCULARITY") == registry.resources()
