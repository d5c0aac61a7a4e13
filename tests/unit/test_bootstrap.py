"""Tests for two-phase module startup."""

from typing import Protocol

import pytest

from bamb.core.access.grants import Action, GrantTable, ResourceTriplet
from bamb.core.access.registry import GrantRegistry
from bamb.core.bootstrap import DomainModule, ModuleHost
from bamb.core.exceptions import PeerNotFoundError
from bamb.core.locator import ServiceLocator

PRICING = ResourceTriplet("pricing")


class PricingPeer(Protocol):
    def quote(self, uid: str) -> float: ...


class Pricing:
    def quote(self, uid):
        return 10.0


class PricingModule(DomainModule):
    name = "pricing"

    def __init__(self, events):
        self.events = events

    def build_grants(self):
        self.events.append("pricing:grants")
        table = GrantTable("pricing").declare(PRICING, ["uid", "price"])
        table.role("BasicUser").read(PRICING.global_, ["uid"])
        return table

    def publish(self, locator):
        self.events.append("pricing:publish")
        locator.publish(self.name, Pricing(), PricingPeer)


class ReportModule(DomainModule):
    name = "report"
    peers = ("pricing",)

    def __init__(self, events, registry):
        self.events = events
        self.registry = registry

    async def on_ready(self):
        # grants must still be invisible while modules are starting
        self.events.append(("report:ready", self.registry.is_open))


class BrokenModule(DomainModule):
    name = "broken"

    def build_grants(self):
        raise RuntimeError("cannot build grants")


@pytest.fixture
def registry():
    return GrantRegistry()


@pytest.fixture
def locator():
    return ServiceLocator()


async def test_registry_opens_after_every_module_is_ready(registry, locator):
    events = []
    host = ModuleHost([ReportModule(events, registry), PricingModule(events)], registry, locator)

    assert not host.ready
    await host.start()

    assert host.ready
    assert registry.is_open
    assert events == ["pricing:grants", "pricing:publish", ("report:ready", False)]
    assert registry.lookup("BasicUser", Action.READ, "pricing") == {"uid"}
    assert await locator.call("pricing", "quote", "x") == 10.0


async def test_missing_peer_aborts_startup(registry, locator):
    host = ModuleHost([ReportModule([], registry)], registry, locator)
    with pytest.raises(PeerNotFoundError) as exc_info:
        await host.start()

    assert exc_info.value.peer == "pricing"
    assert not host.ready
    assert not registry.is_open


async def test_failing_module_grants_nothing(registry, locator):
    host = ModuleHost([BrokenModule(), PricingModule([])], registry, locator)
    await host.start()

    assert host.ready
    assert registry.failed_modules == ["broken"]
    assert registry.roles() == ["BasicUser"]


async def test_start_is_idempotent(registry, locator):
    events = []
    host = ModuleHost([PricingModule(events)], registry, locator)
    await host.start()
    await host.start()
    assert events == ["pricing:grants", "pricing:publish"]
