"""Tests for the service locator and deadline helpers."""

import asyncio
import threading
import time
from typing import Protocol

import pytest

from bamb.core.concurrency import run_with_deadline
from bamb.core.exceptions import DeadlineExceededError, NotFoundError, PeerNotFoundError
from bamb.core.locator import ServiceLocator, interface_methods


class CatalogPeer(Protocol):
    def lookup(self, code: str) -> dict: ...

    async def describe(self, code: str) -> str: ...


class Catalog:
    def lookup(self, code):
        if code == "missing":
            raise NotFoundError("No such code", "codeNotFound", {"code": code})
        return {"code": code}

    async def describe(self, code):
        return f"entry {code}"

    def internal(self):
        return "not for peers"


class SlowCatalog(Catalog):
    async def describe(self, code):
        await asyncio.sleep(1)
        return code


@pytest.fixture
def locator():
    locator = ServiceLocator()
    locator.publish("catalog", Catalog(), CatalogPeer)
    return locator


class TestPublish:

    def test_interface_methods(self):
        assert interface_methods(CatalogPeer) == {"lookup", "describe"}

    def test_implementation_must_cover_interface(self):
        class Partial:
            def lookup(self, code):
                return {}

        locator = ServiceLocator()
        with pytest.raises(PeerNotFoundError) as exc_info:
            locator.publish("catalog", Partial(), CatalogPeer)
        assert exc_info.value.message_code == "peerMethodNotFound"

    def test_validate_reports_missing_peers(self, locator):
        locator.require("inventory", ["catalog", "project"])
        locator.require("circularity", ["inventory"])
        with pytest.raises(PeerNotFoundError) as exc_info:
            locator.validate()
        assert exc_info.value.peer == "inventory, project"

    def test_validate_passes_when_resolved(self, locator):
        locator.require("inventory", ["catalog"])
        locator.validate()


class TestCall:

    async def test_sync_method(self, locator):
        assert await locator.call("catalog", "lookup", "C1") == {"code": "C1"}

    async def test_async_method(self, locator):
        assert await locator.call("catalog", "describe", "C1") == "entry C1"

    async def test_peer_handle(self, locator):
        assert await locator.peer("catalog").lookup("C2") == {"code": "C2"}

    async def test_unregistered_peer_fails_fast(self, locator):
        with pytest.raises(PeerNotFoundError) as exc_info:
            await asyncio.wait_for(locator.call("pricing", "quote", 1), timeout=1)
        assert exc_info.value.message_code == "peerNotFound"
        assert exc_info.value.status_code == 500

    async def test_method_outside_interface_is_not_callable(self, locator):
        with pytest.raises(PeerNotFoundError) as exc_info:
            await locator.call("catalog", "internal")
        assert exc_info.value.method == "internal"

    async def test_business_errors_propagate(self, locator):
        with pytest.raises(NotFoundError) as exc_info:
            await locator.call("catalog", "lookup", "missing")
        assert exc_info.value.message_code == "codeNotFound"

    async def test_deadline(self):
        locator = ServiceLocator(default_timeout=0.05)
        locator.publish("catalog", SlowCatalog(), CatalogPeer)
        with pytest.raises(DeadlineExceededError) as exc_info:
            await locator.call("catalog", "describe", "C1")
        assert exc_info.value.status_code == 504
        assert exc_info.value.message_data["operation"] == "catalog.describe"

    async def test_explicit_timeout_overrides_default(self):
        locator = ServiceLocator(default_timeout=0.05)
        locator.publish("catalog", SlowCatalog(), CatalogPeer)
        assert await locator.call("catalog", "describe", "C1", timeout=5) == "C1"


class TestRunWithDeadline:

    async def test_without_timeout_runs_off_the_event_loop(self):
        loop_thread = threading.get_ident()
        assert await run_with_deadline(lambda x: x * 2, 21) == 42
        assert await run_with_deadline(threading.get_ident) != loop_thread

    async def test_blocking_call_times_out(self):
        with pytest.raises(DeadlineExceededError):
            await run_with_deadline(time.sleep, 0.5, timeout=0.05, operation="sleep")
