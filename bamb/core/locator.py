"""Service locator for calls between domain modules.

Modules never import each other. Each one publishes an implementation
under a symbolic name together with a ``Protocol`` listing the methods its
peers may call, and declares the peers it needs:

    locator.publish("core", CoreService(...), CorePeer)
    locator.require("inventory", ["core"])

After every module has been constructed, ``validate()`` fails loudly on a
missing peer. Calls are always awaited, whether the implementation is
sync or async:

    entry = await locator.call("core", "get_classification_entry", entry_id)
    entry = await locator.peer("core").get_classification_entry(entry_id)
"""

import inspect
from typing import Any, Dict, FrozenSet, Iterable, List, Optional

from bamb.core.concurrency import await_with_deadline, run_with_deadline
from bamb.core.exceptions import PeerNotFoundError
from bamb.core.logger import get_logger

logger = get_logger(__name__)


def interface_methods(interface: type) -> FrozenSet[str]:
    """Public callables declared on an interface class."""
    return frozenset(
        name for name in dir(interface)
        if not name.startswith("_") and callable(getattr(interface, name, None))
    )


class _Binding:
    def __init__(self, implementation: Any, interface: Optional[type], methods: FrozenSet[str]):
        self.implementation = implementation
        self.interface = interface
        self.methods = methods


class PeerHandle:
    """Proxy exposing only a peer's interface methods, all awaitable."""

    def __init__(self, locator: "ServiceLocator", name: str):
        self._locator = locator
        self._name = name

    def __getattr__(self, method: str):
        if method.startswith("_"):
            raise AttributeError(method)

        async def invoke(*args, timeout: Optional[float] = None, **kwargs):
            return await self._locator.call(self._name, method, *args, timeout=timeout, **kwargs)

        invoke.__name__ = method
        return invoke

    def __repr__(self) -> str:
        return f"PeerHandle({self._name!r})"


class ServiceLocator:
    def __init__(self, default_timeout: Optional[float] = None):
        self.default_timeout = default_timeout
        self._bindings: Dict[str, _Binding] = {}
        self._requirements: Dict[str, List[str]] = {}

    def publish(self, name: str, implementation: Any, interface: Optional[type] = None) -> None:
        """Bind ``implementation`` under ``name``, exposing ``interface``'s methods."""
        if interface is None:
            methods = frozenset(
                attr for attr in dir(implementation)
                if not attr.startswith("_") and callable(getattr(implementation, attr, None))
            )
        else:
            methods = interface_methods(interface)
            for method in sorted(methods):
                if not callable(getattr(implementation, method, None)):
                    raise PeerNotFoundError(name, method)

        if name in self._bindings:
            logger.warning("Peer %s published twice; replacing the previous binding", name)
        self._bindings[name] = _Binding(implementation, interface, methods)
        logger.debug("Published peer %s (%s)", name, ", ".join(sorted(methods)))

    def require(self, consumer: str, peers: Iterable[str]) -> None:
        self._requirements.setdefault(consumer, [])
        for peer in peers:
            if peer not in self._requirements[consumer]:
                self._requirements[consumer].append(peer)

    def is_published(self, name: str) -> bool:
        return name in self._bindings

    def validate(self) -> None:
        """Raise ``PeerNotFoundError`` naming every unresolved required peer."""
        missing = sorted({
            peer
            for peers in self._requirements.values()
            for peer in peers
            if peer not in self._bindings
        })
        if missing:
            for consumer, peers in sorted(self._requirements.items()):
                unresolved = [p for p in peers if p not in self._bindings]
                if unresolved:
                    logger.error("Module %s requires unregistered peers: %s", consumer, ", ".join(unresolved))
            raise PeerNotFoundError(", ".join(missing))

    def peer(self, name: str) -> PeerHandle:
        if name not in self._bindings:
            raise PeerNotFoundError(name)
        return PeerHandle(self, name)

    def _resolve(self, peer: str, method: str):
        binding = self._bindings.get(peer)
        if binding is None:
            raise PeerNotFoundError(peer)
        if method not in binding.methods:
            raise PeerNotFoundError(peer, method)
        return getattr(binding.implementation, method)

    async def call(self, peer: str, method: str, *args, timeout: Optional[float] = None, **kwargs) -> Any:
        """Invoke ``method`` on ``peer``.

        Business exceptions raised by the peer propagate unchanged. When a
        deadline applies (``timeout`` or the locator default), expiry raises
        ``DeadlineExceededError``.
        """
        func = self._resolve(peer, method)
        if timeout is None:
            timeout = self.default_timeout
        operation = f"{peer}.{method}"

        if inspect.iscoroutinefunction(func):
            return await await_with_deadline(func(*args, **kwargs), timeout, operation)

        result = await run_with_deadline(func, *args, timeout=timeout, operation=operation, **kwargs)
        if inspect.isawaitable(result):
            return await await_with_deadline(result, timeout, operation)
        return result
