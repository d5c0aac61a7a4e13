"""Two-phase module startup.

Phase 1 constructs every module's grant table and publishes every peer
interface. No request is served during this phase.

Phase 2 waits for every module to report ready, validates the peer graph
and only then opens the grant registry. ``ModuleHost.ready`` flips after
that, so no request can observe a half-registered policy table.
"""

import asyncio
from typing import Iterable, List, Optional, Sequence

from bamb.core.access.grants import GrantTable
from bamb.core.access.registry import GrantRegistry
from bamb.core.locator import ServiceLocator
from bamb.core.logger import get_logger

logger = get_logger(__name__)


class DomainModule:
    """Base class for a business domain package.

    Subclasses set ``name`` and ``peers`` and override the hooks they need.
    """

    name: str = ""
    peers: Sequence[str] = ()

    def build_grants(self) -> Optional[GrantTable]:
        return None

    def publish(self, locator: ServiceLocator) -> None:
        pass

    async def on_ready(self) -> None:
        pass

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name!r}>"


class ModuleHost:
    def __init__(
        self,
        modules: Iterable[DomainModule],
        registry: GrantRegistry,
        locator: ServiceLocator,
    ):
        self.modules: List[DomainModule] = list(modules)
        self.registry = registry
        self.locator = locator
        self.ready = False

    def collect(self) -> None:
        """Phase 1: gather grant tables and publish peer interfaces."""
        for module in self.modules:
            self.registry.submit(module.name, module.build_grants)
            module.publish(self.locator)
            if module.peers:
                self.locator.require(module.name, module.peers)

    async def start(self) -> None:
        if self.ready:
            return
        self.collect()

        # Phase 2: barrier on every module, then open for traffic
        await asyncio.gather(*(module.on_ready() for module in self.modules))
        self.locator.validate()
        self.registry.open()
        self.ready = True
        logger.info("Modules ready: %s", ", ".join(m.name for m in self.modules))
