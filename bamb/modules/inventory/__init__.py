from sqlalchemy.orm import sessionmaker

from bamb.core.bootstrap import DomainModule
from bamb.core.locator import ServiceLocator
from bamb.modules.base import CORE_PEER, INVENTORY_PEER, PROJECT_PEER
from bamb.modules.inventory import grants
from bamb.modules.inventory.service import InventoryPeer, InventoryPeerService, InventoryService


class InventoryModule(DomainModule):
    name = INVENTORY_PEER
    peers = (CORE_PEER, PROJECT_PEER)

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def build_grants(self):
        return grants.build_grants()

    def publish(self, locator: ServiceLocator) -> None:
        locator.publish(self.name, InventoryPeerService(self.session_factory), InventoryPeer)


__all__ = ["InventoryModule", "InventoryPeer", "InventoryService"]
