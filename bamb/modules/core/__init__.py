from sqlalchemy.orm import sessionmaker

from bamb.core.bootstrap import DomainModule
from bamb.core.locator import ServiceLocator
from bamb.modules.base import CORE_PEER
from bamb.modules.core import grants
from bamb.modules.core.service import CorePeer, CorePeerService, CoreService


class CoreModule(DomainModule):
    name = CORE_PEER

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def build_grants(self):
        return grants.build_grants()

    def publish(self, locator: ServiceLocator) -> None:
        locator.publish(self.name, CorePeerService(self.session_factory), CorePeer)


__all__ = ["CoreModule", "CorePeer", "CoreService"]
