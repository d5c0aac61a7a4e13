from sqlalchemy.orm import sessionmaker

from bamb.core.bootstrap import DomainModule
from bamb.core.locator import ServiceLocator
from bamb.modules.base import PROJECT_PEER
from bamb.modules.project import grants
from bamb.modules.project.service import ProjectPeer, ProjectPeerService, ProjectService


class ProjectModule(DomainModule):
    name = PROJECT_PEER

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def build_grants(self):
        return grants.build_grants()

    def publish(self, locator: ServiceLocator) -> None:
        locator.publish(self.name, ProjectPeerService(self.session_factory), ProjectPeer)


__all__ = ["ProjectModule", "ProjectPeer", "ProjectService"]
