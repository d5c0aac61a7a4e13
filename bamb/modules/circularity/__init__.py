from bamb.core.bootstrap import DomainModule
from bamb.modules.base import INVENTORY_PEER, PROJECT_PEER
from bamb.modules.circularity import grants
from bamb.modules.circularity.service import CircularityService


class CircularityModule(DomainModule):
    name = "circularity"
    peers = (INVENTORY_PEER, PROJECT_PEER)

    def build_grants(self):
        return grants.build_grants()


__all__ = ["CircularityModule", "CircularityService"]
