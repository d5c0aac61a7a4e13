"""Circularity records attached to inventory elements.

Market value and CO2 math is out of scope here; this service stores the
figures and enforces who may see which of them.
"""

from typing import Any, Dict, Optional

from bamb.core.access.filter import filter_attributes
from bamb.core.access.grants import Action
from bamb.core.exceptions import BadRequestError, NotFoundError, service_boundary
from bamb.core.logger import get_logger
from bamb.core.query import QueryCompiler, QuerySchema
from bamb.db.models import Circularity
from bamb.modules.base import INVENTORY_PEER, DomainService, writable_fields
from bamb.modules.circularity.grants import CIRCULARITY

logger = get_logger(__name__)

CIRCULARITY_NOT_FOUND = "circularityNotFound"

CIRCULARITY_PROPERTIES = {
    "uid": "uid",
    "projectId": "project_id",
    "elementUid": "element_uid",
    "marketValue": "market_value",
    "socialBalance": "social_balance",
    "savingsCO2": "savings_co2",
}

CIRCULARITY_SCHEMA = QuerySchema(model=Circularity, properties=CIRCULARITY_PROPERTIES)


def circularity_to_dict(circularity: Circularity) -> Dict[str, Any]:
    return {
        "uid": circularity.uid,
        "projectId": circularity.project_id,
        "elementUid": circularity.element_uid,
        "marketValue": circularity.market_value,
        "socialBalance": circularity.social_balance,
        "savingsCO2": circularity.savings_co2,
    }


class CircularityService(DomainService):
    def _get(self, project_id: int, uid: str) -> Circularity:
        circularity = self.db.get(Circularity, uid)
        if circularity is None or circularity.project_id != project_id:
            raise NotFoundError(
                f"Circularity {uid} not found", CIRCULARITY_NOT_FOUND, {"projectId": project_id, "uid": uid}
            )
        return circularity

    @service_boundary("Cannot create circularity", "cannotCreateCircularity")
    async def create_circularity(self, project_id: int, payload: Dict[str, Any]) -> Dict[str, Any]:
        resolution = await self.authorize(Action.CREATE, CIRCULARITY, project_id)
        values = writable_fields(payload, CIRCULARITY_PROPERTIES, resolution.attributes, ("uid", "projectId"))

        element_uid = values.get("element_uid")
        if element_uid is not None:
            element = await self.context.locator.call(INVENTORY_PEER, "get_element", element_uid)
            if element is None:
                raise NotFoundError(
                    f"Inventory element {element_uid} not found",
                    "inventoryElementNotFound",
                    {"uid": element_uid},
                )
            if element["projectId"] != project_id:
                raise BadRequestError(
                    "Element belongs to another project",
                    "elementNotInProject",
                    {"uid": element_uid, "projectId": project_id},
                )

        circularity = Circularity(project_id=project_id, **values)
        self.db.add(circularity)
        await self.run(self.db.commit)
        self.db.refresh(circularity)
        return filter_attributes(circularity_to_dict(circularity), resolution.attributes)

    @service_boundary("Cannot get circularity", "cannotGetCircularity")
    async def get_circularity(self, project_id: int, uid: str) -> Dict[str, Any]:
        resolution = await self.authorize(Action.READ, CIRCULARITY, project_id)
        circularity = await self.run(self._get, project_id, uid)
        return filter_attributes(circularity_to_dict(circularity), resolution.attributes)

    @service_boundary("Cannot list circularities", "cannotListCircularities")
    async def list_circularities(
        self,
        project_id: int,
        conditions=None,
        selects=None,
        offset: Optional[int] = None,
        size: Optional[int] = None,
    ) -> Dict[str, Any]:
        resolution = await self.authorize(Action.READ, CIRCULARITY, project_id)
        compiled = QueryCompiler(CIRCULARITY_SCHEMA).compile(
            conditions, selects, resolution.attributes, scope={"projectId": project_id}
        )
        total = await self.run(compiled.count, self.db, operation="count circularities")
        rows = await self.run(compiled.fetch, self.db, offset, size, operation="list circularities")
        data = filter_attributes([circularity_to_dict(c) for c in rows], resolution.attributes)
        return {"data": data, "count": len(data), "totalCount": total}

    @service_boundary("Cannot update circularity", "cannotUpdateCircularity")
    async def update_circularity(self, project_id: int, uid: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        resolution = await self.authorize(Action.UPDATE, CIRCULARITY, project_id)
        circularity = self._get(project_id, uid)
        values = writable_fields(
            payload, CIRCULARITY_PROPERTIES, resolution.attributes, ("uid", "projectId", "elementUid")
        )
        for column, value in values.items():
            setattr(circularity, column, value)
        await self.run(self.db.commit)
        self.db.refresh(circularity)
        read = await self.context.resolver.resolve(
            self.caller, Action.READ, CIRCULARITY, project_id, self.context.ownership
        )
        return filter_attributes(circularity_to_dict(circularity), read.attributes)

    @service_boundary("Cannot delete circularity", "cannotDeleteCircularity")
    async def delete_circularity(self, project_id: int, uid: str) -> None:
        await self.authorize(Action.DELETE, CIRCULARITY, project_id)
        self.db.delete(self._get(project_id, uid))
        await self.run(self.db.commit)
