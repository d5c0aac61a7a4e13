"""Inventory elements and element types.

Every read goes resolve -> compile -> execute -> filter; every write
resolves a non-empty attribute set first and ignores payload fields the
caller may not write.
"""

from dataclasses import replace
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Protocol

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from bamb.core.access.attributes import EMPTY
from bamb.core.access.filter import filter_attributes
from bamb.core.access.grants import Action
from bamb.core.access.scope import Scope
from bamb.core.exceptions import BadRequestError, ConflictError, NotFoundError, service_boundary
from bamb.core.logger import get_logger
from bamb.core.query import QueryCompiler, QuerySchema, Relation
from bamb.db.models import (
    Element,
    ElementType,
    HazardAssessment,
    HazardAssessmentStatus,
    ReuseDecision,
    SurfaceDamage,
)
from bamb.modules.base import CORE_PEER, DomainService, writable_fields
from bamb.modules.inventory.grants import ELEMENT_TYPE, INVENTORY

logger = get_logger(__name__)

INVENTORY_ELEMENT_NOT_FOUND = "inventoryElementNotFound"
INVENTORY_ELEMENT_TYPE_NOT_FOUND = "inventoryElementTypeNotFound"
INVALID_INVENTORY_ELEMENT = "invalidInventoryElement"

ELEMENT_PROPERTIES = {
    "uid": "uid",
    "projectId": "project_id",
    "ifcId": "ifc_id",
    "revitId": "revit_id",
    "name": "name",
    "description": "description",
    "reusePotential": "reuse_potential",
    "reuseDecision": "reuse_decision",
    "surfaceDamage": "surface_damage",
    "hazardAssessment": "hazard_assessment",
    "hazardAssessmentStatus": "hazard_assessment_status",
    "elementTypeUid": "element_type_uid",
}

ELEMENT_ENUMS = {
    "reuseDecision": ReuseDecision,
    "surfaceDamage": SurfaceDamage,
    "hazardAssessment": HazardAssessment,
    "hazardAssessmentStatus": HazardAssessmentStatus,
}

ELEMENT_DEPENDENCIES = {
    "elementType": Relation(
        "etyp",
        Element.element_type,
        {"uid": "uid", "name": "name", "ifcType": "ifc_type", "description": "description"},
    ),
    "properties": Relation(
        "prop",
        Element.properties,
        {"uid": "uid", "name": "name", "value": "value", "unit": "unit"},
    ),
    "materials": Relation(
        "mtrl",
        Element.materials,
        {"uid": "uid", "name": "name", "volume": "volume"},
    ),
    "circularities": Relation(
        "circ",
        Element.circularities,
        {
            "uid": "uid",
            "marketValue": "market_value",
            "socialBalance": "social_balance",
            "savingsCO2": "savings_co2",
        },
    ),
}

ELEMENT_SCHEMA = QuerySchema(
    model=Element,
    properties=ELEMENT_PROPERTIES,
    dependencies=ELEMENT_DEPENDENCIES,
    primary_key="uid",
    enums=ELEMENT_ENUMS,
)

ELEMENT_TYPE_PROPERTIES = {
    "uid": "uid",
    "projectId": "project_id",
    "name": "name",
    "ifcType": "ifc_type",
    "description": "description",
    "classificationEntryId": "classification_entry_id",
}

ELEMENT_TYPE_SCHEMA = QuerySchema(model=ElementType, properties=ELEMENT_TYPE_PROPERTIES)

READ_ONLY = ("uid", "projectId")


def _value(item):
    return item.value if isinstance(item, Enum) else item


def element_type_to_dict(element_type: ElementType) -> Dict[str, Any]:
    return {
        "uid": element_type.uid,
        "projectId": element_type.project_id,
        "name": element_type.name,
        "ifcType": element_type.ifc_type,
        "description": element_type.description,
        "classificationEntryId": element_type.classification_entry_id,
    }


def element_to_dict(element: Element) -> Dict[str, Any]:
    return {
        "uid": element.uid,
        "projectId": element.project_id,
        "ifcId": element.ifc_id,
        "revitId": element.revit_id,
        "name": element.name,
        "description": element.description,
        "reusePotential": element.reuse_potential,
        "reuseDecision": _value(element.reuse_decision),
        "surfaceDamage": _value(element.surface_damage),
        "hazardAssessment": _value(element.hazard_assessment),
        "hazardAssessmentStatus": _value(element.hazard_assessment_status),
        "elementTypeUid": element.element_type_uid,
        "elementType": element_type_to_dict(element.element_type) if element.element_type else None,
        "materials": [
            {"uid": m.uid, "name": m.name, "volume": m.volume} for m in element.materials
        ],
        "properties": [
            {"uid": p.uid, "name": p.name, "value": p.value, "unit": p.unit} for p in element.properties
        ],
        "circularities": [
            {
                "uid": c.uid,
                "marketValue": c.market_value,
                "socialBalance": c.social_balance,
                "savingsCO2": c.savings_co2,
            }
            for c in element.circularities
        ],
    }


def _coerce_enums(values: Dict[str, Any]) -> Dict[str, Any]:
    """Turn enum wire values into members; unknown values are a bad request."""
    for name, enum_class in ELEMENT_ENUMS.items():
        column = ELEMENT_PROPERTIES[name]
        if values.get(column) is None:
            continue
        try:
            values[column] = enum_class(values[column])
        except ValueError as exc:
            raise BadRequestError(
                f"Invalid value for {name}: {values[column]!r}",
                INVALID_INVENTORY_ELEMENT,
                {"field": name, "allowed": [m.value for m in enum_class]},
            ) from exc
    return values


class InventoryPeer(Protocol):
    """Methods other modules may call on the inventory module."""

    def get_element(self, uid: str) -> Optional[Dict[str, Any]]: ...

    def element_exists(self, uid: str, project_id: Optional[int] = None) -> bool: ...


class InventoryPeerService:
    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def get_element(self, uid: str) -> Optional[Dict[str, Any]]:
        with self.session_factory() as db:
            element = db.get(Element, uid)
            return element_to_dict(element) if element else None

    def element_exists(self, uid: str, project_id: Optional[int] = None) -> bool:
        with self.session_factory() as db:
            query = db.query(Element.uid).filter(Element.uid == uid)
            if project_id is not None:
                query = query.filter(Element.project_id == project_id)
            return query.first() is not None


class InventoryService(DomainService):
    def _get_element(self, project_id: int, uid: str) -> Element:
        element = self.db.get(Element, uid)
        if element is None or element.project_id != project_id:
            raise NotFoundError(
                f"Inventory element {uid} not found",
                INVENTORY_ELEMENT_NOT_FOUND,
                {"projectId": project_id, "uid": uid},
            )
        return element

    def _check_element_type(self, project_id: int, uid: Optional[str]) -> None:
        if uid is None:
            return
        element_type = self.db.get(ElementType, uid)
        if element_type is None or element_type.project_id != project_id:
            raise NotFoundError(
                f"Inventory element type {uid} not found",
                INVENTORY_ELEMENT_TYPE_NOT_FOUND,
                {"projectId": project_id, "uid": uid},
            )

    async def _commit(self, conflict_data: Dict[str, Any]) -> None:
        try:
            await self.run(self.db.commit)
        except IntegrityError as exc:
            self.db.rollback()
            raise ConflictError(
                "Inventory element already exists",
                "inventoryElementAlreadyExists",
                conflict_data,
            ) from exc

    # ------------------------------------------------------------------
    # Elements
    # ------------------------------------------------------------------

    @service_boundary("Cannot get inventory element", "failedToLookupInventoryElement")
    async def get_element(self, project_id: int, uid: str) -> Dict[str, Any]:
        resolution = await self.authorize(Action.READ, INVENTORY, project_id)
        element = await self.run(self._get_element, project_id, uid)
        return filter_attributes(element_to_dict(element), resolution.attributes)

    @service_boundary("Cannot list inventory elements", "cannotListInventoryElements")
    async def list_elements(
        self,
        project_id: int,
        conditions=None,
        selects=None,
        offset: Optional[int] = None,
        size: Optional[int] = None,
    ) -> Dict[str, Any]:
        resolution = await self.authorize(Action.READ, INVENTORY, project_id)
        compiled = QueryCompiler(ELEMENT_SCHEMA).compile(
            conditions, selects, resolution.attributes, scope={"projectId": project_id}
        )
        total = await self.run(compiled.count, self.db, operation="count inventory elements")
        elements = await self.run(compiled.fetch, self.db, offset, size, operation="list inventory elements")
        data = filter_attributes([element_to_dict(e) for e in elements], resolution.attributes)
        return {"data": data, "count": len(data), "totalCount": total}

    @service_boundary("Cannot list inventory elements", "cannotListInventoryElements")
    async def query_elements(self, project_id: int, body: Dict[str, Any]) -> Dict[str, Any]:
        """``list_elements`` with the query carried in a request body."""
        return await self.list_elements(
            project_id,
            body.get("conditions"),
            body.get("selects") or body.get("selections"),
            body.get("offset"),
            body.get("size"),
        )

    @service_boundary("Cannot count inventory elements", "cannotCountInventoryElements")
    async def count_elements(self, project_id: int, conditions=None) -> Dict[str, int]:
        resolution = await self.authorize(Action.READ, INVENTORY, project_id)
        compiled = QueryCompiler(ELEMENT_SCHEMA).compile(
            conditions, None, resolution.attributes, scope={"projectId": project_id}
        )
        return {"count": await self.run(compiled.count, self.db, operation="count inventory elements")}

    @service_boundary("Cannot create inventory element", "cannotCreateInventoryElement")
    async def create_elements(self, project_id: int, items: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Bulk create; one permission resolution covers the whole request."""
        resolution = await self.authorize(Action.CREATE, INVENTORY, project_id)

        elements = []
        for item in items:
            values = _coerce_enums(
                writable_fields(item, ELEMENT_PROPERTIES, resolution.attributes, READ_ONLY)
            )
            if not values.get("name"):
                raise BadRequestError("Element name is required", INVALID_INVENTORY_ELEMENT, {"field": "name"})
            self._check_element_type(project_id, values.get("element_type_uid"))
            element = Element(project_id=project_id, **values)
            self.db.add(element)
            elements.append(element)

        await self._commit({"projectId": project_id})
        logger.info("User %s created %d elements in project %s", self.caller.id, len(elements), project_id)

        read = await self.context.resolver.resolve(
            self.caller, Action.READ, INVENTORY, project_id, self.context.ownership
        )
        for element in elements:
            self.db.refresh(element)
        return filter_attributes([element_to_dict(e) for e in elements], read.attributes)

    @service_boundary("Cannot update inventory element", "cannotUpdateInventoryElement")
    async def update_element(self, project_id: int, uid: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        resolution = await self.authorize(Action.UPDATE, INVENTORY, project_id)
        element = self._get_element(project_id, uid)

        values = _coerce_enums(
            writable_fields(payload, ELEMENT_PROPERTIES, resolution.attributes, READ_ONLY)
        )
        if "element_type_uid" in values:
            self._check_element_type(project_id, values["element_type_uid"])
        for column, value in values.items():
            setattr(element, column, value)

        await self._commit({"projectId": project_id, "uid": uid})
        self.db.refresh(element)
        read = await self.context.resolver.resolve(
            self.caller, Action.READ, INVENTORY, project_id, self.context.ownership
        )
        return filter_attributes(element_to_dict(element), read.attributes)

    @service_boundary("Cannot delete inventory element", "cannotDeleteInventoryElement")
    async def delete_element(self, project_id: int, uid: str) -> None:
        await self.authorize(Action.DELETE, INVENTORY, project_id)
        element = self._get_element(project_id, uid)
        self.db.delete(element)
        await self.run(self.db.commit)

    @service_boundary("Cannot delete inventory element", "cannotDeleteInventoryElement")
    async def delete_elements(self, uids: Iterable[str]) -> Dict[str, int]:
        """Delete elements that may live in different projects.

        Permission is resolved once for the whole request against every
        project involved; one forbidden project forbids the lot. Unknown
        uids are only reported to callers with global delete access, anyone
        else gets the same denial as for a forbidden project.
        """
        uids = list(dict.fromkeys(uids))
        elements = self.db.query(Element).filter(Element.uid.in_(uids)).all()
        resolution = await self.authorize_many(Action.DELETE, INVENTORY, {e.project_id for e in elements})

        missing = sorted(set(uids) - {e.uid for e in elements})
        if missing:
            if resolution.scope != Scope.GLOBAL:
                replace(resolution, attributes=EMPTY).require()
            raise NotFoundError(
                "Inventory elements not found", INVENTORY_ELEMENT_NOT_FOUND, {"uids": missing}
            )

        for element in elements:
            self.db.delete(element)
        await self.run(self.db.commit)
        return {"count": len(elements)}

    # ------------------------------------------------------------------
    # Element types
    # ------------------------------------------------------------------

    @service_boundary("Cannot create inventory element type", "cannotCreateInventoryElementType")
    async def create_element_type(self, project_id: int, payload: Dict[str, Any]) -> Dict[str, Any]:
        resolution = await self.authorize(Action.CREATE, ELEMENT_TYPE, project_id)
        values = writable_fields(payload, ELEMENT_TYPE_PROPERTIES, resolution.attributes, READ_ONLY)
        if not values.get("name"):
            raise BadRequestError("Element type name is required", "invalidInventoryElementType", {"field": "name"})

        entry_id = values.get("classification_entry_id")
        if entry_id is not None:
            # raises cannotFindClassificationEntry when the entry is unknown
            await self.context.locator.call(CORE_PEER, "get_classification_entry", entry_id)

        element_type = ElementType(project_id=project_id, **values)
        self.db.add(element_type)
        try:
            await self.run(self.db.commit)
        except IntegrityError as exc:
            self.db.rollback()
            raise ConflictError(
                f"Element type '{values['name']}' already exists",
                "inventoryElementTypeNameAlreadyExists",
                {"projectId": project_id, "name": values["name"]},
            ) from exc
        self.db.refresh(element_type)
        return filter_attributes(element_type_to_dict(element_type), resolution.attributes)

    @service_boundary("Cannot list inventory element types", "cannotListInventoryElementTypes")
    async def list_element_types(
        self,
        project_id: int,
        conditions=None,
        selects=None,
        offset: Optional[int] = None,
        size: Optional[int] = None,
    ) -> Dict[str, Any]:
        resolution = await self.authorize(Action.READ, ELEMENT_TYPE, project_id)
        compiled = QueryCompiler(ELEMENT_TYPE_SCHEMA).compile(
            conditions, selects, resolution.attributes, scope={"projectId": project_id}
        )
        total = await self.run(compiled.count, self.db)
        element_types = await self.run(compiled.fetch, self.db, offset, size)
        data = filter_attributes([element_type_to_dict(t) for t in element_types], resolution.attributes)
        return {"data": data, "count": len(data), "totalCount": total}

