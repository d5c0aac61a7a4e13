"""Classification systems and entries.

Both are global resources: there is no project to own them, so access is
decided by the global grant alone.
"""

from typing import Any, Dict, Optional, Protocol

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from bamb.core.access.filter import filter_attributes
from bamb.core.access.grants import Action
from bamb.core.exceptions import BadRequestError, ConflictError, NotFoundError, service_boundary
from bamb.core.logger import get_logger
from bamb.core.query import QueryCompiler, QuerySchema
from bamb.db.models import ClassificationEntry, ClassificationSystem
from bamb.modules.base import DomainService
from bamb.modules.core.grants import CLASSIFICATION_ENTRIES, CLASSIFICATION_SYSTEMS

logger = get_logger(__name__)

CLASSIFICATION_ENTRY_NOT_FOUND = "cannotFindClassificationEntry"
CLASSIFICATION_SYSTEM_NOT_FOUND = "classificationSystemNotFound"

ENTRY_SCHEMA = QuerySchema(
    model=ClassificationEntry,
    properties={"id": "id", "systemId": "system_id", "code": "code", "label": "label"},
    primary_key="id",
)


def entry_to_dict(entry: ClassificationEntry) -> Dict[str, Any]:
    return {"id": entry.id, "systemId": entry.system_id, "code": entry.code, "label": entry.label}


def system_to_dict(system: ClassificationSystem) -> Dict[str, Any]:
    return {
        "id": system.id,
        "name": system.name,
        "description": system.description,
        "entries": [entry_to_dict(e) for e in system.entries],
    }


class CorePeer(Protocol):
    """Methods other modules may call on the core module."""

    def get_classification_entry(self, entry_id: int) -> Dict[str, Any]: ...

    def classification_entry_exists(self, entry_id: int) -> bool: ...


class CorePeerService:
    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def get_classification_entry(self, entry_id: int) -> Dict[str, Any]:
        with self.session_factory() as db:
            entry = db.get(ClassificationEntry, entry_id)
            if entry is None:
                raise NotFoundError(
                    f"Classification entry {entry_id} not found",
                    CLASSIFICATION_ENTRY_NOT_FOUND,
                    {"entryId": entry_id},
                )
            return entry_to_dict(entry)

    def classification_entry_exists(self, entry_id: int) -> bool:
        with self.session_factory() as db:
            return db.get(ClassificationEntry, entry_id) is not None


class CoreService(DomainService):
    @service_boundary("Cannot list classification systems", "cannotListClassificationSystems")
    async def list_classification_systems(self) -> Dict[str, Any]:
        resolution = await self.authorize(Action.READ, CLASSIFICATION_SYSTEMS)
        systems = self.db.query(ClassificationSystem).order_by(ClassificationSystem.id.asc()).all()
        data = filter_attributes([system_to_dict(s) for s in systems], resolution.attributes)
        return {"data": data, "count": len(data), "totalCount": len(data)}

    @service_boundary("Cannot get classification system", "cannotGetClassificationSystem")
    async def get_classification_system(self, system_id: int) -> Dict[str, Any]:
        resolution = await self.authorize(Action.READ, CLASSIFICATION_SYSTEMS)
        system = self.db.get(ClassificationSystem, system_id)
        if system is None:
            raise NotFoundError(
                f"Classification system {system_id} not found",
                CLASSIFICATION_SYSTEM_NOT_FOUND,
                {"systemId": system_id},
            )
        return filter_attributes(system_to_dict(system), resolution.attributes)

    @service_boundary("Cannot create classification system", "cannotCreateClassificationSystem")
    async def create_classification_system(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        resolution = await self.authorize(Action.CREATE, CLASSIFICATION_SYSTEMS)
        if not payload.get("name"):
            raise BadRequestError("Name is required", "invalidClassificationSystem", {"field": "name"})

        system = ClassificationSystem(name=payload["name"], description=payload.get("description"))
        self.db.add(system)
        try:
            await self.run(self.db.commit)
        except IntegrityError as exc:
            self.db.rollback()
            raise ConflictError(
                f"Classification system '{payload['name']}' already exists",
                "classificationSystemAlreadyExists",
                {"name": payload["name"]},
            ) from exc
        self.db.refresh(system)
        return filter_attributes(system_to_dict(system), resolution.attributes)

    @service_boundary("Cannot create classification entry", "cannotCreateClassificationEntry")
    async def create_classification_entry(self, system_id: int, payload: Dict[str, Any]) -> Dict[str, Any]:
        resolution = await self.authorize(Action.CREATE, CLASSIFICATION_ENTRIES)
        if self.db.get(ClassificationSystem, system_id) is None:
            raise NotFoundError(
                f"Classification system {system_id} not found",
                CLASSIFICATION_SYSTEM_NOT_FOUND,
                {"systemId": system_id},
            )
        if not payload.get("code"):
            raise BadRequestError("Code is required", "invalidClassificationEntry", {"field": "code"})

        entry = ClassificationEntry(system_id=system_id, code=payload["code"], label=payload.get("label"))
        self.db.add(entry)
        try:
            await self.run(self.db.commit)
        except IntegrityError as exc:
            self.db.rollback()
            raise ConflictError(
                f"Entry '{payload['code']}' already exists in system {system_id}",
                "classificationEntryAlreadyExists",
                {"systemId": system_id, "code": payload["code"]},
            ) from exc
        self.db.refresh(entry)
        return filter_attributes(entry_to_dict(entry), resolution.attributes)

    @service_boundary("Cannot list classification entries", "cannotListClassificationEntries")
    async def list_classification_entries(
        self,
        system_id: int,
        conditions=None,
        selects=None,
        offset: Optional[int] = None,
        size: Optional[int] = None,
    ) -> Dict[str, Any]:
        resolution = await self.authorize(Action.READ, CLASSIFICATION_ENTRIES)
        compiled = QueryCompiler(ENTRY_SCHEMA).compile(
            conditions, selects, resolution.attributes, scope={"systemId": system_id}
        )
        total = await self.run(compiled.count, self.db, operation="count classification entries")
        entries = await self.run(compiled.fetch, self.db, offset, size, operation="list classification entries")
        data = filter_attributes([entry_to_dict(e) for e in entries], resolution.attributes)
        return {"data": data, "count": len(data), "totalCount": total}
