"""Classification system API endpoints."""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from bamb.api.deps import service
from bamb.api.schemas.common import ListParams, ListResponse
from bamb.modules.core import CoreService

router = APIRouter(prefix="/core", tags=["core"])

get_service = service(CoreService)


# Schemas
class ClassificationSystemCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None


class ClassificationEntryCreate(BaseModel):
    code: str = Field(..., min_length=1, max_length=64)
    label: Optional[str] = None


# Endpoints
@router.get("/classificationSystems", response_model=ListResponse)
async def list_classification_systems(core: CoreService = Depends(get_service)):
    return await core.list_classification_systems()


@router.post("/classificationSystems", status_code=status.HTTP_201_CREATED)
async def create_classification_system(
    payload: ClassificationSystemCreate,
    core: CoreService = Depends(get_service),
) -> Dict[str, Any]:
    return await core.create_classification_system(payload.model_dump())


@router.get("/classificationSystems/{system_id}")
async def get_classification_system(system_id: int, core: CoreService = Depends(get_service)):
    return await core.get_classification_system(system_id)


@router.get("/classificationSystems/{system_id}/entries", response_model=ListResponse)
async def list_classification_entries(
    system_id: int,
    params: ListParams = Depends(),
    core: CoreService = Depends(get_service),
):
    """List entries; supports conditions, selects and paging."""
    return await core.list_classification_entries(
        system_id, params.conditions, params.selects, params.offset, params.size
    )


@router.post("/classificationSystems/{system_id}/entries", status_code=status.HTTP_201_CREATED)
async def create_classification_entry(
    system_id: int,
    payload: ClassificationEntryCreate,
    core: CoreService = Depends(get_service),
) -> Dict[str, Any]:
    return await core.create_classification_entry(system_id, payload.model_dump())
