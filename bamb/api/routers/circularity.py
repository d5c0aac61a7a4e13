"""Circularity API endpoints."""

from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, Response, status

from bamb.api.deps import service
from bamb.api.schemas.common import ListParams, ListResponse
from bamb.modules.circularity import CircularityService

router = APIRouter(prefix="/projects/{project_id}/circularities", tags=["circularity"])

get_service = service(CircularityService)


@router.get("", response_model=ListResponse)
async def list_circularities(
    project_id: int,
    params: ListParams = Depends(),
    circularity: CircularityService = Depends(get_service),
):
    return await circularity.list_circularities(
        project_id, params.conditions, params.selects, params.offset, params.size
    )


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_circularity(
    project_id: int,
    payload: Dict[str, Any] = Body(...),
    circularity: CircularityService = Depends(get_service),
):
    """Create a circularity record; the element must belong to the project."""
    return await circularity.create_circularity(project_id, payload)


@router.get("/{uid}")
async def get_circularity(
    project_id: int,
    uid: str,
    circularity: CircularityService = Depends(get_service),
):
    return await circularity.get_circularity(project_id, uid)


@router.patch("/{uid}")
async def update_circularity(
    project_id: int,
    uid: str,
    payload: Dict[str, Any] = Body(...),
    circularity: CircularityService = Depends(get_service),
):
    return await circularity.update_circularity(project_id, uid, payload)


@router.delete("/{uid}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_circularity(
    project_id: int,
    uid: str,
    circularity: CircularityService = Depends(get_service),
):
    await circularity.delete_circularity(project_id, uid)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
