"""Inventory element API endpoints."""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, Query, Response, status
from pydantic import BaseModel, Field

from bamb.api.deps import service
from bamb.api.schemas.common import CountResponse, ListParams, ListResponse, QueryBody
from bamb.modules.inventory import InventoryService

router = APIRouter(tags=["inventory"])

get_service = service(InventoryService)


# Schemas
class ElementsDelete(BaseModel):
    uids: List[str] = Field(..., min_length=1)


# Endpoints
@router.get("/projects/{project_id}/inventory/elements", response_model=ListResponse)
async def list_elements(
    project_id: int,
    params: ListParams = Depends(),
    inventory: InventoryService = Depends(get_service),
):
    """List elements the caller may see, filtered to the granted attributes."""
    return await inventory.list_elements(
        project_id, params.conditions, params.selects, params.offset, params.size
    )


@router.post("/projects/{project_id}/inventory/elements/query", response_model=ListResponse)
async def query_elements(
    project_id: int,
    body: QueryBody,
    inventory: InventoryService = Depends(get_service),
):
    """Same as the list endpoint with the query carried in the body."""
    return await inventory.query_elements(project_id, body.model_dump())


@router.get("/projects/{project_id}/inventory/elements/count", response_model=CountResponse)
async def count_elements(
    project_id: int,
    conditions: Optional[List[str]] = Query(None),
    inventory: InventoryService = Depends(get_service),
):
    return await inventory.count_elements(project_id, conditions)


@router.post("/projects/{project_id}/inventory/elements", status_code=status.HTTP_201_CREATED)
async def create_elements(
    project_id: int,
    items: List[Dict[str, Any]] = Body(...),
    inventory: InventoryService = Depends(get_service),
) -> List[Dict[str, Any]]:
    """Bulk create elements in one project."""
    return await inventory.create_elements(project_id, items)


@router.get("/projects/{project_id}/inventory/elements/{uid}")
async def get_element(
    project_id: int,
    uid: str,
    inventory: InventoryService = Depends(get_service),
):
    return await inventory.get_element(project_id, uid)


@router.patch("/projects/{project_id}/inventory/elements/{uid}")
async def update_element(
    project_id: int,
    uid: str,
    payload: Dict[str, Any] = Body(...),
    inventory: InventoryService = Depends(get_service),
):
    """Update an element; fields the caller may not write are ignored."""
    return await inventory.update_element(project_id, uid, payload)


@router.delete("/projects/{project_id}/inventory/elements/{uid}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_element(
    project_id: int,
    uid: str,
    inventory: InventoryService = Depends(get_service),
):
    await inventory.delete_element(project_id, uid)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/inventory/elements/delete", response_model=CountResponse)
async def delete_elements(
    payload: ElementsDelete,
    inventory: InventoryService = Depends(get_service),
):
    """Delete elements across projects; all or nothing."""
    return await inventory.delete_elements(payload.uids)


@router.get("/projects/{project_id}/inventory/elementTypes", response_model=ListResponse)
async def list_element_types(
    project_id: int,
    params: ListParams = Depends(),
    inventory: InventoryService = Depends(get_service),
):
    return await inventory.list_element_types(
        project_id, params.conditions, params.selects, params.offset, params.size
    )


@router.post("/projects/{project_id}/inventory/elementTypes", status_code=status.HTTP_201_CREATED)
async def create_element_type(
    project_id: int,
    payload: Dict[str, Any] = Body(...),
    inventory: InventoryService = Depends(get_service),
):
    return await inventory.create_element_type(project_id, payload)
