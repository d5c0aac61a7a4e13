"""Project and participant API endpoints."""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, Field

from bamb.api.deps import service
from bamb.api.schemas.common import ListResponse
from bamb.db.models import ParticipantRole
from bamb.modules.project import ProjectService

router = APIRouter(prefix="/projects", tags=["projects"])

get_service = service(ProjectService)


# Schemas
class ProjectCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None


class ProjectUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None


class ParticipantCreate(BaseModel):
    userId: int
    role: ParticipantRole = ParticipantRole.GUEST


# Endpoints
@router.get("", response_model=ListResponse)
async def list_projects(projects: ProjectService = Depends(get_service)):
    """Projects the caller owns, participates in, or sees globally."""
    return await projects.list_projects()


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_project(
    payload: ProjectCreate,
    projects: ProjectService = Depends(get_service),
) -> Dict[str, Any]:
    return await projects.create_project(payload.model_dump())


@router.get("/{project_id}")
async def get_project(project_id: int, projects: ProjectService = Depends(get_service)):
    return await projects.get_project(project_id)


@router.patch("/{project_id}")
async def update_project(
    project_id: int,
    payload: ProjectUpdate,
    projects: ProjectService = Depends(get_service),
):
    return await projects.update_project(project_id, payload.model_dump(exclude_unset=True))


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_project(project_id: int, projects: ProjectService = Depends(get_service)):
    await projects.delete_project(project_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{project_id}/participants")
async def list_participants(
    project_id: int,
    projects: ProjectService = Depends(get_service),
) -> List[Dict[str, Any]]:
    return await projects.list_participants(project_id)


@router.post("/{project_id}/participants", status_code=status.HTTP_201_CREATED)
async def add_participant(
    project_id: int,
    payload: ParticipantCreate,
    projects: ProjectService = Depends(get_service),
):
    return await projects.add_participant(project_id, payload.model_dump(mode="json"))


@router.delete("/{project_id}/participants/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_participant(
    project_id: int,
    user_id: int,
    projects: ProjectService = Depends(get_service),
):
    await projects.remove_participant(project_id, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
