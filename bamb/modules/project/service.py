"""Projects and their participants.

The peer side answers the ownership question the scope resolver asks on
every project-scoped request.
"""

from typing import Any, Dict, List, Optional, Protocol

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from bamb.core.access.filter import filter_attributes
from bamb.core.access.grants import Action
from bamb.core.access.scope import Relationship
from bamb.core.exceptions import BadRequestError, ConflictError, NotFoundError, service_boundary
from bamb.core.logger import get_logger
from bamb.db.models import ParticipantRole, Project, ProjectParticipant
from bamb.modules.base import DomainService, writable_fields
from bamb.modules.project.grants import PARTICIPANT, PROJECT

logger = get_logger(__name__)

PROJECT_NOT_FOUND = "projectNotFound"

UPDATABLE = {"name": "name", "description": "description"}


def project_to_dict(project: Project) -> Dict[str, Any]:
    return {
        "id": project.id,
        "name": project.name,
        "description": project.description,
        "ownerId": project.owner_id,
        "createdAt": project.created_at.isoformat() if project.created_at else None,
        "participants": [participant_to_dict(p) for p in project.participants],
    }


def participant_to_dict(participant: ProjectParticipant) -> Dict[str, Any]:
    return {
        "id": participant.id,
        "projectId": participant.project_id,
        "userId": participant.user_id,
        "role": ParticipantRole(participant.role).value,
    }


def relationship_of(db: Session, user_id: int, project_id: int) -> Relationship:
    """Owner, contributing participant, or nothing.

    Guests have no shared access.
    """
    project = db.get(Project, project_id)
    if project is None:
        return Relationship.NONE
    if project.owner_id == user_id:
        return Relationship.OWNER
    participant = (
        db.query(ProjectParticipant)
        .filter(ProjectParticipant.project_id == project_id, ProjectParticipant.user_id == user_id)
        .first()
    )
    if participant is not None and participant.role == ParticipantRole.CONTRIBUTOR:
        return Relationship.PARTICIPANT
    return Relationship.NONE


class ProjectPeer(Protocol):
    """Methods other modules may call on the project module."""

    def get_project(self, project_id: int) -> Optional[Dict[str, Any]]: ...

    def get_participant(self, project_id: int, user_id: int) -> Optional[Dict[str, Any]]: ...

    def relationship(self, user_id: int, project_id: int) -> Relationship: ...


class ProjectPeerService:
    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def get_project(self, project_id: int) -> Optional[Dict[str, Any]]:
        with self.session_factory() as db:
            project = db.get(Project, project_id)
            return project_to_dict(project) if project else None

    def get_participant(self, project_id: int, user_id: int) -> Optional[Dict[str, Any]]:
        with self.session_factory() as db:
            participant = (
                db.query(ProjectParticipant)
                .filter(ProjectParticipant.project_id == project_id, ProjectParticipant.user_id == user_id)
                .first()
            )
            return participant_to_dict(participant) if participant else None

    def relationship(self, user_id: int, project_id: int) -> Relationship:
        with self.session_factory() as db:
            return relationship_of(db, user_id, project_id)


class ProjectService(DomainService):
    def _get(self, project_id: int) -> Project:
        project = self.db.get(Project, project_id)
        if project is None:
            raise NotFoundError(
                f"Project {project_id} not found", PROJECT_NOT_FOUND, {"projectId": project_id}
            )
        return project

    @service_boundary("Cannot create project", "cannotCreateProject")
    async def create_project(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        resolution = await self.authorize(Action.CREATE, PROJECT)
        name = payload.get("name")
        if not name:
            raise BadRequestError("Project name is required", "invalidProject", {"field": "name"})

        project = Project(name=name, description=payload.get("description"), owner_id=self.caller.id)
        self.db.add(project)
        await self.run(self.db.commit)
        self.db.refresh(project)
        logger.info("User %s created project %s", self.caller.id, project.id)
        return filter_attributes(project_to_dict(project), resolution.attributes)

    @service_boundary("Cannot get project", "cannotGetProject")
    async def get_project(self, project_id: int) -> Dict[str, Any]:
        resolution = await self.authorize(Action.READ, PROJECT, project_id)
        project = await self.run(self._get, project_id)
        return filter_attributes(project_to_dict(project), resolution.attributes)

    @service_boundary("Cannot list projects", "cannotListProjects")
    async def list_projects(self) -> Dict[str, Any]:
        """Every project visible to the caller, each filtered by its own scope."""
        resolver = self.context.resolver
        resolution = resolver.resolve_global(self.caller, Action.READ, PROJECT)
        if resolution.granted:
            projects = self.db.query(Project).order_by(Project.id.asc()).all()
            data = [filter_attributes(project_to_dict(p), resolution.attributes) for p in projects]
            return {"data": data, "count": len(data), "totalCount": len(data)}

        participating = (
            self.db.query(ProjectParticipant.project_id)
            .filter(ProjectParticipant.user_id == self.caller.id)
        )
        projects = (
            self.db.query(Project)
            .filter((Project.owner_id == self.caller.id) | Project.id.in_(participating))
            .order_by(Project.id.asc())
            .all()
        )
        data = []
        for project in projects:
            scoped = await resolver.resolve(
                self.caller, Action.READ, PROJECT, project.id, self.context.ownership
            )
            if scoped.granted:
                data.append(filter_attributes(project_to_dict(project), scoped.attributes))
        return {"data": data, "count": len(data), "totalCount": len(data)}

    @service_boundary("Cannot update project", "cannotUpdateProject")
    async def update_project(self, project_id: int, payload: Dict[str, Any]) -> Dict[str, Any]:
        resolution = await self.authorize(Action.UPDATE, PROJECT, project_id)
        project = self._get(project_id)
        for column, value in writable_fields(payload, UPDATABLE, resolution.attributes).items():
            setattr(project, column, value)
        await self.run(self.db.commit)
        self.db.refresh(project)
        read = await self.authorize(Action.READ, PROJECT, project_id)
        return filter_attributes(project_to_dict(project), read.attributes)

    @service_boundary("Cannot delete project", "cannotDeleteProject")
    async def delete_project(self, project_id: int) -> None:
        await self.authorize(Action.DELETE, PROJECT, project_id)
        project = self._get(project_id)
        self.db.delete(project)
        await self.run(self.db.commit)
        logger.info("User %s deleted project %s", self.caller.id, project_id)

    @service_boundary("Cannot add participant", "cannotAddProjectParticipant")
    async def add_participant(self, project_id: int, payload: Dict[str, Any]) -> Dict[str, Any]:
        resolution = await self.authorize(Action.CREATE, PARTICIPANT, project_id)
        self._get(project_id)
        try:
            role = ParticipantRole(payload.get("role", ParticipantRole.GUEST.value))
            user_id = int(payload["userId"])
        except (KeyError, TypeError, ValueError) as exc:
            raise BadRequestError("Invalid participant", "invalidProjectParticipant") from exc

        participant = ProjectParticipant(project_id=project_id, user_id=user_id, role=role)
        self.db.add(participant)
        try:
            await self.run(self.db.commit)
        except IntegrityError as exc:
            self.db.rollback()
            raise ConflictError(
                "User already participates in this project",
                "projectParticipantAlreadyExists",
                {"projectId": project_id, "userId": user_id},
            ) from exc
        self.db.refresh(participant)
        return filter_attributes(participant_to_dict(participant), resolution.attributes)

    @service_boundary("Cannot list participants", "cannotListProjectParticipants")
    async def list_participants(self, project_id: int) -> List[Dict[str, Any]]:
        resolution = await self.authorize(Action.READ, PARTICIPANT, project_id)
        participants = (
            self.db.query(ProjectParticipant)
            .filter(ProjectParticipant.project_id == project_id)
            .order_by(ProjectParticipant.id.asc())
            .all()
        )
        return filter_attributes([participant_to_dict(p) for p in participants], resolution.attributes)

    @service_boundary("Cannot remove participant", "cannotRemoveProjectParticipant")
    async def remove_participant(self, project_id: int, user_id: int) -> None:
        await self.authorize(Action.DELETE, PARTICIPANT, project_id)
        participant = (
            self.db.query(ProjectParticipant)
            .filter(ProjectParticipant.project_id == project_id, ProjectParticipant.user_id == user_id)
            .first()
        )
        if participant is None:
            raise NotFoundError(
                "Participant not found",
                "projectParticipantNotFound",
                {"projectId": project_id, "userId": user_id},
            )
        self.db.delete(participant)
        await self.run(self.db.commit)
