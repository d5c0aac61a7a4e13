"""Access-control introspection API endpoints."""

from typing import Any, Dict, FrozenSet, List, Optional

import yaml
from fastapi import APIRouter, Body, Depends, Query
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, ValidationError

from bamb.api.deps import AccessGuard, get_caller, get_context
from bamb.core.access.grants import Action
from bamb.core.access.guard import AccessChecker, Privilege
from bamb.core.access.scope import Caller
from bamb.core.exceptions import BadRequestError
from bamb.modules.base import ServiceContext

router = APIRouter(prefix="/accessControl", tags=["accessControl"])

ACCESS_CONTROL_RESOURCE_FAILED = "getAccessControlResourceFailed"


# Schemas
class AccessQuery(BaseModel):
    accessType: Action
    resourceName: str


class AccessAnswer(BaseModel):
    accessType: Action
    resourceName: str
    hasAccess: bool
    filteringAttributes: Optional[List[str]] = None


def _answer(checker: AccessChecker, query: AccessQuery) -> AccessAnswer:
    attributes = checker.attributes_for(Privilege(query.resourceName, query.accessType))
    if not attributes:
        return AccessAnswer(accessType=query.accessType, resourceName=query.resourceName, hasAccess=False)
    return AccessAnswer(
        accessType=query.accessType,
        resourceName=query.resourceName,
        hasAccess=True,
        filteringAttributes=sorted(attributes),
    )


def _render(data: Any, fmt: str):
    if fmt == "yaml":
        return PlainTextResponse(yaml.safe_dump(data, sort_keys=True), media_type="application/x-yaml")
    return data


def _format(fmt: str) -> str:
    if fmt not in ("json", "yaml"):
        raise BadRequestError(f"Unsupported format: {fmt}", "unsupportedFormat", {"format": fmt})
    return fmt


# Endpoints
@router.get("", response_model=AccessAnswer, response_model_exclude_none=True)
async def query_access(
    accessType: str = Query(..., description="create, read, update or delete"),
    resourceName: str = Query(..., min_length=1),
    caller: Caller = Depends(get_caller),
    context: ServiceContext = Depends(get_context),
    _: FrozenSet[str] = Depends(AccessGuard("acdb:read")),
):
    """Whether the caller may perform one action on one resource."""
    try:
        query = AccessQuery(accessType=accessType, resourceName=resourceName)
    except ValidationError as exc:
        raise BadRequestError(
            "Invalid access control query",
            ACCESS_CONTROL_RESOURCE_FAILED,
            {"accessType": accessType, "resourceName": resourceName},
        ) from exc
    return _answer(AccessChecker(context.registry, caller.roles), query)


@router.post("", response_model=List[AccessAnswer], response_model_exclude_none=True)
async def query_access_many(
    queries: List[Dict[str, Any]] = Body(...),
    caller: Caller = Depends(get_caller),
    context: ServiceContext = Depends(get_context),
    _: FrozenSet[str] = Depends(AccessGuard("acdb:read")),
):
    """Answer several access queries at once; one bad item fails the request."""
    parsed = []
    for index, item in enumerate(queries):
        try:
            parsed.append(AccessQuery.model_validate(item))
        except ValidationError as exc:
            raise BadRequestError(
                "Invalid access control query",
                ACCESS_CONTROL_RESOURCE_FAILED,
                {"index": index},
            ) from exc
    checker = AccessChecker(context.registry, caller.roles)
    return [_answer(checker, query) for query in parsed]


@router.get("/grants")
async def list_grants(
    context: ServiceContext = Depends(get_context),
    _: FrozenSet[str] = Depends(AccessGuard("rolePrivileges:read")),
):
    """The whole merged grant table: role -> resource -> action -> attributes."""
    return context.registry.grants()


@router.get("/rolePrivileges/{fmt}")
async def role_privileges(
    fmt: str,
    roleName: Optional[str] = Query(None),
    context: ServiceContext = Depends(get_context),
    _: FrozenSet[str] = Depends(AccessGuard("rolePrivileges:read")),
):
    fmt = _format(fmt)
    if not roleName:
        raise BadRequestError("A role name is required", "missingRoleId")
    return _render(context.registry.privileges_for_role(roleName), fmt)


@router.get("/resourcePrivileges/{fmt}")
async def resource_privileges(
    fmt: str,
    resourceName: str = Query(..., min_length=1),
    context: ServiceContext = Depends(get_context),
    _: FrozenSet[str] = Depends(AccessGuard("resourcePrivileges:read")),
):
    fmt = _format(fmt)
    return _render(context.registry.privileges_for_resource(resourceName), fmt)


@router.get("/resource/list", response_model=List[str])
async def list_resources(
    filterName: Optional[str] = Query(None, description="Space separated keywords"),
    context: ServiceContext = Depends(get_context),
    _: FrozenSet[str] = Depends(AccessGuard("acdbResource:read")),
):
    """Resource names, optionally narrowed by keywords."""
    if filterName:
        return context.registry.search_resources(filterName)
    return context.registry.resources()
