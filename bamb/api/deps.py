from typing import Callable, FrozenSet, Generator, Type, Union

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from bamb.core.access.guard import AccessChecker, Privilege
from bamb.core.access.scope import Caller
from bamb.core.config import get_settings
from bamb.core.exceptions import ServiceUnavailableError
from bamb.core.security import decode_caller, extract_token
from bamb.modules.base import DomainService, ServiceContext


def get_db(request: Request) -> Generator:
    """Database session dependency."""
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


def get_context(request: Request) -> ServiceContext:
    """Shared collaborators; unavailable until every module is ready."""
    if not request.app.state.host.ready:
        raise ServiceUnavailableError()
    return request.app.state.context


def get_caller(request: Request, context: ServiceContext = Depends(get_context)) -> Caller:
    """Verified caller from the token header; unknown roles are dropped."""
    settings = get_settings()
    token = extract_token(request.headers.get(settings.token_header))
    caller = decode_caller(token, known_roles=context.registry.roles())
    request.state.caller = caller
    return caller


class AccessGuard:
    """
    FastAPI dependency for privilege checking.

    The caller passes when any role holds any of the listed privileges.
    Returns the union of the granted attributes for response filtering.

    Usage:
        @router.get("/grants")
        async def grants(attributes=Depends(AccessGuard("accessControl:read"))):
            ...
    """

    def __init__(self, *privileges: Union[str, Privilege]):
        self.privileges = privileges

    async def __call__(
        self,
        caller: Caller = Depends(get_caller),
        context: ServiceContext = Depends(get_context),
    ) -> FrozenSet[str]:
        checker = AccessChecker(context.registry, caller.roles)
        return checker.require_any(self.privileges)


def service(service_class: Type[DomainService]) -> Callable:
    """Dependency building a request-scoped domain service."""

    def dependency(
        db: Session = Depends(get_db),
        caller: Caller = Depends(get_caller),
        context: ServiceContext = Depends(get_context),
    ) -> DomainService:
        return service_class(db, caller, context)

    return dependency
