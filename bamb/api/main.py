from contextlib import asynccontextmanager
from typing import Iterable, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from bamb import __version__
from bamb.api.middleware.request_logging import RequestLoggingMiddleware
from bamb.api.routers import access_control, circularity, core, inventory, projects
from bamb.core.access.registry import GrantRegistry
from bamb.core.access.scope import ScopeResolver
from bamb.core.bootstrap import DomainModule, ModuleHost
from bamb.core.config import Settings, get_settings
from bamb.core.exceptions import INVALID_REQUEST, BadRequestError, BambError, UnexpectedError
from bamb.core.locator import ServiceLocator
from bamb.core.logger import configure_logging, get_logger
from bamb.db.base import Base
from bamb.db.session import build_engine, build_session_factory
from bamb.modules.access_control import AccessControlModule
from bamb.modules.base import ServiceContext
from bamb.modules.circularity import CircularityModule
from bamb.modules.core import CoreModule
from bamb.modules.inventory import InventoryModule
from bamb.modules.project import ProjectModule

logger = get_logger("api")


def default_modules(session_factory):
    return [
        CoreModule(session_factory),
        ProjectModule(session_factory),
        InventoryModule(session_factory),
        CircularityModule(),
        AccessControlModule(),
    ]


async def handle_bamb_error(request: Request, exc: BambError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s (%s)", request.method, request.url.path, exc.message, exc.message_code)
    return JSONResponse(exc.to_dict(), status_code=exc.status_code)


async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {"loc": [str(part) for part in error.get("loc", ())], "type": error.get("type"), "msg": error.get("msg")}
        for error in exc.errors()
    ]
    error = BadRequestError("Invalid request", INVALID_REQUEST, {"errors": errors})
    return JSONResponse(error.to_dict(), status_code=error.status_code)


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("%s %s failed: %s", request.method, request.url.path, exc)
    error = UnexpectedError()
    return JSONResponse(error.to_dict(), status_code=error.status_code)


def create_app(
    settings: Optional[Settings] = None,
    engine=None,
    modules: Optional[Iterable[DomainModule]] = None,
) -> FastAPI:
    """Build the application.

    Nothing is served until every module has submitted its grants and
    published its peers; see ``ModuleHost.start``.
    """
    settings = settings or get_settings()
    engine = engine if engine is not None else build_engine(settings.database_url)
    session_factory = build_session_factory(engine)

    registry = GrantRegistry()
    locator = ServiceLocator(default_timeout=settings.peer_call_timeout)
    host = ModuleHost(
        modules if modules is not None else default_modules(session_factory),
        registry,
        locator,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings)
        if settings.create_schema:
            Base.metadata.create_all(bind=engine)
        await host.start()
        yield

    app = FastAPI(
        title=settings.app_name,
        description="Building material inventory and circularity backend",
        version=__version__,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.session_factory = session_factory
    app.state.host = host
    app.state.context = ServiceContext(
        registry=registry,
        resolver=ScopeResolver(registry),
        locator=locator,
        query_timeout=settings.query_timeout,
    )

    app.add_exception_handler(BambError, handle_bamb_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.debug else settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Request logging middleware - one line per request
    app.add_middleware(RequestLoggingMiddleware)

    # Include routers
    app.include_router(access_control.router)
    app.include_router(core.router)
    app.include_router(projects.router)
    app.include_router(inventory.router)
    app.include_router(circularity.router)

    @app.get("/health")
    async def health_check():
        return {"status": "healthy" if host.ready else "starting", "version": __version__}

    @app.get("/")
    async def root():
        return {
            "name": settings.app_name,
            "version": __version__,
            "docs": "/docs" if settings.debug else None,
        }

    return app


app = create_app()
