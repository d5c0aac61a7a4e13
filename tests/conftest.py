"""Pytest configuration and shared fixtures."""

from typing import Callable, Dict

import pytest
from fastapi.testclient import TestClient

from bamb.api.main import create_app
from bamb.core.config import Settings
from bamb.core.security import create_caller_token
from bamb.db.base import Base
from bamb.db.session import build_engine, build_session_factory


@pytest.fixture
def settings() -> Settings:
    return Settings(create_schema=False, log_level="DEBUG")


@pytest.fixture
def engine(tmp_path):
    """A fresh SQLite database per test."""
    engine = build_engine(f"sqlite:///{tmp_path / 'bamb.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def modules():
    """Override to run the application with a custom module set."""
    return None


@pytest.fixture
def app(settings, engine, modules):
    return create_app(settings=settings, engine=engine, modules=modules)


@pytest.fixture
def client(app):
    # entering the context runs the startup barrier
    with TestClient(app) as client:
        yield client


@pytest.fixture
def auth_headers() -> Callable[..., Dict[str, str]]:
    """Build a token header for a user id and roles (``BasicUser`` by default)."""

    def make(user_id: int, *roles: str) -> Dict[str, str]:
        token = create_caller_token(user_id, roles or ("BasicUser",))
        return {"Authorization": f"Bearer {token}"}

    return make
