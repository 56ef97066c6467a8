"""API-specific test fixtures.

The app under test carries the production routers, middleware and error
handlers but no lifespan: services are the in-memory ones from the root
conftest, so no database or Redis is needed.
"""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from studybet.api.routes import api_router
from studybet.main import register_exception_handlers
from studybet.middleware.correlation import setup_correlation_middleware


@pytest.fixture
def app(service, tag_service) -> FastAPI:
    app = FastAPI()
    setup_correlation_middleware(app)
    register_exception_handlers(app)
    app.include_router(api_router, prefix="/api")
    app.state.study_service = service
    app.state.tag_service = tag_service
    return app


@pytest.fixture
def api_client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture
def headers(user_id) -> dict[str, str]:
    return {"X-User-Id": str(user_id)}


@pytest.fixture
def other_headers(other_user_id) -> dict[str, str]:
    return {"X-User-Id": str(other_user_id)}
