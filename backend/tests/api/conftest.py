"""API-specific test fixtures."""

import pytest
from fastapi import FastAPI, HTTPException
from fastapi.testclient import TestClient

from stagegate.api.deps import (
    get_condition_catalog,
    get_decision_store,
    get_evaluator_registry,
    get_project_lock,
    get_repository,
)
from stagegate.api.routes import api_router
from stagegate.core.exceptions import StageGateError
from stagegate.domain.templates import ConditionCatalog
from stagegate.main import generic_exception_handler, http_exception_handler, stage_gate_exception_handler
from stagegate.middleware.correlation import setup_correlation_middleware


@pytest.fixture
def app(repository, decision_store, lock, registry) -> FastAPI:
    """App wired to fresh in-memory stores and the built-in template catalog.

    No lifespan: TestClient is used without a context manager, so no
    database or Redis connection is attempted.
    """
    app = FastAPI(title="stagegate-test")
    setup_correlation_middleware(app)
    app.exception_handler(StageGateError)(stage_gate_exception_handler)
    app.exception_handler(HTTPException)(http_exception_handler)
    app.exception_handler(Exception)(generic_exception_handler)
    app.include_router(api_router, prefix="/api")

    catalog = ConditionCatalog.from_templates()
    app.dependency_overrides[get_repository] = lambda: repository
    app.dependency_overrides[get_decision_store] = lambda: decision_store
    app.dependency_overrides[get_project_lock] = lambda: lock
    app.dependency_overrides[get_evaluator_registry] = lambda: registry
    app.dependency_overrides[get_condition_catalog] = lambda: catalog
    return app


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def provisioned(client) -> dict:
    """Product registration project "lab-1", started, first stage in progress."""
    response = client.post("/api/projects/lab-1/stages/provision", json={"template_key": "product_registration"})
    assert response.status_code == 201
    response = client.post("/api/projects/lab-1/start")
    assert response.status_code == 201
    return client.get("/api/projects/lab-1/stages").json()
