"""Tests for health probes and request correlation."""

import uuid

import pytest

pytestmark = pytest.mark.unit


def test_health(api_client):
    response = api_client.get("/api/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "service": "studybet-backend"}


def test_health_is_503_while_shutting_down(api_client, app):
    app.state.shutting_down = True

    response = api_client.get("/api/health")

    assert response.status_code == 503
    assert response.json()["status"] == "shutting_down"


def test_response_carries_generated_request_id(api_client):
    response = api_client.get("/api/health")

    uuid.UUID(response.headers["x-request-id"])


def test_client_request_id_is_echoed(api_client):
    response = api_client.get("/api/health", headers={"X-Request-ID": "custom-id-123"})

    assert response.headers["x-request-id"] == "custom-id-123"


def test_each_request_gets_its_own_id(api_client):
    first = api_client.get("/api/health").headers["x-request-id"]
    second = api_client.get("/api/health").headers["x-request-id"]

    assert first != second


def test_ready_is_503_without_backing_services(api_client):
    response = api_client.get("/api/ready")

    assert response.status_code == 503
    body = response.json()
    assert body["status"] == "degraded"
    assert body["checks"] == {"database": False, "redis": False}
