"""Tests for the tag endpoints."""

import pytest

from studybet.domain.tag import DEFAULT_COLORS

pytestmark = pytest.mark.unit


def test_create_and_list_tags(api_client, headers):
    created = api_client.post("/api/tags", json={"name": "Maths"}, headers=headers)

    assert created.status_code == 201
    assert created.json()["color_hex"] == DEFAULT_COLORS[0]
    assert created.json()["usage_count"] == 0

    listed = api_client.get("/api/tags", headers=headers).json()
    assert [t["name"] for t in listed] == ["Maths"]


def test_duplicate_tag_is_400(api_client, headers):
    api_client.post("/api/tags", json={"name": "Maths"}, headers=headers)

    response = api_client.post("/api/tags", json={"name": "Maths"}, headers=headers)

    assert response.status_code == 400


def test_bad_colour_is_400(api_client, headers):
    response = api_client.post("/api/tags", json={"name": "Maths", "color_hex": "blue"}, headers=headers)

    assert response.status_code == 400


def test_update_colour(api_client, headers):
    tag_id = api_client.post("/api/tags", json={"name": "Maths"}, headers=headers).json()["id"]

    response = api_client.patch(f"/api/tags/{tag_id}", json={"color_hex": "#0a0b0c"}, headers=headers)

    assert response.status_code == 200
    assert response.json()["color_hex"] == "#0A0B0C"


def test_update_foreign_tag_is_404(api_client, headers, other_headers):
    tag_id = api_client.post("/api/tags", json={"name": "Maths"}, headers=headers).json()["id"]

    response = api_client.patch(f"/api/tags/{tag_id}", json={"color_hex": "#0a0b0c"}, headers=other_headers)

    assert response.status_code == 404


def test_session_tags_bump_usage(api_client, headers):
    tag_id = api_client.post("/api/tags", json={"name": "Maths"}, headers=headers).json()["id"]

    started = api_client.post(
        "/api/sessions",
        json={"pledge": "Integrals", "target_duration_seconds": 600, "tag_ids": [tag_id]},
        headers=headers,
    )

    assert started.json()["tag_ids"] == [tag_id]
    assert api_client.get("/api/tags", headers=headers).json()[0]["usage_count"] == 1
