"""Tests for TagService."""

import uuid

import pytest

from studybet.core.exceptions import NotFoundError, ValidationError
from studybet.domain.tag import DEFAULT_COLORS

pytestmark = pytest.mark.unit


async def test_create_tag_assigns_palette_colours_in_order(tag_service, user_id):
    first = await tag_service.create_tag(user_id, "Maths")
    second = await tag_service.create_tag(user_id, "Physics")

    assert first.color_hex == DEFAULT_COLORS[0]
    assert second.color_hex == DEFAULT_COLORS[1]


async def test_create_tag_with_explicit_colour_is_normalized(tag_service, user_id):
    tag = await tag_service.create_tag(user_id, "  History ", "#abcdef")

    assert tag.name == "History"
    assert tag.color_hex == "#ABCDEF"


async def test_create_tag_creates_the_user(tag_service, repository, user_id):
    await tag_service.create_tag(user_id, "Maths")

    assert user_id in repository.users


async def test_duplicate_name_is_rejected(tag_service, user_id):
    await tag_service.create_tag(user_id, "Maths")

    with pytest.raises(ValidationError):
        await tag_service.create_tag(user_id, "Maths")


async def test_same_name_allowed_for_another_user(tag_service, user_id, other_user_id):
    await tag_service.create_tag(user_id, "Maths")
    tag = await tag_service.create_tag(other_user_id, "Maths")

    assert tag.user_id == other_user_id


@pytest.mark.parametrize("color", ["red", "#12345", "#GGGGGG"])
async def test_invalid_colour_is_rejected(tag_service, user_id, color):
    with pytest.raises(ValidationError):
        await tag_service.create_tag(user_id, "Maths", color)


async def test_update_color(tag_service, repository, user_id):
    tag = await tag_service.create_tag(user_id, "Maths")

    updated = await tag_service.update_color(user_id, tag.id, "#010203")

    assert updated.color_hex == "#010203"
    assert repository.tags[tag.id].color_hex == "#010203"


async def test_update_color_of_foreign_tag_is_not_found(tag_service, user_id, other_user_id):
    tag = await tag_service.create_tag(user_id, "Maths")

    with pytest.raises(NotFoundError):
        await tag_service.update_color(other_user_id, tag.id, "#010203")


async def test_update_color_of_unknown_tag_is_not_found(tag_service, user_id):
    with pytest.raises(NotFoundError):
        await tag_service.update_color(user_id, uuid.uuid4(), "#010203")
