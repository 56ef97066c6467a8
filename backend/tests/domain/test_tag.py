import uuid
from datetime import UTC, datetime

import pytest

from studybet.core.exceptions import ValidationError
from studybet.domain.tag import DEFAULT_COLORS, Tag, default_color

pytestmark = pytest.mark.unit

NOW = datetime(2024, 1, 1, tzinfo=UTC)


def test_create_normalizes_name_and_colour():
    tag = Tag.create(uuid.uuid4(), "  Algorithms ", "#ff6b6b", NOW)
    assert tag.name == "Algorithms"
    assert tag.color_hex == "#FF6B6B"
    assert tag.usage_count == 0


@pytest.mark.parametrize("name", ["", "   ", "n" * 51])
def test_create_rejects_bad_names(name):
    with pytest.raises(ValidationError):
        Tag.create(uuid.uuid4(), name, "#FFFFFF", NOW)


@pytest.mark.parametrize("color", ["", "FF6B6B", "#FF6B6", "#GGGGGG", "#FF6B6B0"])
def test_create_rejects_bad_colours(color):
    with pytest.raises(ValidationError):
        Tag.create(uuid.uuid4(), "Math", color, NOW)


def test_default_palette_wraps_around():
    assert default_color(0) == DEFAULT_COLORS[0]
    assert default_color(len(DEFAULT_COLORS)) == DEFAULT_COLORS[0]
    assert default_color(3) == DEFAULT_COLORS[3]


def test_usage_and_recolour():
    tag = Tag.create(uuid.uuid4(), "Math", "#FFFFFF", NOW)
    tag.increment_usage()
    tag.increment_usage()
    tag.update_color("#000000")

    assert tag.usage_count == 2
    assert tag.color_hex == "#000000"
    with pytest.raises(ValidationError):
        tag.update_color("black")
