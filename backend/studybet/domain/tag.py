"""Labelled, coloured tags attached to sessions."""

import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime

from studybet.core.exceptions import ValidationError
from studybet.domain.entity import Entity

TAG_NAME_MAX_LENGTH = 50
_COLOR_HEX = re.compile(r"^#[0-9A-Fa-f]{6}$")

# Star colours handed out round-robin when the user does not pick one
DEFAULT_COLORS = (
    "#FF6B6B",
    "#4ECDC4",
    "#45B7D1",
    "#96CEB4",
    "#FFEAA7",
    "#DDA0DD",
    "#98D8C8",
    "#F7DC6F",
)


def default_color(existing_tag_count: int) -> str:
    return DEFAULT_COLORS[existing_tag_count % len(DEFAULT_COLORS)]


def validate_color_hex(color_hex: str) -> str:
    if not color_hex or not _COLOR_HEX.match(color_hex):
        raise ValidationError(f"Invalid colour code: {color_hex!r}")
    return color_hex.upper()


@dataclass(eq=False)
class Tag(Entity):
    user_id: uuid.UUID
    name: str
    color_hex: str
    created_at: datetime
    usage_count: int = 0
    id: uuid.UUID = field(default_factory=uuid.uuid4)

    @classmethod
    def create(cls, user_id: uuid.UUID, name: str, color_hex: str, now: datetime) -> "Tag":
        name = (name or "").strip()
        if not name:
            raise ValidationError("Tag name is required")
        if len(name) > TAG_NAME_MAX_LENGTH:
            raise ValidationError(f"Tag name cannot exceed {TAG_NAME_MAX_LENGTH} characters")
        return cls(user_id=user_id, name=name, color_hex=validate_color_hex(color_hex), created_at=now)

    def increment_usage(self) -> None:
        self.usage_count += 1

    def update_color(self, color_hex: str) -> None:
        self.color_hex = validate_color_hex(color_hex)
