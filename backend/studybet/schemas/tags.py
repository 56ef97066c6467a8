"""Pydantic schemas for tags."""

import uuid
from datetime import datetime

from pydantic import BaseModel

from studybet.domain.tag import Tag


class CreateTagRequest(BaseModel):
    name: str
    color_hex: str | None = None


class UpdateTagColorRequest(BaseModel):
    color_hex: str


class TagResponse(BaseModel):
    id: uuid.UUID
    name: str
    color_hex: str
    usage_count: int
    created_at: datetime

    @classmethod
    def from_domain(cls, tag: Tag) -> "TagResponse":
        return cls(
            id=tag.id,
            name=tag.name,
            color_hex=tag.color_hex,
            usage_count=tag.usage_count,
            created_at=tag.created_at,
        )
