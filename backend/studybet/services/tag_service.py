"""Tag management: create, list, recolour."""

import uuid

import structlog

from studybet.core.clock import Clock
from studybet.core.exceptions import NotFoundError, ValidationError
from studybet.db.repository import StudyRepository
from studybet.domain.tag import Tag, default_color

logger = structlog.get_logger(__name__)


class TagService:
    def __init__(self, repository: StudyRepository, clock: Clock):
        self.repository = repository
        self.clock = clock

    async def create_tag(self, user_id: uuid.UUID, name: str, color_hex: str | None = None) -> Tag:
        """Create a tag, picking the next palette colour when none is given.

        Raises:
            ValidationError: bad name or colour, or the name is already taken
        """
        now = self.clock.now()
        await self.repository.get_or_create_user(user_id, now)

        existing = await self.repository.list_tags(user_id)
        color = color_hex or default_color(len(existing))
        tag = Tag.create(user_id, name, color, now)

        if await self.repository.find_tag_by_name(user_id, tag.name) is not None:
            raise ValidationError(f"Tag '{tag.name}' already exists")

        await self.repository.save(tag)
        logger.info("tag_created", tag_id=str(tag.id), user_id=str(user_id), color_hex=tag.color_hex)
        return tag

    async def list_tags(self, user_id: uuid.UUID) -> list[Tag]:
        """Tags ordered by usage, most used first."""
        return await self.repository.list_tags(user_id)

    async def update_color(self, user_id: uuid.UUID, tag_id: uuid.UUID, color_hex: str) -> Tag:
        tags = await self.repository.get_tags(user_id, [tag_id])
        if not tags:
            raise NotFoundError("Tag", tag_id)
        tag = tags[0]
        tag.update_color(color_hex)
        await self.repository.save(tag)
        return tag
