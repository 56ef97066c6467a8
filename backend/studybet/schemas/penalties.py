"""Pydantic schemas for penalties ("weak human diary" entries)."""

import uuid
from datetime import datetime

from pydantic import BaseModel, Field

from studybet.domain.penalty import Penalty, PenaltyContext, PenaltyType


class PenaltyResponse(BaseModel):
    id: uuid.UUID
    session_id: uuid.UUID
    bet_id: uuid.UUID
    type: PenaltyType
    content: str | None = None
    context: PenaltyContext
    is_viewed: bool
    is_archived: bool
    created_at: datetime

    @classmethod
    def from_domain(cls, penalty: Penalty) -> "PenaltyResponse":
        return cls(
            id=penalty.id,
            session_id=penalty.session_id,
            bet_id=penalty.bet_id,
            type=penalty.type,
            content=penalty.content,
            context=penalty.context,
            is_viewed=penalty.is_viewed,
            is_archived=penalty.is_archived,
            created_at=penalty.created_at,
        )


class PenaltyListResponse(BaseModel):
    """Newest first. Empty list when the user has never lost a bet."""

    items: list[PenaltyResponse] = Field(default_factory=list)
    unviewed: int = 0
