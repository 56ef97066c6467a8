"""Penalty ("weak human diary") produced when a bet is lost.

The narrative text is generated by an external collaborator from a
PenaltyContext; ``render_fallback_text`` is the deterministic template used
when that collaborator fails.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field

from studybet.domain.entity import Entity
from studybet.domain.interruption import InterruptionReason
from studybet.domain.session import Session, SessionResult

PENALTY_TEXT_MAX_LENGTH = 180


class PenaltyType(StrEnum):
    WEAK_HUMAN_DIARY = "weak_human_diary"


class InterruptionSummary(BaseModel):
    reason: InterruptionReason
    duration_seconds: int
    stamina_consumed: int


class PenaltyContext(BaseModel):
    """Everything the narrative collaborator may know about a lost bet."""

    original_pledge: str
    target_duration_seconds: int
    actual_duration_seconds: int
    final_stamina_percent: int
    final_gauge_percent: int
    fail_reason: str | None = None
    interruptions: list[InterruptionSummary] = Field(default_factory=list)

    @classmethod
    def from_session(cls, session: Session, result: SessionResult) -> "PenaltyContext":
        return cls(
            original_pledge=session.pledge.content,
            target_duration_seconds=session.target_duration_seconds,
            actual_duration_seconds=int(result.actual_focus_time.total_seconds()),
            final_stamina_percent=result.final_stamina_percent,
            final_gauge_percent=result.final_gauge_percent,
            fail_reason=result.fail_reason,
            interruptions=[
                InterruptionSummary(
                    reason=i.reason,
                    duration_seconds=i.duration_seconds or 0,
                    stamina_consumed=i.stamina_consumed,
                )
                for i in session.interruptions
            ],
        )


def _truncate(text: str, length: int) -> str:
    return text if len(text) <= length else text[: length - 3] + "..."


def trim_penalty_text(text: str) -> str:
    return _truncate(text.strip(), PENALTY_TEXT_MAX_LENGTH)


def render_fallback_text(context: PenaltyContext) -> str:
    """Deterministic penalty sentence built from the same fields the AI would see."""
    target_minutes = context.target_duration_seconds // 60
    actual_minutes = context.actual_duration_seconds // 60
    return (
        f"Pledged '{_truncate(context.original_pledge, 40)}' for {target_minutes} min, "
        f"managed {actual_minutes} min with {len(context.interruptions)} interruption(s). "
        f"Stamina {context.final_stamina_percent}%, focus {context.final_gauge_percent}%. "
        f"Verdict: {context.fail_reason or 'lost'}."
    )


@dataclass(eq=False)
class Penalty(Entity):
    user_id: uuid.UUID
    session_id: uuid.UUID
    bet_id: uuid.UUID
    context: PenaltyContext
    created_at: datetime
    type: PenaltyType = PenaltyType.WEAK_HUMAN_DIARY
    content: str | None = None
    is_archived: bool = True
    is_viewed: bool = False
    id: uuid.UUID = field(default_factory=uuid.uuid4)

    @classmethod
    def create(cls, session: Session, result: SessionResult, now: datetime) -> "Penalty":
        return cls(
            user_id=session.user_id,
            session_id=session.id,
            bet_id=session.bet.id,
            context=PenaltyContext.from_session(session, result),
            created_at=now,
        )

    def generate_content(self, content: str) -> None:
        self.content = content

    def mark_viewed(self) -> None:
        self.is_viewed = True

    def unarchive(self) -> None:
        self.is_archived = False
