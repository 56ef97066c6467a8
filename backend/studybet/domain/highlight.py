"""Daily highlight payload: MVP focus period, crisis moments, AI suggestion.

Stored opaquely on the study day as JSON; the schema is fixed here.
"""

import uuid
from collections.abc import Iterable
from datetime import datetime, tzinfo

from pydantic import BaseModel, Field

from studybet.domain.interruption import InterruptionReason
from studybet.domain.session import Session

MAX_CRISIS_EVENTS = 3


def _hhmm(value: datetime, tz: tzinfo | None) -> str:
    if tz is not None:
        value = value.astimezone(tz)
    return value.strftime("%H:%M")


class MvpPeriod(BaseModel):
    """The longest uninterrupted focus interval of the day."""

    start_time: datetime
    end_time: datetime
    duration_seconds: int
    session_id: uuid.UUID

    def to_display_string(self, tz: tzinfo | None = None) -> str:
        minutes = self.duration_seconds // 60
        return (
            f"Today's MVP stretch: {_hhmm(self.start_time, tz)}~{_hhmm(self.end_time, tz)} "
            f"({minutes} min without a break)"
        )


class CrisisEvent(BaseModel):
    """A costly interruption worth calling out."""

    stopped_at: datetime
    resumed_at: datetime
    reason: InterruptionReason
    stamina_consumed: int
    session_id: uuid.UUID

    def to_display_string(self, tz: tzinfo | None = None) -> str:
        return (
            f"Crisis: stopped {_hhmm(self.stopped_at, tz)}, resumed {_hhmm(self.resumed_at, tz)} "
            f"({self.reason.display_name})"
        )


class HighlightData(BaseModel):
    mvp_period: MvpPeriod | None = None
    crisis_events: list[CrisisEvent] = Field(default_factory=list)
    ai_suggestion: str | None = None


def find_mvp_period(sessions: Iterable[Session]) -> MvpPeriod | None:
    best: MvpPeriod | None = None
    for session in sessions:
        for start, end in session.focus_intervals():
            seconds = int((end - start).total_seconds())
            if best is None or seconds > best.duration_seconds:
                best = MvpPeriod(start_time=start, end_time=end, duration_seconds=seconds, session_id=session.id)
    return best


def find_crisis_events(sessions: Iterable[Session], limit: int = MAX_CRISIS_EVENTS) -> list[CrisisEvent]:
    """Costliest completed interruptions, most expensive first (ties: earliest first)."""
    events = [
        CrisisEvent(
            stopped_at=i.stopped_at,
            resumed_at=i.resumed_at,
            reason=i.reason,
            stamina_consumed=i.stamina_consumed,
            session_id=session.id,
        )
        for session in sessions
        for i in session.interruptions
        if not i.is_ongoing and i.stamina_consumed > 0
    ]
    events.sort(key=lambda e: (-e.stamina_consumed, e.stopped_at))
    return events[:limit]


def build_highlight(sessions: Iterable[Session]) -> HighlightData:
    """Derive the deterministic part of the highlight. The AI suggestion is attached later."""
    finished = [s for s in sessions if s.ended_at is not None]
    return HighlightData(
        mvp_period=find_mvp_period(finished),
        crisis_events=find_crisis_events(finished),
    )
