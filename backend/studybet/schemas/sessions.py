"""Pydantic schemas for the session lifecycle endpoints."""

import uuid
from datetime import datetime

from pydantic import BaseModel, Field

from studybet.domain.bet import Bet, BetResult
from studybet.domain.interruption import Interruption, InterruptionReason
from studybet.domain.session import Session, SessionResult, SessionStatus
from studybet.domain.study_day import StarType
from studybet.schemas.study_days import StudyDayResponse


class StartSessionRequest(BaseModel):
    pledge: str
    target_duration_seconds: int
    tag_ids: list[uuid.UUID] = Field(default_factory=list)


class PauseSessionRequest(BaseModel):
    reason: InterruptionReason


class InterruptionResponse(BaseModel):
    id: uuid.UUID
    reason: InterruptionReason
    stopped_at: datetime
    resumed_at: datetime | None = None
    duration_seconds: int | None = None
    stamina_consumed: int
    stamina_after: int

    @classmethod
    def from_domain(cls, interruption: Interruption) -> "InterruptionResponse":
        return cls(
            id=interruption.id,
            reason=interruption.reason,
            stopped_at=interruption.stopped_at,
            resumed_at=interruption.resumed_at,
            duration_seconds=interruption.duration_seconds,
            stamina_consumed=interruption.stamina_consumed,
            stamina_after=interruption.stamina_after,
        )


class BetResponse(BaseModel):
    id: uuid.UUID
    result: BetResult
    fail_reason: str | None = None
    judged_at: datetime | None = None

    @classmethod
    def from_domain(cls, bet: Bet) -> "BetResponse":
        return cls(id=bet.id, result=bet.result, fail_reason=bet.fail_reason, judged_at=bet.judged_at)


class SessionResponse(BaseModel):
    """A session as the client sees it at ``now``.

    ``focus_seconds`` is live for open sessions and final for ended ones.
    """

    id: uuid.UUID
    study_day_id: uuid.UUID
    pledge: str
    target_duration_seconds: int
    status: SessionStatus
    started_at: datetime
    ended_at: datetime | None = None
    stamina: int
    focus_gauge: int
    focus_seconds: int
    tag_ids: list[uuid.UUID] = Field(default_factory=list)
    bet: BetResponse
    interruptions: list[InterruptionResponse] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, session: Session, now: datetime) -> "SessionResponse":
        return cls(
            id=session.id,
            study_day_id=session.study_day_id,
            pledge=session.pledge.content,
            target_duration_seconds=session.target_duration_seconds,
            status=session.status,
            started_at=session.started_at,
            ended_at=session.ended_at,
            stamina=session.stamina.percentage,
            focus_gauge=session.focus_gauge.percentage,
            focus_seconds=int(session.focus_time(now).total_seconds()),
            tag_ids=sorted(session.tag_ids, key=str),
            bet=BetResponse.from_domain(session.bet),
            interruptions=[InterruptionResponse.from_domain(i) for i in session.interruptions],
        )


class SessionResultResponse(BaseModel):
    bet_result: BetResult
    actual_focus_seconds: int
    final_stamina_percent: int
    final_gauge_percent: int
    longest_continuous_focus_seconds: int
    total_exp: int
    received_focus_bonus: bool
    fail_reason: str | None = None

    @classmethod
    def from_domain(cls, result: SessionResult) -> "SessionResultResponse":
        return cls(
            bet_result=result.bet_result,
            actual_focus_seconds=int(result.actual_focus_time.total_seconds()),
            final_stamina_percent=result.final_stamina_percent,
            final_gauge_percent=result.final_gauge_percent,
            longest_continuous_focus_seconds=int(result.longest_continuous_focus.total_seconds()),
            total_exp=result.total_exp,
            received_focus_bonus=result.received_focus_bonus,
            fail_reason=result.fail_reason,
        )


class SessionOutcomeResponse(BaseModel):
    """Returned by complete and abandon."""

    session: SessionResponse
    result: SessionResultResponse
    star_type: StarType | None = None
    level: int
    levels_gained: int = 0
    penalty_id: uuid.UUID | None = None


class CurrentStatusResponse(BaseModel):
    session: SessionResponse | None = None
    study_day: StudyDayResponse | None = None
