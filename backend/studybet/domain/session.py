"""Session lifecycle state machine.

    ACTIVE -> PAUSED -> ACTIVE -> ... -> COMPLETED | ABANDONED

COMPLETED and ABANDONED are terminal. A session owns its stamina, focus gauge,
interruptions and bet; the bet is judged when the session ends.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import StrEnum

from studybet.core.exceptions import InvalidStateError, ValidationError
from studybet.domain.bet import (
    FAIL_ABANDONED,
    FAIL_STAMINA_DEPLETED,
    FAIL_TARGET_NOT_MET,
    Bet,
    BetResult,
)
from studybet.domain.entity import Entity
from studybet.domain.interruption import Interruption, InterruptionReason
from studybet.domain.resources import FocusGauge, Stamina

PLEDGE_MAX_LENGTH = 500
WIN_BONUS_EXP = 100
FOCUS_BONUS_EXP = 50


class SessionStatus(StrEnum):
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"
    ABANDONED = "abandoned"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionStatus.COMPLETED, SessionStatus.ABANDONED)


@dataclass(frozen=True)
class Pledge:
    """The user's declared goal. Immutable once created."""

    content: str
    created_at: datetime

    @classmethod
    def of(cls, content: str, now: datetime) -> "Pledge":
        if content is None or not content.strip():
            raise ValidationError("Pledge content is required")
        if len(content) > PLEDGE_MAX_LENGTH:
            raise ValidationError(f"Pledge cannot exceed {PLEDGE_MAX_LENGTH} characters")
        return cls(content=content, created_at=now)


def validate_target_duration(target_duration: timedelta) -> int:
    """Return the target in whole seconds, rejecting non-positive values."""
    target_seconds = int(target_duration.total_seconds())
    if target_seconds <= 0:
        raise ValidationError("Target duration must be positive")
    return target_seconds


@dataclass(frozen=True)
class SessionResult:
    """Outcome of a finished session, consumed by the daily aggregate."""

    session_id: uuid.UUID
    bet_result: BetResult
    actual_focus_time: timedelta
    final_stamina_percent: int
    final_gauge_percent: int
    longest_continuous_focus: timedelta
    total_exp: int
    received_focus_bonus: bool
    fail_reason: str | None = None

    def should_create_penalty(self) -> bool:
        return self.bet_result == BetResult.LOSE


@dataclass(eq=False)
class Session(Entity):
    user_id: uuid.UUID
    study_day_id: uuid.UUID
    pledge: Pledge
    target_duration_seconds: int
    started_at: datetime
    stamina: Stamina
    focus_gauge: FocusGauge
    bet: Bet | None = None
    tag_ids: set[uuid.UUID] = field(default_factory=set)
    status: SessionStatus = SessionStatus.ACTIVE
    ended_at: datetime | None = None
    current_focus_started_at: datetime | None = None
    interruptions: list[Interruption] = field(default_factory=list)
    id: uuid.UUID = field(default_factory=uuid.uuid4)

    @classmethod
    def start(
        cls,
        user_id: uuid.UUID,
        study_day_id: uuid.UUID,
        pledge: Pledge,
        target_duration: timedelta,
        now: datetime,
        tag_ids: set[uuid.UUID] | None = None,
    ) -> "Session":
        """Open a new ACTIVE session with full stamina and a PENDING bet.

        Raises:
            ValidationError: target_duration is not positive
        """
        target_seconds = validate_target_duration(target_duration)

        session = cls(
            user_id=user_id,
            study_day_id=study_day_id,
            pledge=pledge,
            target_duration_seconds=target_seconds,
            started_at=now,
            stamina=Stamina.full(),
            focus_gauge=FocusGauge.create(target_duration),
            tag_ids=set(tag_ids or ()),
            current_focus_started_at=now,
        )
        session.bet = Bet.create(session.id, target_duration, pledge.content, now)
        return session

    # --- queries ---

    @property
    def target_duration(self) -> timedelta:
        return timedelta(seconds=self.target_duration_seconds)

    @property
    def is_open(self) -> bool:
        return not self.status.is_terminal

    @property
    def ongoing_interruption(self) -> Interruption | None:
        if self.interruptions and self.interruptions[-1].is_ongoing:
            return self.interruptions[-1]
        return None

    @property
    def total_interruption_time(self) -> timedelta:
        return sum((i.duration for i in self.interruptions), timedelta(0))

    def focus_time(self, now: datetime) -> timedelta:
        """Focus accrued so far: elapsed time minus every pause, including an ongoing one."""
        end = self.ended_at or now
        paused = self.total_interruption_time
        ongoing = self.ongoing_interruption
        if ongoing is not None:
            paused += max(end - ongoing.stopped_at, timedelta(0))
        return max((end - self.started_at) - paused, timedelta(0))

    @property
    def actual_focus_time(self) -> timedelta:
        if self.ended_at is None:
            raise InvalidStateError("Session has not ended", required="ended", actual=self.status.value)
        return (self.ended_at - self.started_at) - self.total_interruption_time

    def focus_intervals(self) -> list[tuple[datetime, datetime]]:
        """Continuous focus intervals of a finished session, in order."""
        if self.ended_at is None:
            return []
        intervals = []
        cursor = self.started_at
        for interruption in self.interruptions:
            if interruption.stopped_at > cursor:
                intervals.append((cursor, interruption.stopped_at))
            cursor = interruption.resumed_at or interruption.stopped_at
        if self.ended_at > cursor:
            intervals.append((cursor, self.ended_at))
        return intervals

    # --- transitions ---

    def pause(self, reason: InterruptionReason, now: datetime) -> Interruption:
        """ACTIVE -> PAUSED. Flushes the running focus interval and opens an interruption."""
        self._require(SessionStatus.ACTIVE)

        self.focus_gauge.record_focus_period(now - self.current_focus_started_at)
        self.current_focus_started_at = None
        self.status = SessionStatus.PAUSED

        interruption = Interruption.start(self.id, reason, now)
        self.interruptions.append(interruption)
        return interruption

    def resume(self, now: datetime, interruption: Interruption | None = None) -> Interruption:
        """PAUSED -> ACTIVE. Closes the ongoing interruption and charges stamina for it."""
        self._require(SessionStatus.PAUSED)

        ongoing = self.ongoing_interruption
        if interruption is not None and interruption.id != ongoing.id:
            raise InvalidStateError("Interruption is not the ongoing one for this session")

        self._close_interruption(ongoing, now)
        self.current_focus_started_at = now
        self.status = SessionStatus.ACTIVE
        return ongoing

    def complete(self, now: datetime) -> SessionResult:
        """End the session normally and judge the bet."""
        self._require_open()
        self._close_running_interval(now)
        self.ended_at = now
        self.status = SessionStatus.COMPLETED

        actual_focus_time = self.actual_focus_time
        bet_result = self._judge_bet(actual_focus_time, now)

        base_exp = int(actual_focus_time.total_seconds() // 60)
        win_bonus = WIN_BONUS_EXP if bet_result == BetResult.WIN else 0
        focus_bonus = FOCUS_BONUS_EXP if self.focus_gauge.qualifies_for_bonus() else 0

        return self._result(
            bet_result,
            actual_focus_time,
            total_exp=base_exp + win_bonus + focus_bonus,
            received_focus_bonus=focus_bonus > 0,
        )

    def abandon(self, now: datetime) -> SessionResult:
        """Give up: automatic loss, half experience, no bonuses."""
        self._require_open()
        self._close_running_interval(now)
        self.ended_at = now
        self.status = SessionStatus.ABANDONED
        self.bet.lose(FAIL_ABANDONED, now)

        actual_focus_time = self.actual_focus_time
        base_exp = int(actual_focus_time.total_seconds() // 60 * 0.5)

        return self._result(BetResult.LOSE, actual_focus_time, total_exp=base_exp, received_focus_bonus=False)

    # --- internals ---

    def _judge_bet(self, actual_focus_time: timedelta, now: datetime) -> BetResult:
        time_achieved = actual_focus_time >= self.target_duration
        stamina_sufficient = self.stamina.can_win_bet()

        if time_achieved and stamina_sufficient:
            self.bet.win(now)
            return BetResult.WIN

        # Stamina depletion wins the message when both conditions fail
        reason = FAIL_STAMINA_DEPLETED if not stamina_sufficient else FAIL_TARGET_NOT_MET
        self.bet.lose(reason, now)
        return BetResult.LOSE

    def _close_running_interval(self, now: datetime) -> None:
        if self.status == SessionStatus.ACTIVE:
            self.focus_gauge.record_focus_period(now - self.current_focus_started_at)
        elif self.status == SessionStatus.PAUSED:
            self._close_interruption(self.ongoing_interruption, now)
        self.current_focus_started_at = None

    def _close_interruption(self, interruption: Interruption, now: datetime) -> None:
        duration = interruption.complete(now)
        consumed = self.stamina.consume(interruption.reason, duration, self.target_duration)
        interruption.record_stamina_consumed(consumed, self.stamina.percentage)

    def _result(
        self,
        bet_result: BetResult,
        actual_focus_time: timedelta,
        total_exp: int,
        received_focus_bonus: bool,
    ) -> SessionResult:
        return SessionResult(
            session_id=self.id,
            bet_result=bet_result,
            actual_focus_time=actual_focus_time,
            final_stamina_percent=self.stamina.percentage,
            final_gauge_percent=self.focus_gauge.percentage,
            longest_continuous_focus=self.focus_gauge.longest_continuous_focus,
            total_exp=total_exp,
            received_focus_bonus=received_focus_bonus,
            fail_reason=self.bet.fail_reason,
        )

    def _require(self, required: SessionStatus) -> None:
        if self.status != required:
            raise InvalidStateError(
                f"Session must be {required.value} (currently {self.status.value})",
                required=required.value,
                actual=self.status.value,
            )

    def _require_open(self) -> None:
        if self.status.is_terminal:
            raise InvalidStateError(
                f"Session already ended ({self.status.value})",
                required="active or paused",
                actual=self.status.value,
            )
