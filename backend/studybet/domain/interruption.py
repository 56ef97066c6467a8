"""Interruption ledger entries: one pause -> resume interval per record."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from enum import StrEnum

from studybet.core.exceptions import InvalidStateError
from studybet.domain.entity import Entity


class InterruptionReason(StrEnum):
    """Why the user stopped. Riskier reasons cost more stamina."""

    TOILET = "toilet"
    REST = "rest"
    INTERFERENCE = "interference"
    DISTRACTION = "distraction"

    @property
    def base_cost_ratio(self) -> Decimal:
        return _BASE_COST_RATIOS[self]

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]


_BASE_COST_RATIOS: dict[InterruptionReason, Decimal] = {
    InterruptionReason.TOILET: Decimal("0.05"),
    InterruptionReason.REST: Decimal("0.10"),
    InterruptionReason.INTERFERENCE: Decimal("0.15"),
    InterruptionReason.DISTRACTION: Decimal("0.25"),
}

_DISPLAY_NAMES: dict[InterruptionReason, str] = {
    InterruptionReason.TOILET: "Bathroom break",
    InterruptionReason.REST: "Rest",
    InterruptionReason.INTERFERENCE: "Outside interference",
    InterruptionReason.DISTRACTION: "Distraction",
}


@dataclass(eq=False)
class Interruption(Entity):
    """A single pause.

    Created ongoing by ``start`` and finalized once by ``complete``; the
    stamina cost is stored right after completion and never recomputed.
    """

    session_id: uuid.UUID
    reason: InterruptionReason
    stopped_at: datetime
    resumed_at: datetime | None = None
    duration_seconds: int | None = None
    stamina_consumed: int = 0
    stamina_after: int = 0
    id: uuid.UUID = field(default_factory=uuid.uuid4)

    @classmethod
    def start(cls, session_id: uuid.UUID, reason: InterruptionReason, stopped_at: datetime) -> "Interruption":
        return cls(session_id=session_id, reason=reason, stopped_at=stopped_at)

    @property
    def is_ongoing(self) -> bool:
        return self.resumed_at is None

    @property
    def duration(self) -> timedelta:
        """Completed duration; zero while the interruption is still ongoing."""
        if self.duration_seconds is None:
            return timedelta(0)
        return timedelta(seconds=self.duration_seconds)

    def complete(self, resumed_at: datetime) -> timedelta:
        """Close the interval and return its duration.

        Raises:
            InvalidStateError: the interruption was already completed
            ValueError: resumed_at precedes stopped_at
        """
        if not self.is_ongoing:
            raise InvalidStateError("Interruption already completed", required="ongoing", actual="completed")
        if resumed_at < self.stopped_at:
            raise ValueError(f"resumed_at {resumed_at.isoformat()} precedes stopped_at {self.stopped_at.isoformat()}")

        self.resumed_at = resumed_at
        self.duration_seconds = int((resumed_at - self.stopped_at).total_seconds())
        return self.duration

    def record_stamina_consumed(self, consumed: int, after: int) -> None:
        self.stamina_consumed = consumed
        self.stamina_after = after
