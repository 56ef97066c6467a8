"""The wager tied 1:1 to a session."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import StrEnum

from studybet.core.exceptions import InvalidStateError
from studybet.domain.entity import Entity

FAIL_STAMINA_DEPLETED = "stamina depleted"
FAIL_TARGET_NOT_MET = "target time not met"
FAIL_ABANDONED = "session abandoned"


class BetResult(StrEnum):
    PENDING = "pending"
    WIN = "win"
    LOSE = "lose"


@dataclass(eq=False)
class Bet(Entity):
    """Judged exactly once, when its session completes or is abandoned."""

    session_id: uuid.UUID
    target_duration_seconds: int
    pledge_content: str
    created_at: datetime
    result: BetResult = BetResult.PENDING
    fail_reason: str | None = None
    judged_at: datetime | None = None
    id: uuid.UUID = field(default_factory=uuid.uuid4)

    @classmethod
    def create(cls, session_id: uuid.UUID, target_duration: timedelta, pledge_content: str, now: datetime) -> "Bet":
        return cls(
            session_id=session_id,
            target_duration_seconds=int(target_duration.total_seconds()),
            pledge_content=pledge_content,
            created_at=now,
        )

    @property
    def target_duration(self) -> timedelta:
        return timedelta(seconds=self.target_duration_seconds)

    @property
    def is_judged(self) -> bool:
        return self.result != BetResult.PENDING

    def win(self, now: datetime) -> None:
        self._ensure_pending()
        self.result = BetResult.WIN
        self.judged_at = now

    def lose(self, reason: str, now: datetime) -> None:
        self._ensure_pending()
        self.result = BetResult.LOSE
        self.fail_reason = reason
        self.judged_at = now

    def _ensure_pending(self) -> None:
        if self.is_judged:
            raise InvalidStateError(
                f"Bet already judged ({self.result.value})",
                required=BetResult.PENDING.value,
                actual=self.result.value,
            )
