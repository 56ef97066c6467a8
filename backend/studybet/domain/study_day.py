"""Per-user, per-date aggregate of session outcomes."""

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import StrEnum

from studybet.core.exceptions import InvalidStateError
from studybet.domain.bet import BetResult
from studybet.domain.entity import Entity
from studybet.domain.highlight import HighlightData

SUPERNOVA_MIN_HOURS = 4
SUPERNOVA_MIN_WINS = 3


class StarType(StrEnum):
    """Day-level outcome classification."""

    SHINING_STAR = "shining_star"
    SUPERNOVA = "supernova"
    BLACKHOLE = "blackhole"
    METEORITE = "meteorite"

    @property
    def continues_streak(self) -> bool:
        return self in (StarType.SHINING_STAR, StarType.SUPERNOVA)


def classify_day(win_count: int, lose_count: int, total_focus_seconds: int) -> StarType:
    """Order matters: a net loss dominates, then volume, then any single win."""
    if lose_count > win_count:
        return StarType.BLACKHOLE
    if total_focus_seconds // 3600 >= SUPERNOVA_MIN_HOURS and win_count >= SUPERNOVA_MIN_WINS:
        return StarType.SUPERNOVA
    if win_count > 0:
        return StarType.SHINING_STAR
    return StarType.METEORITE


@dataclass(frozen=True)
class StreakOutcome:
    continued: bool
    current_streak: int


def resolve_streak(previous_streak: int, star_type: StarType | None) -> StreakOutcome:
    """A day with at least one net win extends the streak; anything else resets it."""
    if star_type is not None and star_type.continues_streak:
        return StreakOutcome(continued=True, current_streak=previous_streak + 1)
    return StreakOutcome(continued=False, current_streak=0)


@dataclass(eq=False)
class StudyDay(Entity):
    user_id: uuid.UUID
    study_date: date
    total_focus_seconds: int = 0
    total_sessions: int = 0
    win_count: int = 0
    lose_count: int = 0
    tag_colors: set[str] = field(default_factory=set)
    star_type: StarType | None = None
    streak_continued: bool = False
    current_streak: int = 0
    highlight: HighlightData | None = None
    finalized_at: datetime | None = None
    id: uuid.UUID = field(default_factory=uuid.uuid4)

    @classmethod
    def create(cls, user_id: uuid.UUID, study_date: date) -> "StudyDay":
        return cls(user_id=user_id, study_date=study_date)

    @property
    def total_focus_time(self) -> timedelta:
        return timedelta(seconds=self.total_focus_seconds)

    @property
    def is_finalized(self) -> bool:
        return self.finalized_at is not None

    def add_session_result(
        self,
        bet_result: BetResult,
        actual_focus_time: timedelta,
        tag_colors: set[str] | frozenset[str] = frozenset(),
    ) -> StarType:
        """Accumulate one finished session. Additive, not idempotent."""
        if bet_result == BetResult.PENDING:
            raise ValueError("Cannot aggregate an unjudged bet")

        self.total_focus_seconds += int(actual_focus_time.total_seconds())
        self.total_sessions += 1
        self.tag_colors |= set(tag_colors)

        if bet_result == BetResult.WIN:
            self.win_count += 1
        else:
            self.lose_count += 1

        self.star_type = classify_day(self.win_count, self.lose_count, self.total_focus_seconds)
        return self.star_type

    def finalize(self, highlight: HighlightData, streak_continued: bool, current_streak: int, now: datetime) -> None:
        """One-time terminal write of highlight and streak fields.

        Raises:
            InvalidStateError: the day was already finalized
        """
        if self.is_finalized:
            raise InvalidStateError(
                f"Study day {self.study_date.isoformat()} already finalized",
                required="open",
                actual="finalized",
            )
        self.highlight = highlight
        self.streak_continued = streak_continued
        self.current_streak = current_streak
        self.finalized_at = now

    def attach_ai_suggestion(self, suggestion: str) -> None:
        if self.highlight is None:
            raise InvalidStateError("Study day has no highlight yet", required="finalized", actual="open")
        self.highlight = self.highlight.model_copy(update={"ai_suggestion": suggestion})
