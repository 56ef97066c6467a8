"""User progression: experience, level and streak counters."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime

from studybet.domain.entity import Entity
from studybet.domain.study_day import StreakOutcome

EXP_PER_LEVEL = 100


def required_exp(level: int) -> int:
    return level * EXP_PER_LEVEL


@dataclass(eq=False)
class User(Entity):
    nickname: str
    created_at: datetime
    level: int = 1
    experience: int = 0
    current_streak: int = 0
    longest_streak: int = 0
    id: uuid.UUID = field(default_factory=uuid.uuid4)

    @property
    def required_exp(self) -> int:
        return required_exp(self.level)

    def gain_exp(self, amount: int) -> int:
        """Add experience and level up as many times as the total allows.

        Returns:
            Number of levels gained (0 if none)
        """
        if amount < 0:
            raise ValueError("Experience grants cannot be negative")

        self.experience += amount
        gained = 0
        while self.experience >= self.required_exp:
            self.level += 1
            gained += 1
        return gained

    def record_streak(self, outcome: StreakOutcome) -> None:
        self.current_streak = outcome.current_streak
        self.longest_streak = max(self.longest_streak, outcome.current_streak)
