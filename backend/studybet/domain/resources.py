"""Stamina and focus gauge arithmetic.

Pure value objects with no dependencies beyond the interruption reason table.
Costs are computed with exact fractions: float products such as
0.10 * 0.1 * 100 land just above 1 and would round a 1-point cost up to 2.
"""

import math
from dataclasses import dataclass
from datetime import timedelta
from fractions import Fraction

from studybet.domain.interruption import InterruptionReason

MAX_STAMINA = 100
MIN_STAMINA_FOR_WIN = 1
FOCUS_BONUS_THRESHOLD = 70


@dataclass
class Stamina:
    """Depleting 0-100 resource. Never regenerates and never goes negative."""

    current_value: int = MAX_STAMINA

    @classmethod
    def full(cls) -> "Stamina":
        return cls(MAX_STAMINA)

    def consume(
        self,
        reason: InterruptionReason,
        interruption_duration: timedelta,
        target_session_duration: timedelta,
    ) -> int:
        """Deduct the cost of an interruption.

        cost = ceil(base_cost_ratio * interruption / target * 100), clamped so
        the value stops at zero.

        Args:
            reason: Interruption category (sets the base cost ratio)
            interruption_duration: How long the pause lasted
            target_session_duration: The wagered duration (must be positive)

        Returns:
            The stamina points actually deducted (raw cost clamped to what was left)
        """
        time_factor = Fraction(
            int(interruption_duration.total_seconds()),
            int(target_session_duration.total_seconds()),
        )
        raw_cost = math.ceil(Fraction(reason.base_cost_ratio) * time_factor * 100)
        actual_cost = min(raw_cost, self.current_value)

        self.current_value = max(0, self.current_value - raw_cost)
        return actual_cost

    def can_win_bet(self) -> bool:
        return self.current_value >= MIN_STAMINA_FOR_WIN

    @property
    def is_depleted(self) -> bool:
        return self.current_value <= 0

    @property
    def percentage(self) -> int:
        return self.current_value


@dataclass
class FocusGauge:
    """Longest uninterrupted focus interval, measured against the target duration."""

    target_duration_seconds: int
    longest_continuous_focus_seconds: int = 0

    @classmethod
    def create(cls, target_duration: timedelta) -> "FocusGauge":
        return cls(target_duration_seconds=int(target_duration.total_seconds()))

    def record_focus_period(self, focus_duration: timedelta) -> None:
        """Keep the maximum of all observed intervals (never a sum)."""
        seconds = int(focus_duration.total_seconds())
        if seconds > self.longest_continuous_focus_seconds:
            self.longest_continuous_focus_seconds = seconds

    @property
    def percentage(self) -> int:
        if self.target_duration_seconds <= 0:
            return 0
        exact = Fraction(self.longest_continuous_focus_seconds * 100, self.target_duration_seconds)
        # Halves round up: 68.5% -> 69
        return min(100, math.floor(exact + Fraction(1, 2)))

    def qualifies_for_bonus(self) -> bool:
        return self.percentage >= FOCUS_BONUS_THRESHOLD

    @property
    def longest_continuous_focus(self) -> timedelta:
        return timedelta(seconds=self.longest_continuous_focus_seconds)
