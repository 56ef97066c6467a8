"""Tests for user experience, levels and streak counters."""

from datetime import UTC, datetime

import pytest

from studybet.domain.study_day import StreakOutcome
from studybet.domain.user import User, required_exp

pytestmark = pytest.mark.unit


@pytest.fixture
def user():
    return User(nickname="studier", created_at=datetime(2024, 1, 1, tzinfo=UTC))


def test_required_exp_is_level_times_100():
    assert required_exp(1) == 100
    assert required_exp(7) == 700


def test_new_user_starts_at_level_one(user):
    assert user.level == 1
    assert user.experience == 0


def test_small_grant_does_not_level_up(user):
    assert user.gain_exp(99) == 0
    assert user.level == 1


def test_crossing_the_threshold_levels_up(user):
    assert user.gain_exp(100) == 1
    assert user.level == 2


def test_one_grant_can_cross_several_thresholds(user):
    # Cumulative: level 1 needs 100, level 2 needs 200, level 3 needs 300
    assert user.gain_exp(250) == 2
    assert user.level == 3
    assert user.experience == 250


def test_negative_grant_is_rejected(user):
    with pytest.raises(ValueError):
        user.gain_exp(-1)


def test_streak_counters_track_the_longest(user):
    user.record_streak(StreakOutcome(continued=True, current_streak=3))
    user.record_streak(StreakOutcome(continued=False, current_streak=0))

    assert user.current_streak == 0
    assert user.longest_streak == 3


def test_entities_compare_by_id(user):
    other = User(nickname="someone else", created_at=user.created_at, id=user.id)
    assert other == user
    assert hash(other) == hash(user)
    assert User(nickname="studier", created_at=user.created_at) != user
