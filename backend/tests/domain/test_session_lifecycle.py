"""Tests for the session state machine, bet judgment and experience rewards."""

import uuid
from datetime import UTC, datetime, timedelta

import pytest

from studybet.core.exceptions import InvalidStateError, ValidationError
from studybet.domain.bet import (
    FAIL_ABANDONED,
    FAIL_STAMINA_DEPLETED,
    FAIL_TARGET_NOT_MET,
    BetResult,
)
from studybet.domain.interruption import InterruptionReason
from studybet.domain.session import Pledge, Session, SessionStatus

pytestmark = pytest.mark.unit

T0 = datetime(2024, 1, 1, 9, 0, tzinfo=UTC)


def at(**kwargs) -> datetime:
    return T0 + timedelta(**kwargs)


def make_session(target: timedelta = timedelta(minutes=30)) -> Session:
    return Session.start(
        user_id=uuid.uuid4(),
        study_day_id=uuid.uuid4(),
        pledge=Pledge.of("Finish chapter 3", T0),
        target_duration=target,
        now=T0,
    )


# ============================================================================
# Creation
# ============================================================================


def test_start_opens_active_session_with_pending_bet():
    session = make_session()

    assert session.status == SessionStatus.ACTIVE
    assert session.stamina.current_value == 100
    assert session.focus_gauge.percentage == 0
    assert session.current_focus_started_at == T0
    assert session.bet.result == BetResult.PENDING
    assert session.bet.session_id == session.id
    assert session.bet.pledge_content == "Finish chapter 3"
    assert session.bet.target_duration == timedelta(minutes=30)


@pytest.mark.parametrize("content", ["", "   ", "x" * 501])
def test_pledge_rejects_blank_or_too_long(content):
    with pytest.raises(ValidationError):
        Pledge.of(content, T0)


def test_pledge_accepts_exactly_500_chars():
    assert len(Pledge.of("x" * 500, T0).content) == 500


@pytest.mark.parametrize("target", [timedelta(0), timedelta(seconds=-60)])
def test_start_rejects_non_positive_target(target):
    with pytest.raises(ValidationError):
        make_session(target)


# ============================================================================
# Transitions
# ============================================================================


def test_pause_flushes_focus_and_opens_interruption():
    session = make_session()

    interruption = session.pause(InterruptionReason.TOILET, at(minutes=10))

    assert session.status == SessionStatus.PAUSED
    assert session.current_focus_started_at is None
    assert session.focus_gauge.longest_continuous_focus == timedelta(minutes=10)
    assert interruption.is_ongoing
    assert session.ongoing_interruption is interruption
    assert session.interruptions == [interruption]


def test_resume_charges_stamina_and_restarts_focus_cursor():
    session = make_session(timedelta(hours=1))
    session.pause(InterruptionReason.REST, at(minutes=10))

    interruption = session.resume(at(minutes=16))

    assert session.status == SessionStatus.ACTIVE
    assert session.current_focus_started_at == at(minutes=16)
    assert interruption.duration == timedelta(minutes=6)
    assert interruption.stamina_consumed == 1
    assert interruption.stamina_after == 99
    assert session.stamina.current_value == 99
    assert session.ongoing_interruption is None


def test_zero_length_pause_costs_nothing():
    session = make_session()
    session.pause(InterruptionReason.DISTRACTION, at(minutes=5))
    interruption = session.resume(at(minutes=5))

    assert interruption.stamina_consumed == 0
    assert session.stamina.current_value == 100


def test_resume_rejects_a_foreign_interruption():
    session = make_session()
    other = make_session()
    session.pause(InterruptionReason.REST, at(minutes=1))
    stray = other.pause(InterruptionReason.REST, at(minutes=1))

    with pytest.raises(InvalidStateError):
        session.resume(at(minutes=2), interruption=stray)


def test_pause_requires_active():
    session = make_session()
    session.pause(InterruptionReason.REST, at(minutes=1))

    with pytest.raises(InvalidStateError) as exc_info:
        session.pause(InterruptionReason.REST, at(minutes=2))

    assert exc_info.value.required == "active"
    assert exc_info.value.actual == "paused"


def test_resume_requires_paused():
    session = make_session()
    with pytest.raises(InvalidStateError) as exc_info:
        session.resume(at(minutes=1))
    assert exc_info.value.required == "paused"


@pytest.mark.parametrize("end", ["complete", "abandon"])
def test_terminal_states_reject_every_transition(end):
    session = make_session()
    getattr(session, end)(at(minutes=5))

    with pytest.raises(InvalidStateError):
        session.pause(InterruptionReason.REST, at(minutes=6))
    with pytest.raises(InvalidStateError):
        session.resume(at(minutes=6))
    with pytest.raises(InvalidStateError):
        session.complete(at(minutes=6))
    with pytest.raises(InvalidStateError):
        session.abandon(at(minutes=6))


# ============================================================================
# Bet judgment
# ============================================================================


def test_exactly_meeting_target_with_half_stamina_wins():
    session = make_session(timedelta(seconds=1800))
    session.stamina.current_value = 50

    result = session.complete(at(seconds=1800))

    assert result.bet_result == BetResult.WIN
    assert result.fail_reason is None
    assert result.actual_focus_time == timedelta(seconds=1800)
    assert session.bet.result == BetResult.WIN
    assert session.bet.judged_at == at(seconds=1800)


def test_one_second_short_loses_even_with_full_stamina():
    session = make_session(timedelta(seconds=1800))

    result = session.complete(at(seconds=1799))

    assert result.bet_result == BetResult.LOSE
    assert result.fail_reason == FAIL_TARGET_NOT_MET
    assert result.should_create_penalty() is True


def test_depleted_stamina_loses_even_when_time_achieved():
    session = make_session(timedelta(minutes=30))
    session.stamina.current_value = 0

    result = session.complete(at(minutes=45))

    assert result.bet_result == BetResult.LOSE
    assert result.fail_reason == FAIL_STAMINA_DEPLETED


def test_stamina_reason_wins_when_both_conditions_fail():
    session = make_session(timedelta(minutes=30))
    session.stamina.current_value = 0

    result = session.complete(at(minutes=10))

    assert result.fail_reason == FAIL_STAMINA_DEPLETED


def test_interruptions_are_subtracted_from_focus_time():
    session = make_session(timedelta(minutes=30))
    session.pause(InterruptionReason.TOILET, at(minutes=20))
    session.resume(at(minutes=25))

    result = session.complete(at(minutes=35))

    assert result.actual_focus_time == timedelta(minutes=30)
    assert result.actual_focus_time <= session.ended_at - session.started_at
    assert result.bet_result == BetResult.WIN


def test_complete_from_paused_closes_the_ongoing_interruption():
    session = make_session(timedelta(hours=1))
    session.pause(InterruptionReason.DISTRACTION, at(minutes=40))

    result = session.complete(at(minutes=70))

    interruption = session.interruptions[-1]
    assert interruption.resumed_at == at(minutes=70)
    assert interruption.duration == timedelta(minutes=30)
    assert interruption.stamina_consumed == 13
    assert session.stamina.current_value == 87
    assert result.actual_focus_time == timedelta(minutes=40)
    assert result.actual_focus_time == (session.ended_at - session.started_at) - session.total_interruption_time
    assert result.bet_result == BetResult.LOSE


def test_focus_time_excludes_ongoing_pause():
    session = make_session()
    session.pause(InterruptionReason.REST, at(minutes=10))

    assert session.focus_time(at(minutes=25)) == timedelta(minutes=10)


# ============================================================================
# Rewards
# ============================================================================


def test_win_with_focus_bonus_reward():
    session = make_session(timedelta(minutes=30))

    result = session.complete(at(minutes=30))

    # 30 min base + 100 win + 50 focus bonus (one uninterrupted 100% stretch)
    assert result.total_exp == 180
    assert result.received_focus_bonus is True
    assert result.final_gauge_percent == 100
    assert result.longest_continuous_focus == timedelta(minutes=30)


def test_loss_without_focus_bonus_gets_base_minutes_only():
    session = make_session(timedelta(minutes=60))
    session.pause(InterruptionReason.REST, at(minutes=20))
    session.resume(at(minutes=21))

    result = session.complete(at(minutes=41))

    assert result.bet_result == BetResult.LOSE
    assert result.received_focus_bonus is False
    assert result.total_exp == 40


def test_abandon_always_loses_with_half_experience():
    session = make_session(timedelta(minutes=30))

    result = session.abandon(at(minutes=45))

    assert session.status == SessionStatus.ABANDONED
    assert result.bet_result == BetResult.LOSE
    assert result.fail_reason == FAIL_ABANDONED
    assert result.received_focus_bonus is False
    assert result.total_exp == 22  # floor(45 * 0.5)


def test_abandon_from_paused_counts_only_focus():
    session = make_session(timedelta(minutes=30))
    session.pause(InterruptionReason.REST, at(minutes=11))

    result = session.abandon(at(minutes=20))

    assert result.actual_focus_time == timedelta(minutes=11)
    assert result.total_exp == 5


# ============================================================================
# Ledger entries
# ============================================================================


def test_interruption_completes_once():
    session = make_session()
    interruption = session.pause(InterruptionReason.REST, at(minutes=1))

    assert interruption.complete(at(minutes=4)) == timedelta(minutes=3)
    with pytest.raises(InvalidStateError):
        interruption.complete(at(minutes=5))


def test_interruption_rejects_time_running_backwards():
    session = make_session()
    interruption = session.pause(InterruptionReason.REST, at(minutes=10))

    with pytest.raises(ValueError):
        interruption.complete(at(minutes=9))


def test_bet_is_judged_exactly_once():
    session = make_session()
    session.complete(at(minutes=30))

    with pytest.raises(InvalidStateError):
        session.bet.lose("again", at(minutes=31))
    with pytest.raises(InvalidStateError):
        session.bet.win(at(minutes=31))
