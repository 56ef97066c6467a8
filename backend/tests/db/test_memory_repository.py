"""Tests for the in-memory StudyRepository."""

import uuid
from datetime import UTC, date, datetime, timedelta

import pytest

from studybet.db.repository import InMemoryStudyRepository, default_nickname
from studybet.domain.interruption import InterruptionReason
from studybet.domain.penalty import Penalty
from studybet.domain.session import Pledge, Session
from studybet.domain.tag import Tag

pytestmark = pytest.mark.unit

T0 = datetime(2024, 1, 1, 9, 0, tzinfo=UTC)
USER = uuid.UUID("00000000-0000-0000-0000-00000000000a")


def make_session(started_at: datetime = T0, user_id: uuid.UUID = USER, study_day_id: uuid.UUID | None = None) -> Session:
    return Session.start(
        user_id=user_id,
        study_day_id=study_day_id or uuid.uuid4(),
        pledge=Pledge.of("Read two papers", started_at),
        target_duration=timedelta(minutes=30),
        now=started_at,
    )


@pytest.fixture
def repo():
    return InMemoryStudyRepository()


async def test_get_or_create_user_is_idempotent(repo):
    first = await repo.get_or_create_user(USER, T0)
    second = await repo.get_or_create_user(USER, T0 + timedelta(days=1))

    assert first == second
    assert second.nickname == default_nickname(USER)
    assert second.created_at == T0


async def test_loaded_aggregates_are_copies(repo):
    session = make_session()
    await repo.save(session)

    loaded = await repo.get_session(session.id)
    loaded.pause(InterruptionReason.REST, T0 + timedelta(minutes=5))

    stored = await repo.get_session(session.id)
    assert stored.status.value == "active"
    assert stored.interruptions == []


async def test_saved_aggregate_is_detached_from_caller(repo):
    session = make_session()
    await repo.save(session)

    session.pause(InterruptionReason.REST, T0 + timedelta(minutes=5))

    assert (await repo.get_session(session.id)).status.value == "active"


async def test_find_open_session_ignores_finished(repo):
    finished = make_session()
    finished.complete(T0 + timedelta(minutes=30))
    await repo.save(finished)
    assert await repo.find_open_session(USER) is None

    open_session = make_session(T0 + timedelta(hours=1))
    await repo.save(open_session)
    assert (await repo.find_open_session(USER)).id == open_session.id


async def test_find_stale_sessions_by_start_time(repo):
    old = make_session(T0)
    recent = make_session(T0 + timedelta(hours=10), user_id=uuid.uuid4())
    await repo.save(old, recent)

    stale = await repo.find_stale_sessions(T0 + timedelta(hours=1))

    assert [s.id for s in stale] == [old.id]


async def test_list_day_sessions_in_start_order(repo):
    day_id = uuid.uuid4()
    later = make_session(T0 + timedelta(hours=2), study_day_id=day_id)
    earlier = make_session(T0, study_day_id=day_id)
    await repo.save(later, earlier, make_session(T0))

    sessions = await repo.list_day_sessions(day_id)

    assert [s.id for s in sessions] == [earlier.id, later.id]


async def test_delete_session_removes_its_penalty(repo):
    session = make_session()
    result = session.complete(T0 + timedelta(minutes=5))
    penalty = Penalty.create(session, result, T0 + timedelta(minutes=5))
    await repo.save(session, penalty)

    assert await repo.delete_session(session.id) is True

    assert await repo.get_session(session.id) is None
    assert await repo.get_penalty(penalty.id) is None
    assert await repo.delete_session(session.id) is False


async def test_get_or_create_study_day_reuses_existing(repo):
    first = await repo.get_or_create_study_day(USER, date(2024, 1, 1))
    second = await repo.get_or_create_study_day(USER, date(2024, 1, 1))
    other_user = await repo.get_or_create_study_day(uuid.uuid4(), date(2024, 1, 1))

    assert first.id == second.id
    assert other_user.id != first.id


async def test_list_study_days_in_range(repo):
    for day in (3, 1, 2, 9):
        await repo.get_or_create_study_day(USER, date(2024, 1, day))

    days = await repo.list_study_days(USER, date(2024, 1, 1), date(2024, 1, 3))

    assert [d.study_date.day for d in days] == [1, 2, 3]


async def test_find_unfinalized_days_before(repo):
    await repo.get_or_create_study_day(USER, date(2024, 1, 1))
    await repo.get_or_create_study_day(USER, date(2024, 1, 2))

    pending = await repo.find_unfinalized_days(date(2024, 1, 2))

    assert [d.study_date for d in pending] == [date(2024, 1, 1)]


async def test_tags_are_scoped_to_owner_and_ordered_by_usage(repo):
    rarely = Tag.create(USER, "Physics", "#112233", T0)
    often = Tag.create(USER, "Maths", "#445566", T0)
    often.usage_count = 4
    foreign = Tag.create(uuid.uuid4(), "Chemistry", "#778899", T0)
    await repo.save(rarely, often, foreign)

    assert [t.name for t in await repo.list_tags(USER)] == ["Maths", "Physics"]
    assert await repo.get_tags(USER, [foreign.id]) == []
    assert (await repo.find_tag_by_name(USER, "Physics")).id == rarely.id


async def test_list_penalties_newest_first(repo):
    penalties = []
    for minutes in (5, 50):
        session = make_session(T0 + timedelta(minutes=minutes))
        result = session.abandon(T0 + timedelta(minutes=minutes + 1))
        penalty = Penalty.create(session, result, T0 + timedelta(minutes=minutes + 1))
        penalties.append(penalty)
        await repo.save(session, penalty)

    listed = await repo.list_penalties(USER)

    assert [p.id for p in listed] == [penalties[1].id, penalties[0].id]


async def test_save_rejects_unknown_types(repo):
    with pytest.raises(TypeError):
        await repo.save(object())
