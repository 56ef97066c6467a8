"""SqlStudyRepository: StudyRepository over SQLAlchemy async + PostgreSQL.

Domain aggregates are plain dataclasses; this module maps them to and from
the rows in studybet.db.models. Ownership is explicit: saving a Session
writes its bet, interruptions and tag links; deleting it removes them.
"""

import uuid
from collections.abc import Iterable
from datetime import date, datetime

import structlog
from sqlalchemy import delete, insert, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from studybet.db.models import (
    BetRow,
    InterruptionRow,
    PenaltyRow,
    StudyDayRow,
    StudySessionRow,
    TagRow,
    UserRow,
    session_tags,
)
from studybet.db.repository import default_nickname
from studybet.domain.bet import Bet, BetResult
from studybet.domain.highlight import HighlightData
from studybet.domain.interruption import Interruption, InterruptionReason
from studybet.domain.penalty import Penalty, PenaltyContext, PenaltyType
from studybet.domain.resources import FocusGauge, Stamina
from studybet.domain.session import Pledge, Session, SessionStatus
from studybet.domain.study_day import StarType, StudyDay
from studybet.domain.tag import Tag
from studybet.domain.user import User

logger = structlog.get_logger(__name__)

_OPEN_STATUSES = (SessionStatus.ACTIVE.value, SessionStatus.PAUSED.value)


# ---------------------------------------------------------------------------
# Row <-> domain mapping
# ---------------------------------------------------------------------------


def user_to_row(user: User) -> UserRow:
    return UserRow(
        id=user.id,
        nickname=user.nickname,
        level=user.level,
        experience_points=user.experience,
        current_streak=user.current_streak,
        longest_streak=user.longest_streak,
        created_at=user.created_at,
    )


def user_from_row(row: UserRow) -> User:
    return User(
        id=row.id,
        nickname=row.nickname,
        level=row.level,
        experience=row.experience_points,
        current_streak=row.current_streak,
        longest_streak=row.longest_streak,
        created_at=row.created_at,
    )


def tag_to_row(tag: Tag) -> TagRow:
    return TagRow(
        id=tag.id,
        user_id=tag.user_id,
        name=tag.name,
        color_hex=tag.color_hex,
        usage_count=tag.usage_count,
        created_at=tag.created_at,
    )


def tag_from_row(row: TagRow) -> Tag:
    return Tag(
        id=row.id,
        user_id=row.user_id,
        name=row.name,
        color_hex=row.color_hex,
        usage_count=row.usage_count,
        created_at=row.created_at,
    )


def study_day_to_row(day: StudyDay) -> StudyDayRow:
    return StudyDayRow(
        id=day.id,
        user_id=day.user_id,
        date=day.study_date,
        total_focus_seconds=day.total_focus_seconds,
        total_sessions=day.total_sessions,
        win_count=day.win_count,
        lose_count=day.lose_count,
        tag_colors=sorted(day.tag_colors),
        star_type=day.star_type.value if day.star_type else None,
        streak_continued=day.streak_continued,
        current_streak=day.current_streak,
        highlight=day.highlight.model_dump(mode="json") if day.highlight else None,
        finalized_at=day.finalized_at,
    )


def study_day_from_row(row: StudyDayRow) -> StudyDay:
    return StudyDay(
        id=row.id,
        user_id=row.user_id,
        study_date=row.date,
        total_focus_seconds=row.total_focus_seconds,
        total_sessions=row.total_sessions,
        win_count=row.win_count,
        lose_count=row.lose_count,
        tag_colors=set(row.tag_colors or ()),
        star_type=StarType(row.star_type) if row.star_type else None,
        streak_continued=row.streak_continued,
        current_streak=row.current_streak,
        highlight=HighlightData.model_validate(row.highlight) if row.highlight else None,
        finalized_at=row.finalized_at,
    )


def penalty_to_row(penalty: Penalty) -> PenaltyRow:
    return PenaltyRow(
        id=penalty.id,
        user_id=penalty.user_id,
        session_id=penalty.session_id,
        bet_id=penalty.bet_id,
        type=penalty.type.value,
        content=penalty.content,
        context=penalty.context.model_dump(mode="json"),
        is_archived=penalty.is_archived,
        is_viewed=penalty.is_viewed,
        created_at=penalty.created_at,
    )


def penalty_from_row(row: PenaltyRow) -> Penalty:
    return Penalty(
        id=row.id,
        user_id=row.user_id,
        session_id=row.session_id,
        bet_id=row.bet_id,
        type=PenaltyType(row.type),
        content=row.content,
        context=PenaltyContext.model_validate(row.context),
        is_archived=row.is_archived,
        is_viewed=row.is_viewed,
        created_at=row.created_at,
    )


def session_to_rows(session: Session) -> tuple[StudySessionRow, BetRow, list[InterruptionRow]]:
    session_row = StudySessionRow(
        id=session.id,
        user_id=session.user_id,
        study_day_id=session.study_day_id,
        pledge_content=session.pledge.content,
        pledge_created_at=session.pledge.created_at,
        target_duration_seconds=session.target_duration_seconds,
        status=session.status.value,
        started_at=session.started_at,
        ended_at=session.ended_at,
        current_focus_started_at=session.current_focus_started_at,
        stamina_current=session.stamina.current_value,
        longest_continuous_focus_seconds=session.focus_gauge.longest_continuous_focus_seconds,
    )
    bet = session.bet
    bet_row = BetRow(
        id=bet.id,
        session_id=session.id,
        target_duration_seconds=bet.target_duration_seconds,
        pledge_content=bet.pledge_content,
        result=bet.result.value,
        fail_reason=bet.fail_reason,
        judged_at=bet.judged_at,
        created_at=bet.created_at,
    )
    interruption_rows = [
        InterruptionRow(
            id=i.id,
            session_id=session.id,
            reason=i.reason.value,
            stopped_at=i.stopped_at,
            resumed_at=i.resumed_at,
            duration_seconds=i.duration_seconds,
            stamina_consumed=i.stamina_consumed,
            stamina_after=i.stamina_after,
        )
        for i in session.interruptions
    ]
    return session_row, bet_row, interruption_rows


def session_from_rows(
    row: StudySessionRow,
    bet_row: BetRow,
    interruption_rows: list[InterruptionRow],
    tag_ids: Iterable[uuid.UUID],
) -> Session:
    return Session(
        id=row.id,
        user_id=row.user_id,
        study_day_id=row.study_day_id,
        pledge=Pledge(content=row.pledge_content, created_at=row.pledge_created_at),
        target_duration_seconds=row.target_duration_seconds,
        started_at=row.started_at,
        ended_at=row.ended_at,
        current_focus_started_at=row.current_focus_started_at,
        status=SessionStatus(row.status),
        stamina=Stamina(current_value=row.stamina_current),
        focus_gauge=FocusGauge(
            target_duration_seconds=row.target_duration_seconds,
            longest_continuous_focus_seconds=row.longest_continuous_focus_seconds,
        ),
        tag_ids=set(tag_ids),
        bet=Bet(
            id=bet_row.id,
            session_id=row.id,
            target_duration_seconds=bet_row.target_duration_seconds,
            pledge_content=bet_row.pledge_content,
            result=BetResult(bet_row.result),
            fail_reason=bet_row.fail_reason,
            judged_at=bet_row.judged_at,
            created_at=bet_row.created_at,
        ),
        interruptions=[
            Interruption(
                id=i.id,
                session_id=row.id,
                reason=InterruptionReason(i.reason),
                stopped_at=i.stopped_at,
                resumed_at=i.resumed_at,
                duration_seconds=i.duration_seconds,
                stamina_consumed=i.stamina_consumed,
                stamina_after=i.stamina_after,
            )
            for i in interruption_rows
        ],
    )


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class SqlStudyRepository:
    """StudyRepository backed by PostgreSQL."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    # --- users ---

    async def get_user(self, user_id: uuid.UUID) -> User | None:
        async with self.session_factory() as db:
            row = await db.get(UserRow, user_id)
            return user_from_row(row) if row else None

    async def get_or_create_user(self, user_id: uuid.UUID, now: datetime) -> User:
        async with self.session_factory() as db:
            row = await db.get(UserRow, user_id)
            if row is not None:
                return user_from_row(row)

            row = UserRow(id=user_id, nickname=default_nickname(user_id), created_at=now)
            db.add(row)
            try:
                await db.commit()
            except IntegrityError:
                # Concurrent first request created it
                await db.rollback()
                row = await db.get(UserRow, user_id)
            else:
                logger.info("user_provisioned", user_id=str(user_id))
            return user_from_row(row)

    # --- sessions ---

    async def _load_session(self, db: AsyncSession, row: StudySessionRow) -> Session:
        bet_row = (await db.execute(select(BetRow).where(BetRow.session_id == row.id))).scalar_one()
        interruption_rows = (
            await db.execute(
                select(InterruptionRow)
                .where(InterruptionRow.session_id == row.id)
                .order_by(InterruptionRow.stopped_at)
            )
        ).scalars().all()
        tag_ids = (
            await db.execute(select(session_tags.c.tag_id).where(session_tags.c.session_id == row.id))
        ).scalars().all()
        return session_from_rows(row, bet_row, list(interruption_rows), tag_ids)

    async def _load_sessions(self, db: AsyncSession, rows: Iterable[StudySessionRow]) -> list[Session]:
        return [await self._load_session(db, row) for row in rows]

    async def get_session(self, session_id: uuid.UUID) -> Session | None:
        async with self.session_factory() as db:
            row = await db.get(StudySessionRow, session_id)
            return await self._load_session(db, row) if row else None

    async def find_open_session(self, user_id: uuid.UUID) -> Session | None:
        async with self.session_factory() as db:
            result = await db.execute(
                select(StudySessionRow)
                .where(StudySessionRow.user_id == user_id, StudySessionRow.status.in_(_OPEN_STATUSES))
                .order_by(StudySessionRow.started_at.desc())
                .limit(1)
            )
            row = result.scalar_one_or_none()
            return await self._load_session(db, row) if row else None

    async def find_stale_sessions(self, started_before: datetime) -> list[Session]:
        async with self.session_factory() as db:
            result = await db.execute(
                select(StudySessionRow)
                .where(
                    StudySessionRow.status.in_(_OPEN_STATUSES),
                    StudySessionRow.started_at < started_before,
                )
                .order_by(StudySessionRow.started_at)
            )
            return await self._load_sessions(db, result.scalars().all())

    async def list_day_sessions(self, study_day_id: uuid.UUID) -> list[Session]:
        async with self.session_factory() as db:
            result = await db.execute(
                select(StudySessionRow)
                .where(StudySessionRow.study_day_id == study_day_id)
                .order_by(StudySessionRow.started_at)
            )
            return await self._load_sessions(db, result.scalars().all())

    async def delete_session(self, session_id: uuid.UUID) -> bool:
        async with self.session_factory() as db:
            row = await db.get(StudySessionRow, session_id)
            if row is None:
                return False
            await db.execute(delete(PenaltyRow).where(PenaltyRow.session_id == session_id))
            await db.execute(delete(InterruptionRow).where(InterruptionRow.session_id == session_id))
            await db.execute(delete(BetRow).where(BetRow.session_id == session_id))
            await db.execute(delete(session_tags).where(session_tags.c.session_id == session_id))
            await db.delete(row)
            await db.commit()
            return True

    # --- study days ---

    async def get_study_day(self, study_day_id: uuid.UUID) -> StudyDay | None:
        async with self.session_factory() as db:
            row = await db.get(StudyDayRow, study_day_id)
            return study_day_from_row(row) if row else None

    async def find_study_day(self, user_id: uuid.UUID, study_date: date) -> StudyDay | None:
        async with self.session_factory() as db:
            result = await db.execute(
                select(StudyDayRow).where(StudyDayRow.user_id == user_id, StudyDayRow.date == study_date)
            )
            row = result.scalar_one_or_none()
            return study_day_from_row(row) if row else None

    async def get_or_create_study_day(self, user_id: uuid.UUID, study_date: date) -> StudyDay:
        existing = await self.find_study_day(user_id, study_date)
        if existing is not None:
            return existing

        day = StudyDay.create(user_id, study_date)
        async with self.session_factory() as db:
            db.add(study_day_to_row(day))
            try:
                await db.commit()
            except IntegrityError:
                # Lost the race on uq_study_days_user_date
                await db.rollback()
                return await self.find_study_day(user_id, study_date)
        return day

    async def list_study_days(self, user_id: uuid.UUID, start: date, end: date) -> list[StudyDay]:
        async with self.session_factory() as db:
            result = await db.execute(
                select(StudyDayRow)
                .where(StudyDayRow.user_id == user_id, StudyDayRow.date >= start, StudyDayRow.date <= end)
                .order_by(StudyDayRow.date)
            )
            return [study_day_from_row(row) for row in result.scalars().all()]

    async def find_unfinalized_days(self, before: date) -> list[StudyDay]:
        async with self.session_factory() as db:
            result = await db.execute(
                select(StudyDayRow)
                .where(StudyDayRow.finalized_at.is_(None), StudyDayRow.date < before)
                .order_by(StudyDayRow.date)
            )
            return [study_day_from_row(row) for row in result.scalars().all()]

    # --- tags ---

    async def get_tags(self, user_id: uuid.UUID, tag_ids: Iterable[uuid.UUID]) -> list[Tag]:
        ids = list(tag_ids)
        if not ids:
            return []
        async with self.session_factory() as db:
            result = await db.execute(select(TagRow).where(TagRow.user_id == user_id, TagRow.id.in_(ids)))
            return [tag_from_row(row) for row in result.scalars().all()]

    async def list_tags(self, user_id: uuid.UUID) -> list[Tag]:
        async with self.session_factory() as db:
            result = await db.execute(
                select(TagRow).where(TagRow.user_id == user_id).order_by(TagRow.usage_count.desc(), TagRow.name)
            )
            return [tag_from_row(row) for row in result.scalars().all()]

    async def find_tag_by_name(self, user_id: uuid.UUID, name: str) -> Tag | None:
        async with self.session_factory() as db:
            result = await db.execute(select(TagRow).where(TagRow.user_id == user_id, TagRow.name == name))
            row = result.scalar_one_or_none()
            return tag_from_row(row) if row else None

    # --- penalties ---

    async def get_penalty(self, penalty_id: uuid.UUID) -> Penalty | None:
        async with self.session_factory() as db:
            row = await db.get(PenaltyRow, penalty_id)
            return penalty_from_row(row) if row else None

    async def list_penalties(self, user_id: uuid.UUID) -> list[Penalty]:
        async with self.session_factory() as db:
            result = await db.execute(
                select(PenaltyRow).where(PenaltyRow.user_id == user_id).order_by(PenaltyRow.created_at.desc())
            )
            return [penalty_from_row(row) for row in result.scalars().all()]

    # --- writes ---

    async def save(self, *entities: User | Session | StudyDay | Tag | Penalty) -> None:
        async with self.session_factory() as db:
            for entity in entities:
                if isinstance(entity, User):
                    await db.merge(user_to_row(entity))
                elif isinstance(entity, Tag):
                    await db.merge(tag_to_row(entity))
                elif isinstance(entity, StudyDay):
                    await db.merge(study_day_to_row(entity))
                elif isinstance(entity, Session):
                    await self._save_session(db, entity)
                elif isinstance(entity, Penalty):
                    await db.merge(penalty_to_row(entity))
                else:
                    raise TypeError(f"Cannot persist {type(entity).__name__}")
            await db.commit()

    async def _save_session(self, db: AsyncSession, session: Session) -> None:
        session_row, bet_row, interruption_rows = session_to_rows(session)
        await db.merge(session_row)
        await db.flush()
        await db.merge(bet_row)
        for row in interruption_rows:
            await db.merge(row)

        await db.execute(delete(session_tags).where(session_tags.c.session_id == session.id))
        if session.tag_ids:
            await db.execute(
                insert(session_tags),
                [{"session_id": session.id, "tag_id": tag_id} for tag_id in session.tag_ids],
            )
