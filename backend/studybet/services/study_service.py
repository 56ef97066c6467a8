"""StudyService: session lifecycle and daily settlement orchestration.

Every transition follows the same order:
1. Take the per-session (or per-user) lock when one is configured
2. Load the aggregate and run the domain transition with ``clock.now()``
3. Persist the settled state
4. Only then call the narrative and notification collaborators, whose
   failures degrade to fallback content and never roll back step 3

Writes to a user's study days and progression happen under the
``user:{id}`` lock, writes to a penalty under ``penalty:{id}``. Locks are
taken in the order session -> user and never nested on the same key.
Enrichment results are applied to a freshly reloaded aggregate, never to
the copy that was loaded before the collaborator call.
"""

import uuid
from collections.abc import AsyncGenerator, Callable, Iterable
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import UTC, date, datetime, timedelta, tzinfo

import structlog

from studybet.core.clock import Clock
from studybet.core.exceptions import InvalidStateError, NotFoundError, SessionBusyError
from studybet.core.locking import SessionLock
from studybet.db.repository import StudyRepository
from studybet.domain.highlight import build_highlight
from studybet.domain.interruption import InterruptionReason
from studybet.domain.penalty import Penalty
from studybet.domain.session import Pledge, Session, SessionResult, validate_target_duration
from studybet.domain.study_day import StreakOutcome, StudyDay, resolve_streak
from studybet.domain.user import User
from studybet.services.narrative_service import NarrativeService
from studybet.services.notification_service import SessionNotifier, SessionSnapshot

logger = structlog.get_logger(__name__)

DEFAULT_STALE_AFTER = timedelta(hours=12)


@dataclass
class SessionOutcome:
    """Everything a finished session changed."""

    session: Session
    result: SessionResult
    study_day: StudyDay
    user: User
    levels_gained: int
    penalty: Penalty | None = None


@dataclass
class DayFinalization:
    study_day: StudyDay
    streak: StreakOutcome
    closed_session: SessionOutcome | None = None


@dataclass
class CurrentStatus:
    session: Session | None
    study_day: StudyDay | None
    now: datetime


class StudyService:
    """Facade over the study domain used by the API, the sweeper and scripts."""

    def __init__(
        self,
        repository: StudyRepository,
        clock: Clock,
        narrative: NarrativeService,
        notifier: SessionNotifier,
        lock: SessionLock | None = None,
        timezone: tzinfo = UTC,
        stale_after: timedelta = DEFAULT_STALE_AFTER,
    ):
        self.repository = repository
        self.clock = clock
        self.narrative = narrative
        self.notifier = notifier
        self.lock = lock
        self.timezone = timezone
        self.stale_after = stale_after

    def study_date(self, moment: datetime) -> date:
        """Calendar date a moment belongs to in the configured study timezone."""
        return moment.astimezone(self.timezone).date()

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    async def start_session(
        self,
        user_id: uuid.UUID,
        pledge: str,
        target_duration: timedelta,
        tag_ids: Iterable[uuid.UUID] | None = None,
    ) -> Session:
        """Open a new ACTIVE session for the user.

        Raises:
            ValidationError: blank/too-long pledge or non-positive target
            InvalidStateError: the user already has an ACTIVE or PAUSED session
            NotFoundError: a tag id does not belong to the user
        """
        now = self.clock.now()
        pledge_value = Pledge.of(pledge, now)
        validate_target_duration(target_duration)
        wanted_tags = set(tag_ids or ())

        async with self._locked(f"user:{user_id}"):
            user = await self.repository.get_or_create_user(user_id, now)

            existing = await self.repository.find_open_session(user_id)
            if existing is not None:
                raise InvalidStateError(
                    f"Session {existing.id} is still {existing.status.value}",
                    required="no open session",
                    actual=existing.status.value,
                )

            tags = await self.repository.get_tags(user_id, wanted_tags)
            missing = wanted_tags - {tag.id for tag in tags}
            if missing:
                raise NotFoundError("Tag", sorted(str(tag_id) for tag_id in missing)[0])

            day = await self.repository.get_or_create_study_day(user_id, self.study_date(now))
            session = Session.start(user.id, day.id, pledge_value, target_duration, now, tag_ids=wanted_tags)
            for tag in tags:
                tag.increment_usage()

            await self.repository.save(session, *tags)

        logger.info(
            "session_started",
            session_id=str(session.id),
            user_id=str(user_id),
            study_day_id=str(day.id),
            target_seconds=session.target_duration_seconds,
        )
        await self._notify(session, now)
        return session

    async def get_session(self, user_id: uuid.UUID, session_id: uuid.UUID) -> Session:
        return await self._get_owned_session(user_id, session_id)

    async def pause_session(self, user_id: uuid.UUID, session_id: uuid.UUID, reason: InterruptionReason) -> Session:
        """ACTIVE -> PAUSED.

        Raises:
            NotFoundError: no such session for this user
            InvalidStateError: session is not ACTIVE
            SessionBusyError: another transition holds the session lock
        """
        async with self._locked(f"session:{session_id}"):
            session = await self._get_owned_session(user_id, session_id)
            now = self.clock.now()
            interruption = session.pause(reason, now)
            await self.repository.save(session)

        logger.info(
            "session_paused",
            session_id=str(session_id),
            user_id=str(user_id),
            interruption_id=str(interruption.id),
            reason=reason.value,
        )
        await self._notify(session, now)
        return session

    async def resume_session(self, user_id: uuid.UUID, session_id: uuid.UUID) -> Session:
        """PAUSED -> ACTIVE, charging stamina for the interruption."""
        async with self._locked(f"session:{session_id}"):
            session = await self._get_owned_session(user_id, session_id)
            now = self.clock.now()
            interruption = session.resume(now)
            await self.repository.save(session)

        logger.info(
            "session_resumed",
            session_id=str(session_id),
            user_id=str(user_id),
            interruption_seconds=interruption.duration_seconds,
            stamina_consumed=interruption.stamina_consumed,
            stamina_after=interruption.stamina_after,
        )
        await self._notify(session, now)
        return session

    async def complete_session(self, user_id: uuid.UUID, session_id: uuid.UUID) -> SessionOutcome:
        """End the session normally, judge the bet and settle the day."""
        return await self._finish(user_id, session_id, Session.complete)

    async def abandon_session(self, user_id: uuid.UUID, session_id: uuid.UUID) -> SessionOutcome:
        """Give up on the session: automatic loss, half experience."""
        return await self._finish(user_id, session_id, Session.abandon)

    async def get_current_status(self, user_id: uuid.UUID) -> CurrentStatus:
        now = self.clock.now()
        session = await self.repository.find_open_session(user_id)
        day = await self.repository.find_study_day(user_id, self.study_date(now))
        return CurrentStatus(session=session, study_day=day, now=now)

    # ------------------------------------------------------------------
    # Study days
    # ------------------------------------------------------------------

    async def get_study_day(self, user_id: uuid.UUID, study_date: date) -> StudyDay:
        day = await self.repository.find_study_day(user_id, study_date)
        if day is None:
            raise NotFoundError("StudyDay", study_date.isoformat())
        return day

    async def list_study_days(self, user_id: uuid.UUID, start: date, end: date) -> list[StudyDay]:
        return await self.repository.list_study_days(user_id, start, end)

    async def list_day_sessions(self, user_id: uuid.UUID, study_date: date) -> list[Session]:
        day = await self.get_study_day(user_id, study_date)
        return await self.repository.list_day_sessions(day.id)

    async def finalize_day(self, user_id: uuid.UUID, study_date: date) -> DayFinalization:
        """Close out a study day: streak, highlight, then the AI suggestion.

        An ACTIVE or PAUSED session belonging to the day is completed first.

        Raises:
            NotFoundError: the user has no record for that date
            InvalidStateError: the day was already finalized
        """
        day = await self.get_study_day(user_id, study_date)
        if day.is_finalized:
            raise InvalidStateError(
                f"Study day {study_date.isoformat()} already finalized",
                required="open",
                actual="finalized",
            )

        closed = None
        open_session = await self.repository.find_open_session(user_id)
        if open_session is not None and open_session.study_day_id == day.id:
            closed = await self._finish(user_id, open_session.id, Session.complete)

        async with self._locked(f"user:{user_id}"):
            now = self.clock.now()
            day = await self.get_study_day(user_id, study_date)
            sessions = await self.repository.list_day_sessions(day.id)

            previous = await self.repository.find_study_day(user_id, study_date - timedelta(days=1))
            previous_streak = previous.current_streak if previous is not None and previous.is_finalized else 0
            streak = resolve_streak(previous_streak, day.star_type)

            highlight = build_highlight(sessions)
            day.finalize(highlight, streak.continued, streak.current_streak, now)

            user = await self.repository.get_or_create_user(user_id, now)
            user.record_streak(streak)
            await self.repository.save(day, user)

        logger.info(
            "study_day_finalized",
            study_day_id=str(day.id),
            user_id=str(user_id),
            study_date=study_date.isoformat(),
            star_type=day.star_type.value if day.star_type else None,
            current_streak=streak.current_streak,
        )

        suggestion = await self.narrative.generate_day_suggestion(day, highlight)
        async with self._locked(f"user:{user_id}"):
            day = await self.get_study_day(user_id, study_date)
            day.attach_ai_suggestion(suggestion)
            await self.repository.save(day)

        return DayFinalization(study_day=day, streak=streak, closed_session=closed)

    async def finalize_pending_days(self, before: date | None = None) -> list[StudyDay]:
        """Finalize every open study day dated before ``before`` (default: today).

        Days are processed oldest first so each one sees its predecessor's
        streak. A failing day is logged and skipped.
        """
        before = before or self.study_date(self.clock.now())
        finalized = []
        for day in await self.repository.find_unfinalized_days(before):
            try:
                result = await self.finalize_day(day.user_id, day.study_date)
            except Exception:
                logger.exception(
                    "study_day_finalize_failed",
                    study_day_id=str(day.id),
                    user_id=str(day.user_id),
                    study_date=day.study_date.isoformat(),
                )
                continue
            finalized.append(result.study_day)
        return finalized

    # ------------------------------------------------------------------
    # Users and penalties
    # ------------------------------------------------------------------

    async def get_user(self, user_id: uuid.UUID) -> User:
        return await self.repository.get_or_create_user(user_id, self.clock.now())

    async def list_penalties(self, user_id: uuid.UUID) -> list[Penalty]:
        return await self.repository.list_penalties(user_id)

    async def view_penalty(self, user_id: uuid.UUID, penalty_id: uuid.UUID) -> Penalty:
        async with self._locked(f"penalty:{penalty_id}"):
            penalty = await self._get_owned_penalty(user_id, penalty_id)
            if not penalty.is_viewed:
                penalty.mark_viewed()
                await self.repository.save(penalty)
        return penalty

    async def publish_penalty(self, user_id: uuid.UUID, penalty_id: uuid.UUID) -> Penalty:
        """Take a diary entry out of the private archive."""
        async with self._locked(f"penalty:{penalty_id}"):
            penalty = await self._get_owned_penalty(user_id, penalty_id)
            if not penalty.is_archived:
                return penalty
            penalty.unarchive()
            await self.repository.save(penalty)
        logger.info("penalty_published", penalty_id=str(penalty_id), user_id=str(user_id))
        return penalty

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    async def sweep_stale_sessions(self) -> list[uuid.UUID]:
        """Abandon sessions left ACTIVE or PAUSED longer than ``stale_after``.

        Idempotent: a session already ended by someone else is skipped, and
        so is one whose lock is held right now (the next pass retries it).
        Any other failure is logged and the pass moves on.

        Returns:
            Ids of the sessions abandoned by this pass
        """
        cutoff = self.clock.now() - self.stale_after
        stale = await self.repository.find_stale_sessions(cutoff)
        if not stale:
            return []

        abandoned = []
        for session in stale:
            try:
                await self._finish(session.user_id, session.id, Session.abandon)
            except (InvalidStateError, NotFoundError, SessionBusyError) as exc:
                logger.info(
                    "stale_session_skipped",
                    session_id=str(session.id),
                    reason=str(exc),
                    error_type=type(exc).__name__,
                )
                continue
            except Exception:
                logger.exception("stale_session_abandon_failed", session_id=str(session.id))
                continue
            abandoned.append(session.id)

        logger.info("stale_sessions_swept", found=len(stale), abandoned=len(abandoned))
        return abandoned

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def _locked(self, key: str) -> AsyncGenerator[None, None]:
        if self.lock is None:
            yield
            return
        async with self.lock.hold(key):
            yield

    async def _get_owned_session(self, user_id: uuid.UUID, session_id: uuid.UUID) -> Session:
        session = await self.repository.get_session(session_id)
        if session is None or session.user_id != user_id:
            raise NotFoundError("Session", session_id)
        return session

    async def _get_owned_penalty(self, user_id: uuid.UUID, penalty_id: uuid.UUID) -> Penalty:
        penalty = await self.repository.get_penalty(penalty_id)
        if penalty is None or penalty.user_id != user_id:
            raise NotFoundError("Penalty", penalty_id)
        return penalty

    async def _finish(
        self,
        user_id: uuid.UUID,
        session_id: uuid.UUID,
        ending: Callable[[Session, datetime], SessionResult],
    ) -> SessionOutcome:
        async with self._locked(f"session:{session_id}"):
            session = await self._get_owned_session(user_id, session_id)
            now = self.clock.now()
            result = ending(session, now)
            outcome = await self._settle(session, result, now)

        await self._notify(session, now)
        if outcome.penalty is not None:
            await self._write_penalty_text(outcome.penalty)
        return outcome

    async def _settle(self, session: Session, result: SessionResult, now: datetime) -> SessionOutcome:
        """Record the result on the day and the user. Caller holds the session lock."""
        async with self._locked(f"user:{session.user_id}"):
            day = await self.repository.get_study_day(session.study_day_id)
            if day is None:
                raise NotFoundError("StudyDay", session.study_day_id)

            tags = await self.repository.get_tags(session.user_id, session.tag_ids)
            day.add_session_result(result.bet_result, result.actual_focus_time, {tag.color_hex for tag in tags})

            user = await self.repository.get_or_create_user(session.user_id, now)
            levels_gained = user.gain_exp(result.total_exp)

            await self.repository.save(session, day, user)

        logger.info(
            "session_settled",
            session_id=str(session.id),
            user_id=str(session.user_id),
            status=session.status.value,
            bet_result=result.bet_result.value,
            fail_reason=result.fail_reason,
            focus_seconds=int(result.actual_focus_time.total_seconds()),
            exp=result.total_exp,
            levels_gained=levels_gained,
            star_type=day.star_type.value,
        )

        penalty = None
        if result.should_create_penalty():
            penalty = Penalty.create(session, result, now)
            await self.repository.save(penalty)

        return SessionOutcome(
            session=session,
            result=result,
            study_day=day,
            user=user,
            levels_gained=levels_gained,
            penalty=penalty,
        )

    async def _write_penalty_text(self, penalty: Penalty) -> None:
        content = await self.narrative.generate_penalty_text(penalty.context)
        async with self._locked(f"penalty:{penalty.id}"):
            stored = await self.repository.get_penalty(penalty.id)
            if stored is None:
                return
            stored.generate_content(content)
            await self.repository.save(stored)
        penalty.generate_content(content)

    async def _notify(self, session: Session, now: datetime) -> None:
        await self.notifier.publish_session_update(session.user_id, SessionSnapshot.of(session, now))
