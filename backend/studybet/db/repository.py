"""Persistence boundary for the study domain.

StudyRepository is the contract the services depend on. InMemoryStudyRepository
backs tests and local runs; SqlStudyRepository (sql_repository.py) backs
production. Loads hand out copies, so a caller mutating an aggregate never
changes stored state until it calls ``save``.
"""

import copy
import uuid
from collections.abc import Iterable
from datetime import date, datetime
from typing import Protocol

from studybet.domain.penalty import Penalty
from studybet.domain.session import Session
from studybet.domain.study_day import StudyDay
from studybet.domain.tag import Tag
from studybet.domain.user import User


def default_nickname(user_id: uuid.UUID) -> str:
    return f"studier-{user_id.hex[:8]}"


class StudyRepository(Protocol):
    # Users
    async def get_user(self, user_id: uuid.UUID) -> User | None: ...

    async def get_or_create_user(self, user_id: uuid.UUID, now: datetime) -> User: ...

    # Sessions (own their bet and interruptions)
    async def get_session(self, session_id: uuid.UUID) -> Session | None: ...

    async def find_open_session(self, user_id: uuid.UUID) -> Session | None: ...

    async def find_stale_sessions(self, started_before: datetime) -> list[Session]: ...

    async def list_day_sessions(self, study_day_id: uuid.UUID) -> list[Session]: ...

    async def delete_session(self, session_id: uuid.UUID) -> bool: ...

    # Study days
    async def get_study_day(self, study_day_id: uuid.UUID) -> StudyDay | None: ...

    async def find_study_day(self, user_id: uuid.UUID, study_date: date) -> StudyDay | None: ...

    async def get_or_create_study_day(self, user_id: uuid.UUID, study_date: date) -> StudyDay: ...

    async def list_study_days(self, user_id: uuid.UUID, start: date, end: date) -> list[StudyDay]: ...

    async def find_unfinalized_days(self, before: date) -> list[StudyDay]: ...

    # Tags
    async def get_tags(self, user_id: uuid.UUID, tag_ids: Iterable[uuid.UUID]) -> list[Tag]: ...

    async def list_tags(self, user_id: uuid.UUID) -> list[Tag]: ...

    async def find_tag_by_name(self, user_id: uuid.UUID, name: str) -> Tag | None: ...

    # Penalties
    async def get_penalty(self, penalty_id: uuid.UUID) -> Penalty | None: ...

    async def list_penalties(self, user_id: uuid.UUID) -> list[Penalty]: ...

    # Writes
    async def save(self, *entities: User | Session | StudyDay | Tag | Penalty) -> None:
        """Persist every given aggregate in one transaction."""
        ...


class InMemoryStudyRepository:
    """Dict-backed StudyRepository."""

    def __init__(self) -> None:
        self.users: dict[uuid.UUID, User] = {}
        self.sessions: dict[uuid.UUID, Session] = {}
        self.study_days: dict[uuid.UUID, StudyDay] = {}
        self.tags: dict[uuid.UUID, Tag] = {}
        self.penalties: dict[uuid.UUID, Penalty] = {}

    # --- users ---

    async def get_user(self, user_id: uuid.UUID) -> User | None:
        return copy.deepcopy(self.users.get(user_id))

    async def get_or_create_user(self, user_id: uuid.UUID, now: datetime) -> User:
        if user_id not in self.users:
            self.users[user_id] = User(id=user_id, nickname=default_nickname(user_id), created_at=now)
        return copy.deepcopy(self.users[user_id])

    # --- sessions ---

    async def get_session(self, session_id: uuid.UUID) -> Session | None:
        return copy.deepcopy(self.sessions.get(session_id))

    async def find_open_session(self, user_id: uuid.UUID) -> Session | None:
        for session in self.sessions.values():
            if session.user_id == user_id and session.is_open:
                return copy.deepcopy(session)
        return None

    async def find_stale_sessions(self, started_before: datetime) -> list[Session]:
        stale = [s for s in self.sessions.values() if s.is_open and s.started_at < started_before]
        return copy.deepcopy(sorted(stale, key=lambda s: s.started_at))

    async def list_day_sessions(self, study_day_id: uuid.UUID) -> list[Session]:
        sessions = [s for s in self.sessions.values() if s.study_day_id == study_day_id]
        return copy.deepcopy(sorted(sessions, key=lambda s: s.started_at))

    async def delete_session(self, session_id: uuid.UUID) -> bool:
        # Bet and interruptions live inside the aggregate and go with it
        removed = self.sessions.pop(session_id, None)
        if removed is None:
            return False
        self.penalties = {pid: p for pid, p in self.penalties.items() if p.session_id != session_id}
        return True

    # --- study days ---

    async def get_study_day(self, study_day_id: uuid.UUID) -> StudyDay | None:
        return copy.deepcopy(self.study_days.get(study_day_id))

    async def find_study_day(self, user_id: uuid.UUID, study_date: date) -> StudyDay | None:
        for day in self.study_days.values():
            if day.user_id == user_id and day.study_date == study_date:
                return copy.deepcopy(day)
        return None

    async def get_or_create_study_day(self, user_id: uuid.UUID, study_date: date) -> StudyDay:
        existing = await self.find_study_day(user_id, study_date)
        if existing is not None:
            return existing
        day = StudyDay.create(user_id, study_date)
        self.study_days[day.id] = day
        return copy.deepcopy(day)

    async def list_study_days(self, user_id: uuid.UUID, start: date, end: date) -> list[StudyDay]:
        days = [d for d in self.study_days.values() if d.user_id == user_id and start <= d.study_date <= end]
        return copy.deepcopy(sorted(days, key=lambda d: d.study_date))

    async def find_unfinalized_days(self, before: date) -> list[StudyDay]:
        days = [d for d in self.study_days.values() if not d.is_finalized and d.study_date < before]
        return copy.deepcopy(sorted(days, key=lambda d: d.study_date))

    # --- tags ---

    async def get_tags(self, user_id: uuid.UUID, tag_ids: Iterable[uuid.UUID]) -> list[Tag]:
        wanted = set(tag_ids)
        return copy.deepcopy([t for t in self.tags.values() if t.id in wanted and t.user_id == user_id])

    async def list_tags(self, user_id: uuid.UUID) -> list[Tag]:
        tags = [t for t in self.tags.values() if t.user_id == user_id]
        return copy.deepcopy(sorted(tags, key=lambda t: (-t.usage_count, t.name)))

    async def find_tag_by_name(self, user_id: uuid.UUID, name: str) -> Tag | None:
        for tag in self.tags.values():
            if tag.user_id == user_id and tag.name == name:
                return copy.deepcopy(tag)
        return None

    # --- penalties ---

    async def get_penalty(self, penalty_id: uuid.UUID) -> Penalty | None:
        return copy.deepcopy(self.penalties.get(penalty_id))

    async def list_penalties(self, user_id: uuid.UUID) -> list[Penalty]:
        penalties = [p for p in self.penalties.values() if p.user_id == user_id]
        return copy.deepcopy(sorted(penalties, key=lambda p: p.created_at, reverse=True))

    # --- writes ---

    async def save(self, *entities: User | Session | StudyDay | Tag | Penalty) -> None:
        for entity in entities:
            stored = copy.deepcopy(entity)
            if isinstance(entity, User):
                self.users[entity.id] = stored
            elif isinstance(entity, Session):
                self.sessions[entity.id] = stored
            elif isinstance(entity, StudyDay):
                self.study_days[entity.id] = stored
            elif isinstance(entity, Tag):
                self.tags[entity.id] = stored
            elif isinstance(entity, Penalty):
                self.penalties[entity.id] = stored
            else:
                raise TypeError(f"Cannot persist {type(entity).__name__}")
