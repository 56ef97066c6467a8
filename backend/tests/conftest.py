"""Shared test fixtures for all test groups."""

import uuid

import pytest

from studybet.core.clock import ManualClock
from studybet.db.repository import InMemoryStudyRepository
from studybet.services.narrative_service import NarrativeService
from studybet.services.study_service import StudyService
from studybet.services.tag_service import TagService

USER_ID = uuid.UUID("00000000-0000-0000-0000-000000000001")
OTHER_USER_ID = uuid.UUID("00000000-0000-0000-0000-000000000002")


class RecordingNotifier:
    """Collects published snapshots instead of sending them."""

    def __init__(self) -> None:
        self.updates = []

    async def publish_session_update(self, user_id, snapshot) -> None:
        self.updates.append((user_id, snapshot))


@pytest.fixture
def clock():
    """ManualClock starting at 2024-01-01 09:00 UTC."""
    return ManualClock()


@pytest.fixture
def repository():
    return InMemoryStudyRepository()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def narrative():
    """NarrativeService with no client: always returns fallback text."""
    return NarrativeService(client=None, enabled=False)


@pytest.fixture
def service(repository, clock, narrative, notifier):
    return StudyService(repository=repository, clock=clock, narrative=narrative, notifier=notifier)


@pytest.fixture
def tag_service(repository, clock):
    return TagService(repository, clock)


@pytest.fixture
def user_id():
    return USER_ID


@pytest.fixture
def other_user_id():
    return OTHER_USER_ID
