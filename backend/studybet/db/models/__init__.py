"""Re-export all models so Base.metadata sees them."""

from studybet.db.models.bet import BetRow
from studybet.db.models.interruption import InterruptionRow
from studybet.db.models.penalty import PenaltyRow
from studybet.db.models.session import StudySessionRow, session_tags
from studybet.db.models.study_day import StudyDayRow
from studybet.db.models.tag import TagRow
from studybet.db.models.user import UserRow

__all__ = [
    "BetRow",
    "InterruptionRow",
    "PenaltyRow",
    "StudyDayRow",
    "StudySessionRow",
    "TagRow",
    "UserRow",
    "session_tags",
]
