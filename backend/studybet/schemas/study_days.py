"""Pydantic schemas for study days."""

import uuid
from datetime import date, datetime

from pydantic import BaseModel, Field

from studybet.domain.highlight import HighlightData
from studybet.domain.study_day import StarType, StudyDay


class StudyDayResponse(BaseModel):
    id: uuid.UUID
    study_date: date
    total_focus_seconds: int
    total_sessions: int
    win_count: int
    lose_count: int
    tag_colors: list[str] = Field(default_factory=list)
    star_type: StarType | None = None
    streak_continued: bool = False
    current_streak: int = 0
    highlight: HighlightData | None = None
    finalized_at: datetime | None = None

    @classmethod
    def from_domain(cls, day: StudyDay) -> "StudyDayResponse":
        return cls(
            id=day.id,
            study_date=day.study_date,
            total_focus_seconds=day.total_focus_seconds,
            total_sessions=day.total_sessions,
            win_count=day.win_count,
            lose_count=day.lose_count,
            tag_colors=sorted(day.tag_colors),
            star_type=day.star_type,
            streak_continued=day.streak_continued,
            current_streak=day.current_streak,
            highlight=day.highlight,
            finalized_at=day.finalized_at,
        )


class StudyDayListResponse(BaseModel):
    """Study days in a date range, oldest first. Empty list when none exist."""

    items: list[StudyDayResponse] = Field(default_factory=list)
    total: int = 0


class DayFinalizationResponse(BaseModel):
    study_day: StudyDayResponse
    streak_continued: bool
    current_streak: int
    closed_session_id: uuid.UUID | None = None
