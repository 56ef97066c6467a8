"""StudyDayRow: one row per (user, calendar date)."""

import uuid

from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB, UUID

from studybet.db.base import Base


class StudyDayRow(Base):
    __tablename__ = "study_days"
    __table_args__ = (UniqueConstraint("user_id", "date", name="uq_study_days_user_date"),)

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    date = Column(Date, nullable=False)

    # Running totals
    total_focus_seconds = Column(Integer, nullable=False, default=0)
    total_sessions = Column(Integer, nullable=False, default=0)
    win_count = Column(Integer, nullable=False, default=0)
    lose_count = Column(Integer, nullable=False, default=0)
    tag_colors = Column(JSONB, nullable=False, default=list)  # sorted list of "#RRGGBB"

    star_type = Column(String(20), nullable=True)  # StarType values, NULL until first result

    # Frozen at finalization
    streak_continued = Column(Boolean, nullable=False, default=False)
    current_streak = Column(Integer, nullable=False, default=0)
    highlight = Column(JSONB, nullable=True)  # HighlightData.model_dump(mode="json")
    finalized_at = Column(DateTime(timezone=True), nullable=True)
