"""StudySessionRow: one timed attempt at a pledge."""

import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Table, Text
from sqlalchemy.dialects.postgresql import UUID

from studybet.db.base import Base

session_tags = Table(
    "session_tags",
    Base.metadata,
    Column("session_id", UUID(as_uuid=True), ForeignKey("sessions.id", ondelete="CASCADE"), primary_key=True),
    Column("tag_id", UUID(as_uuid=True), ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True),
)


class StudySessionRow(Base):
    __tablename__ = "sessions"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    study_day_id = Column(UUID(as_uuid=True), ForeignKey("study_days.id"), nullable=False, index=True)

    pledge_content = Column(Text, nullable=False)
    pledge_created_at = Column(DateTime(timezone=True), nullable=False)
    target_duration_seconds = Column(Integer, nullable=False)

    status = Column(String(20), nullable=False, default="active", index=True)  # SessionStatus values

    started_at = Column(DateTime(timezone=True), nullable=False)
    ended_at = Column(DateTime(timezone=True), nullable=True)
    current_focus_started_at = Column(DateTime(timezone=True), nullable=True)  # set iff status == active

    # Resources
    stamina_current = Column(Integer, nullable=False, default=100)
    longest_continuous_focus_seconds = Column(Integer, nullable=False, default=0)
