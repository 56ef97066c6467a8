"""BetRow: exactly one per session, deleted with it."""

import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.dialects.postgresql import UUID

from studybet.db.base import Base


class BetRow(Base):
    __tablename__ = "bets"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    session_id = Column(
        UUID(as_uuid=True),
        ForeignKey("sessions.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )

    target_duration_seconds = Column(Integer, nullable=False)
    pledge_content = Column(Text, nullable=False)

    result = Column(String(10), nullable=False, default="pending")  # BetResult values
    fail_reason = Column(String(100), nullable=True)
    judged_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
