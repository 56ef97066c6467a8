"""InterruptionRow: owned by a session, deleted with it."""

import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.dialects.postgresql import UUID

from studybet.db.base import Base


class InterruptionRow(Base):
    __tablename__ = "interruptions"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    session_id = Column(UUID(as_uuid=True), ForeignKey("sessions.id", ondelete="CASCADE"), nullable=False, index=True)

    reason = Column(String(20), nullable=False)  # InterruptionReason values
    stopped_at = Column(DateTime(timezone=True), nullable=False)
    resumed_at = Column(DateTime(timezone=True), nullable=True)  # NULL while ongoing
    duration_seconds = Column(Integer, nullable=True)

    stamina_consumed = Column(Integer, nullable=False, default=0)
    stamina_after = Column(Integer, nullable=False, default=0)
