"""PenaltyRow: diary entry generated for a lost bet."""

import uuid

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, Text
from sqlalchemy.dialects.postgresql import JSONB, UUID

from studybet.db.base import Base


class PenaltyRow(Base):
    __tablename__ = "penalties"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    session_id = Column(UUID(as_uuid=True), ForeignKey("sessions.id", ondelete="CASCADE"), nullable=False)
    bet_id = Column(UUID(as_uuid=True), ForeignKey("bets.id", ondelete="CASCADE"), nullable=False)

    type = Column(String(30), nullable=False, default="weak_human_diary")
    content = Column(Text, nullable=True)  # NULL until narrative (or fallback) is attached
    context = Column(JSONB, nullable=False)  # PenaltyContext.model_dump(mode="json")

    is_archived = Column(Boolean, nullable=False, default=True)
    is_viewed = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
