"""Real-time session updates over Redis pub/sub.

Clients subscribe to ``user:{user_id}:sessions`` and receive a JSON snapshot
after every transition. Delivery is fire-and-forget: a Redis failure is
logged and dropped, never surfaced to the caller.
"""

import json
import uuid
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Protocol

import redis.asyncio as redis
import structlog

from studybet.domain.session import Session

logger = structlog.get_logger(__name__)


def session_channel(user_id: uuid.UUID) -> str:
    return f"user:{user_id}:sessions"


@dataclass(frozen=True)
class SessionSnapshot:
    session_id: str
    status: str
    stamina: int
    focus_gauge: int
    total_study_seconds: int
    timestamp: str

    @classmethod
    def of(cls, session: Session, now: datetime) -> "SessionSnapshot":
        return cls(
            session_id=str(session.id),
            status=session.status.value,
            stamina=session.stamina.percentage,
            focus_gauge=session.focus_gauge.percentage,
            total_study_seconds=int(session.focus_time(now).total_seconds()),
            timestamp=now.isoformat(),
        )

    def to_payload(self) -> dict:
        return asdict(self)


class SessionNotifier(Protocol):
    async def publish_session_update(self, user_id: uuid.UUID, snapshot: SessionSnapshot) -> None: ...


class RedisNotifier:
    """Publishes session snapshots to per-user Redis channels."""

    def __init__(self, redis_client: redis.Redis):
        self.redis = redis_client

    async def publish_session_update(self, user_id: uuid.UUID, snapshot: SessionSnapshot) -> None:
        try:
            await self.redis.publish(session_channel(user_id), json.dumps(snapshot.to_payload()))
        except Exception as exc:
            logger.warning(
                "session_update_publish_failed",
                user_id=str(user_id),
                session_id=snapshot.session_id,
                error=str(exc),
                error_type=type(exc).__name__,
            )
