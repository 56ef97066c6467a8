"""Background reconciliation of sessions nobody closed.

Usage:
    sweeper = SessionSweeper(service, interval_seconds=300)
    task = asyncio.create_task(sweeper.run())
    ...
    task.cancel()

Each pass abandons sessions left open past the staleness threshold and then
finalizes study days from previous dates that were never closed out. Passes
are idempotent and best-effort: a failing pass is logged and the loop keeps
going.
"""

import asyncio
import uuid

import structlog

from studybet.services.study_service import StudyService

logger = structlog.get_logger(__name__)


class SessionSweeper:
    def __init__(self, service: StudyService, interval_seconds: float = 300, finalize_days: bool = True) -> None:
        self.service = service
        self.interval_seconds = interval_seconds
        self.finalize_days = finalize_days

    async def run_once(self) -> list[uuid.UUID]:
        """Run one pass. Returns the ids of the sessions it abandoned."""
        abandoned = await self.service.sweep_stale_sessions()
        if self.finalize_days:
            finalized = await self.service.finalize_pending_days()
            if finalized:
                logger.info("pending_days_finalized", count=len(finalized))
        return abandoned

    async def run(self) -> None:
        """Loop until cancelled."""
        logger.info("session_sweeper_started", interval_seconds=self.interval_seconds)
        try:
            while True:
                try:
                    await self.run_once()
                except Exception as exc:
                    logger.warning(
                        "session_sweep_failed",
                        error=str(exc),
                        error_type=type(exc).__name__,
                    )
                await asyncio.sleep(self.interval_seconds)
        finally:
            logger.info("session_sweeper_stopped")
