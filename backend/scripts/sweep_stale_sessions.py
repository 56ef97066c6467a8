"""One-shot reconciliation: abandon stale sessions, finalize forgotten days.

Runs the same pass as the background sweeper, for cron jobs or manual cleanup:

    python scripts/sweep_stale_sessions.py
    python scripts/sweep_stale_sessions.py --skip-days
"""

import argparse
import asyncio

from studybet.main import build_study_service
from studybet.core.config import get_settings
from studybet.db import close_db, close_redis, get_redis, get_session_factory, init_db, init_redis
from studybet.services.sweeper import SessionSweeper


async def main(finalize_days: bool) -> None:
    settings = get_settings()
    await init_db(create_tables=False)
    await init_redis()
    try:
        service = build_study_service(settings, get_session_factory(), get_redis())
        sweeper = SessionSweeper(service, finalize_days=finalize_days)
        abandoned = await sweeper.run_once()

        print(f"Abandoned {len(abandoned)} stale session(s) older than {settings.stale_session_hours}h.")
        for session_id in abandoned:
            print(f"  {session_id}")
    finally:
        await close_redis()
        await close_db()

    print("\nALL DONE")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--skip-days", action="store_true", help="do not finalize past study days")
    args = parser.parse_args()
    asyncio.run(main(finalize_days=not args.skip_days))
