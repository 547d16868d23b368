"""
Standalone script that keeps every weekly class materialized ahead of time.

Meant to run periodically (e.g. daily via cron) so the rolling window of
sessions never runs dry. Insert-only: existing sessions are never touched.

Usage:
    python scripts/materialize_upcoming.py [--weeks N] [--create-tables] [--prod]
"""

import sys
import os
import asyncio
import argparse
from datetime import datetime
from pathlib import Path

from dotenv import load_dotenv

# --- Path Setup ---
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Top up the materialized sessions of every weekly class.")
    parser.add_argument("--weeks", type=int, default=None, help="Weeks ahead to keep materialized (default: MATERIALIZE_WINDOW_WEEKS).")
    parser.add_argument("--create-tables", action="store_true", help="Create missing tables before running.")
    parser.add_argument("--prod", action="store_true", help="Run against the PRODUCTION database.")
    return parser.parse_args(argv)


async def top_up(session_factory, weeks: int | None = None, reference_now: datetime | None = None) -> tuple[int, list]:
    """
    Refreshes every series in its own session and transaction, so a series
    that fails (lock conflict, database error) is skipped and the others
    still get their sessions. Returns (new occurrences, failed series IDs).
    """
    from src.class_schedule_backend.common.exceptions import ScheduleError
    from src.class_schedule_backend.common.logger import log
    from src.class_schedule_backend.core.weekday_time import utc_now
    from src.class_schedule_backend.services.dependents import DependentsChecker
    from src.class_schedule_backend.services.schedule_service import ScheduleService

    now = reference_now or utc_now()
    async with session_factory() as session:
        series_ids = await ScheduleService(db=session, dependents=DependentsChecker()).series_store.list_ids()

    total, failed = 0, []
    for series_id in series_ids:
        async with session_factory() as session:
            service = ScheduleService(db=session, dependents=DependentsChecker())
            try:
                created = await service.refresh_series(series_id, reference_now=now, window_weeks=weeks)
                await session.commit()
            except ScheduleError as e:
                await session.rollback()
                log.error(f"Skipping series {series_id}: {e.message}")
                failed.append(series_id)
                continue
        total += len(created)

    log.info(f"Top-up finished: {total} new occurrence(s) over {len(series_ids)} series, {len(failed)} failed.")
    return total, failed


async def run(weeks: int | None, create_tables: bool) -> tuple[int, list]:
    # Imported late so TEST_MODE from the environment is honored
    from src.class_schedule_backend.database import engine as db_engine

    db_engine.create_db_engine_and_session_factory()
    try:
        if create_tables:
            await db_engine.create_all_tables()
        return await top_up(db_engine.AsyncSessionLocal, weeks)
    finally:
        await db_engine.dispose_db_engine()


def main():
    args = parse_args()
    load_dotenv(PROJECT_ROOT / '.env')

    if args.prod:
        print("⚠️  WARNING: You are about to materialize sessions in the PRODUCTION database. ⚠️")
        confirmation = input("Are you sure you want to proceed? (y/n): ").strip().lower()
        if confirmation != 'y':
            print("Operation aborted.")
            return
        os.environ["TEST_MODE"] = "False"
    else:
        os.environ.setdefault("TEST_MODE", "True")

    total, failed = asyncio.run(run(args.weeks, args.create_tables))
    print(f"Successfully generated {total} new occurrence(s).")
    if failed:
        print(f"{len(failed)} series could not be refreshed: {', '.join(str(i) for i in failed)}")
        sys.exit(1)


if __name__ == "__main__":
    main()
