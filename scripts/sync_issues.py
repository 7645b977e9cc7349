#!/usr/bin/env python3
"""
Sync Jira issues updated within the last N days into the local database.

Usage:
    python scripts/sync_issues.py --days 90
"""
import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from datetime import datetime, timedelta
from jira_sync.config import settings
from jira_sync.core.issue_sync import IssueSyncError
from jira_sync.database import engine, init_db
from jira_sync.dependencies import issue_sync_service


logger = logging.getLogger("sync_issues")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Sync Jira issues into the local database")
    parser.add_argument(
        "--days",
        type=int,
        default=settings.sync_lookback_days,
        help=f"Sync issues updated within this many days (default: {settings.sync_lookback_days})",
    )
    args = parser.parse_args(argv)
    if args.days < 1:
        parser.error("--days must be at least 1")
    return args


async def run(days: int) -> int:
    await init_db()
    since = datetime.utcnow() - timedelta(days=days)
    logger.info(f"Starting issue sync for the last {days} days")

    try:
        async with issue_sync_service() as service:
            total = await service.sync(since)
    except IssueSyncError as e:
        logger.error(f"Issue sync failed ({type(e).__name__}): {e}")
        return 1
    finally:
        await engine.dispose()

    logger.info(f"Synced {total} issues")
    return 0


def main(argv=None) -> int:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    args = parse_args(argv)
    return asyncio.run(run(args.days))


if __name__ == "__main__":
    sys.exit(main())
