#!/usr/bin/env python3
"""
Sync the Jira project list (ids, keys and names) into the local database.

Run this before the first issue sync: the issue sync only searches
projects already present in the database.
"""
import asyncio
import logging
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from jira_sync.config import settings
from jira_sync.core.project_sync import ProjectSyncError
from jira_sync.database import engine, init_db
from jira_sync.dependencies import project_sync_service


logger = logging.getLogger("sync_projects")


async def run() -> int:
    await init_db()

    try:
        async with project_sync_service() as service:
            total = await service.sync()
    except ProjectSyncError as e:
        logger.error(f"Project sync failed ({type(e).__name__}): {e}")
        return 1
    finally:
        await engine.dispose()

    logger.info(f"Synced {total} projects")
    return 0


def main() -> int:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return asyncio.run(run())


if __name__ == "__main__":
    sys.exit(main())
