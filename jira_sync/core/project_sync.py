"""Project list synchronization: fills in keys and names for every visible Jira project."""

import logging
from typing import List, Protocol

from jira_sync.core.entities import Project


logger = logging.getLogger(__name__)


class ProjectSource(Protocol):
    async def fetch_projects(self) -> List[Project]: ...


class ProjectStore(Protocol):
    async def bulk_upsert(self, projects: List[Project]) -> List[Project]: ...


class ProjectSyncError(Exception):
    """Base class for project sync failures."""


class ProjectFetchError(ProjectSyncError):
    pass


class ProjectPersistError(ProjectSyncError):
    pass


class ProjectSyncService:
    def __init__(self, project_source: ProjectSource, project_store: ProjectStore):
        self.project_source = project_source
        self.project_store = project_store

    async def sync(self) -> int:
        """Fetch all projects and upsert them in one transaction. Returns the count."""
        try:
            projects = await self.project_source.fetch_projects()
        except Exception as e:
            logger.error(f"Failed to fetch projects: {e}")
            raise ProjectFetchError(f"Failed to fetch projects: {e}") from e

        if not projects:
            logger.info("No projects returned by Jira")
            return 0

        try:
            await self.project_store.bulk_upsert(projects)
        except Exception as e:
            logger.error(f"Failed to persist {len(projects)} projects: {e}")
            raise ProjectPersistError(f"Failed to persist projects: {e}") from e

        logger.info(f"Project sync complete: {len(projects)} projects synced")
        return len(projects)
