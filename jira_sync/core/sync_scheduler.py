"""Background scheduler for periodic Jira sync.

Runs the project sync (optional) followed by the issue sync every
`sync_interval_minutes`. The first cycle looks back `sync_lookback_days`;
later cycles resume from the start of the last successful issue sync.
"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Optional

from jira_sync.config import settings
from jira_sync.dependencies import issue_sync_service, project_sync_service


logger = logging.getLogger(__name__)


class SyncScheduler:
    """Background scheduler that periodically syncs projects and issues from Jira."""

    def __init__(
        self,
        issue_service_factory=issue_sync_service,
        project_service_factory=project_sync_service,
        initial_delay_seconds: float = 60,
    ):
        self.issue_service_factory = issue_service_factory
        self.project_service_factory = project_service_factory
        self.initial_delay_seconds = initial_delay_seconds
        self.running = False
        self.task: Optional[asyncio.Task] = None
        self.shutdown_event = asyncio.Event()
        self._syncing: bool = False
        self._watermark: Optional[datetime] = None
        self._last_sync_started_at: Optional[datetime] = None
        self._last_sync_completed_at: Optional[datetime] = None
        self._last_issues_synced: int = 0
        self._last_projects_synced: int = 0
        self._last_error: Optional[str] = None

    async def start(self):
        """Start the scheduler."""
        if not settings.sync_scheduler_enabled:
            logger.info("Scheduled Jira sync is disabled")
            return

        if self.running:
            logger.warning("Sync scheduler is already running")
            return

        self.running = True
        self.shutdown_event.clear()
        self.task = asyncio.create_task(self._run())
        logger.info(f"Sync scheduler started (interval: {settings.sync_interval_minutes}m)")

    async def stop(self):
        """Stop the scheduler gracefully."""
        if not self.running:
            return

        logger.info("Stopping sync scheduler...")
        self.running = False
        self.shutdown_event.set()

        if self.task:
            self.task.cancel()
            try:
                await self.task
            except asyncio.CancelledError:
                pass

        logger.info("Sync scheduler stopped")

    async def _run(self):
        """Main scheduler loop."""
        try:
            await asyncio.wait_for(
                self.shutdown_event.wait(),
                timeout=self.initial_delay_seconds,
            )
            return  # Shutdown requested during initial delay
        except asyncio.TimeoutError:
            pass

        while self.running:
            try:
                await self.run_cycle()
            except Exception as e:
                logger.error(f"Error in sync cycle: {e}", exc_info=True)

            interval = settings.sync_interval_minutes * 60
            try:
                await asyncio.wait_for(
                    self.shutdown_event.wait(),
                    timeout=interval,
                )
                break  # Shutdown requested
            except asyncio.TimeoutError:
                pass

    async def run_cycle(self) -> bool:
        """
        Run one sync cycle.

        Returns False without doing anything when a cycle is already in
        progress. Sync errors propagate; the watermark only advances after a
        successful issue sync.
        """
        if self._syncing:
            logger.warning("Previous sync cycle still running, skipping")
            return False

        self._syncing = True
        started_at = datetime.utcnow()
        self._last_sync_started_at = started_at
        self._last_error = None

        try:
            if settings.sync_projects_before_issues:
                async with self.project_service_factory() as project_service:
                    self._last_projects_synced = await project_service.sync()

            since = self._watermark or started_at - timedelta(days=settings.sync_lookback_days)
            async with self.issue_service_factory() as issue_service:
                self._last_issues_synced = await issue_service.sync(since)

            self._watermark = started_at
            self._last_sync_completed_at = datetime.utcnow()
            duration = (self._last_sync_completed_at - started_at).total_seconds()
            logger.info(
                f"Sync cycle complete: {self._last_projects_synced} projects, "
                f"{self._last_issues_synced} issues in {duration:.1f}s"
            )
            return True
        except Exception as e:
            self._last_error = str(e)
            raise
        finally:
            self._syncing = False

    def get_status(self) -> dict:
        """Return scheduler status for API consumption."""
        return {
            "enabled": settings.sync_scheduler_enabled,
            "running": self.running,
            "syncing": self._syncing,
            "interval_minutes": settings.sync_interval_minutes,
            "watermark": self._watermark.isoformat() + "Z" if self._watermark else None,
            "last_sync_started_at": (
                self._last_sync_started_at.isoformat() + "Z"
                if self._last_sync_started_at
                else None
            ),
            "last_sync_completed_at": (
                self._last_sync_completed_at.isoformat() + "Z"
                if self._last_sync_completed_at
                else None
            ),
            "last_issues_synced": self._last_issues_synced,
            "last_projects_synced": self._last_projects_synced,
            "last_error": self._last_error,
        }


# Global scheduler instance
sync_scheduler = SyncScheduler()
