"""Tests for the background sync scheduler."""

import asyncio
from contextlib import asynccontextmanager
from datetime import datetime, timedelta
from unittest.mock import AsyncMock, patch

import pytest

from jira_sync.core.issue_sync import IssueFetchError
from jira_sync.core.sync_scheduler import SyncScheduler


def _factory(service):
    @asynccontextmanager
    async def factory():
        yield service

    return factory


def _scheduler(issue_service=None, project_service=None, **kwargs):
    issue_service = issue_service or AsyncMock()
    project_service = project_service or AsyncMock()
    scheduler = SyncScheduler(
        issue_service_factory=_factory(issue_service),
        project_service_factory=_factory(project_service),
        **kwargs,
    )
    return scheduler, issue_service, project_service


@pytest.mark.asyncio
async def test_start_does_nothing_when_disabled():
    scheduler, _, _ = _scheduler()
    with patch("jira_sync.core.sync_scheduler.settings") as mock_settings:
        mock_settings.sync_scheduler_enabled = False
        await scheduler.start()

    assert scheduler.running is False
    assert scheduler.task is None


@pytest.mark.asyncio
async def test_start_and_stop():
    scheduler, _, _ = _scheduler(initial_delay_seconds=3600)
    with patch("jira_sync.core.sync_scheduler.settings") as mock_settings:
        mock_settings.sync_scheduler_enabled = True
        mock_settings.sync_interval_minutes = 60
        await scheduler.start()
        assert scheduler.running is True

        await scheduler.stop()

    assert scheduler.running is False
    assert scheduler.task.done()


@pytest.mark.asyncio
async def test_first_cycle_uses_lookback_then_advances_watermark():
    scheduler, issue_service, project_service = _scheduler()
    issue_service.sync.return_value = 5
    project_service.sync.return_value = 2

    with patch("jira_sync.core.sync_scheduler.settings") as mock_settings:
        mock_settings.sync_projects_before_issues = True
        mock_settings.sync_lookback_days = 90

        before = datetime.utcnow()
        assert await scheduler.run_cycle() is True
        first_since = issue_service.sync.await_args.args[0]
        assert before - timedelta(days=90, seconds=5) <= first_since <= before - timedelta(days=89)

        await scheduler.run_cycle()
        second_since = issue_service.sync.await_args.args[0]

    assert second_since >= before
    assert project_service.sync.await_count == 2
    status = scheduler.get_status()
    assert status["last_issues_synced"] == 5
    assert status["last_projects_synced"] == 2
    assert status["last_error"] is None


@pytest.mark.asyncio
async def test_project_sync_can_be_skipped():
    scheduler, issue_service, project_service = _scheduler()
    issue_service.sync.return_value = 0

    with patch("jira_sync.core.sync_scheduler.settings") as mock_settings:
        mock_settings.sync_projects_before_issues = False
        mock_settings.sync_lookback_days = 1
        await scheduler.run_cycle()

    project_service.sync.assert_not_called()
    issue_service.sync.assert_awaited_once()


@pytest.mark.asyncio
async def test_failed_cycle_keeps_watermark_and_records_error():
    scheduler, issue_service, _ = _scheduler()
    issue_service.sync.side_effect = IssueFetchError("Failed to fetch issues: 503")

    with patch("jira_sync.core.sync_scheduler.settings") as mock_settings:
        mock_settings.sync_projects_before_issues = False
        mock_settings.sync_lookback_days = 7
        with pytest.raises(IssueFetchError):
            await scheduler.run_cycle()

    status = scheduler.get_status()
    assert status["watermark"] is None
    assert "503" in status["last_error"]
    assert status["syncing"] is False


@pytest.mark.asyncio
async def test_overlapping_cycle_is_skipped():
    release = asyncio.Event()
    issue_service = AsyncMock()

    async def slow_sync(since):
        await release.wait()
        return 1

    issue_service.sync.side_effect = slow_sync
    scheduler, _, _ = _scheduler(issue_service=issue_service)

    with patch("jira_sync.core.sync_scheduler.settings") as mock_settings:
        mock_settings.sync_projects_before_issues = False
        mock_settings.sync_lookback_days = 1

        first = asyncio.create_task(scheduler.run_cycle())
        await asyncio.sleep(0)
        assert await scheduler.run_cycle() is False

        release.set()
        assert await first is True

    assert issue_service.sync.await_count == 1
