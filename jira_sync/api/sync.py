"""API endpoints for triggering Jira syncs manually."""

import logging
from datetime import datetime, timedelta
from typing import AsyncIterator, Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from jira_sync.config import settings
from jira_sync.core.auth import verify_api_key
from jira_sync.core.issue_sync import IssueSyncError, IssueSyncService
from jira_sync.core.project_sync import ProjectSyncError, ProjectSyncService
from jira_sync.dependencies import issue_sync_service, project_sync_service

logger = logging.getLogger(__name__)


router = APIRouter(prefix="/api/sync", tags=["sync"])


class IssueSyncResponse(BaseModel):
    synced: int
    since: str


class ProjectSyncResponse(BaseModel):
    synced: int


async def get_issue_sync_service() -> AsyncIterator[IssueSyncService]:
    async with issue_sync_service() as service:
        yield service


async def get_project_sync_service() -> AsyncIterator[ProjectSyncService]:
    async with project_sync_service() as service:
        yield service


@router.post("/issues", response_model=IssueSyncResponse)
async def sync_issues(
    days: Optional[int] = Query(
        None,
        ge=1,
        le=3650,
        description="Sync issues updated within this many days (default: sync_lookback_days)"
    ),
    service: IssueSyncService = Depends(get_issue_sync_service),
    _: str = Depends(verify_api_key)
):
    """Run an issue sync now and wait for it to finish."""
    lookback = days or settings.sync_lookback_days
    since = datetime.utcnow() - timedelta(days=lookback)

    try:
        synced = await service.sync(since)
    except IssueSyncError as e:
        logger.error(f"Manual issue sync failed: {e}")
        raise HTTPException(
            status_code=502,
            detail=f"{type(e).__name__}: {e}"
        )

    return IssueSyncResponse(synced=synced, since=since.isoformat())


@router.post("/projects", response_model=ProjectSyncResponse)
async def sync_projects(
    service: ProjectSyncService = Depends(get_project_sync_service),
    _: str = Depends(verify_api_key)
):
    """Run a project sync now and wait for it to finish."""
    try:
        synced = await service.sync()
    except ProjectSyncError as e:
        logger.error(f"Manual project sync failed: {e}")
        raise HTTPException(
            status_code=502,
            detail=f"{type(e).__name__}: {e}"
        )

    return ProjectSyncResponse(synced=synced)
