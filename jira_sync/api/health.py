"""Health check API for monitoring system status."""

import time
from datetime import datetime
from importlib.metadata import version, PackageNotFoundError
from typing import List, Optional
from fastapi import APIRouter, Depends
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from pydantic import BaseModel

from jira_sync.database import get_db
from jira_sync.models import JiraIssueRow, JiraProjectRow
from jira_sync.core.sync_scheduler import sync_scheduler

try:
    __version__ = version("jira-sync")
except PackageNotFoundError:
    __version__ = "0.1.0"


router = APIRouter(prefix="/api/health", tags=["health"])


class ComponentHealth(BaseModel):
    """Health status of a single component."""
    name: str
    status: str  # "healthy", "degraded", "unhealthy"
    message: Optional[str] = None
    latency_ms: Optional[float] = None


class StoreSummary(BaseModel):
    projects: int
    named_projects: int
    issues: int
    last_issue_update: Optional[str] = None


class HealthResponse(BaseModel):
    """Complete health check response."""
    status: str
    timestamp: str
    version: str
    components: List[ComponentHealth]
    store: Optional[StoreSummary] = None
    scheduler: dict


class QuickHealthResponse(BaseModel):
    """Quick health check for load balancers."""
    status: str
    timestamp: str


@router.get("/quick", response_model=QuickHealthResponse)
async def quick_health():
    """Quick health check that does not touch the database."""
    return QuickHealthResponse(
        status="healthy",
        timestamp=datetime.utcnow().isoformat()
    )


@router.get("", response_model=HealthResponse)
async def detailed_health(db: AsyncSession = Depends(get_db)):
    """
    Detailed health check with component status.

    Returns database connectivity, a summary of replicated rows and the
    background scheduler state. A scheduler whose last cycle failed makes
    the overall status "degraded".
    """
    components: List[ComponentHealth] = []
    overall_status = "healthy"
    store: Optional[StoreSummary] = None

    db_health = await _check_database(db)
    components.append(db_health)
    if db_health.status == "unhealthy":
        overall_status = "unhealthy"
    else:
        store = await _get_store_summary(db)

    scheduler_status = sync_scheduler.get_status()
    if scheduler_status["last_error"]:
        if overall_status == "healthy":
            overall_status = "degraded"
        components.append(ComponentHealth(
            name="sync",
            status="degraded",
            message=f"Last sync failed: {scheduler_status['last_error'][:200]}"
        ))
    else:
        components.append(ComponentHealth(name="sync", status="healthy"))

    return HealthResponse(
        status=overall_status,
        timestamp=datetime.utcnow().isoformat(),
        version=__version__,
        components=components,
        store=store,
        scheduler=scheduler_status,
    )


async def _check_database(db: AsyncSession) -> ComponentHealth:
    """Check database connectivity."""
    start = time.perf_counter()

    try:
        await db.execute(select(func.count(JiraProjectRow.id)))
        latency = (time.perf_counter() - start) * 1000

        return ComponentHealth(
            name="database",
            status="healthy",
            message="Connected",
            latency_ms=round(latency, 2)
        )
    except Exception as e:
        return ComponentHealth(
            name="database",
            status="unhealthy",
            message=f"Connection failed: {str(e)}"
        )


async def _get_store_summary(db: AsyncSession) -> StoreSummary:
    projects = await db.execute(
        select(
            func.count(JiraProjectRow.id).label('total'),
            func.count(JiraProjectRow.name).label('named'),
        )
    )
    project_row = projects.one()

    issues = await db.execute(
        select(
            func.count(JiraIssueRow.id).label('total'),
            func.max(JiraIssueRow.updated_at).label('last_update'),
        )
    )
    issue_row = issues.one()

    return StoreSummary(
        projects=project_row.total or 0,
        named_projects=project_row.named or 0,
        issues=issue_row.total or 0,
        last_issue_update=issue_row.last_update.isoformat() if issue_row.last_update else None,
    )
