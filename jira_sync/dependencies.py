"""Wiring of sync services to the Jira client and the database."""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from jira_sync.config import settings
from jira_sync.core.issue_sync import IssueSyncService
from jira_sync.core.jira_client import JiraClient
from jira_sync.core.project_commands import ProjectCommandService
from jira_sync.core.project_sync import ProjectSyncService
from jira_sync.core.repositories import IssueRepository, ProjectRepository
from jira_sync.core.transaction import TransactionExecutor
from jira_sync.database import AsyncSessionLocal


@asynccontextmanager
async def issue_sync_service(
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
    client: Optional[JiraClient] = None,
) -> AsyncIterator[IssueSyncService]:
    """Yield an IssueSyncService; a client created here is closed on exit."""
    session_factory = session_factory or AsyncSessionLocal
    executor = TransactionExecutor(session_factory)
    owns_client = client is None
    client = client or JiraClient.from_settings(settings)
    try:
        yield IssueSyncService(
            project_keys=ProjectRepository(session_factory, executor),
            issue_source=client,
            issue_store=IssueRepository(session_factory, executor),
        )
    finally:
        if owns_client:
            await client.aclose()


@asynccontextmanager
async def project_sync_service(
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
    client: Optional[JiraClient] = None,
) -> AsyncIterator[ProjectSyncService]:
    """Yield a ProjectSyncService; a client created here is closed on exit."""
    session_factory = session_factory or AsyncSessionLocal
    owns_client = client is None
    client = client or JiraClient.from_settings(settings)
    try:
        yield ProjectSyncService(
            project_source=client,
            project_store=ProjectRepository(session_factory),
        )
    finally:
        if owns_client:
            await client.aclose()


def project_command_service(
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
) -> ProjectCommandService:
    """Build a ProjectCommandService over the project table."""
    return ProjectCommandService(ProjectRepository(session_factory or AsyncSessionLocal))
