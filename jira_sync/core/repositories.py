"""Persistence of replicated Jira projects and issues."""

import logging
from typing import List, Optional, Sequence, Set

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from jira_sync.core.entities import Issue, Project
from jira_sync.core.transaction import TransactionError, TransactionExecutor
from jira_sync.models import JiraIssueRow, JiraProjectRow


logger = logging.getLogger(__name__)


class RepositoryError(Exception):
    """A query against the local store failed."""


class ProjectAlreadyExistsError(RepositoryError):
    def __init__(self, project_id: int):
        self.project_id = project_id
        super().__init__(f"Project {project_id} already exists")


class ProjectNotFoundError(RepositoryError):
    def __init__(self, project_id: int):
        self.project_id = project_id
        super().__init__(f"Project {project_id} not found")


def _insert_for(session: AsyncSession, table):
    """Return a dialect-specific INSERT supporting ON CONFLICT for the session's database."""
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert(table)
    if dialect == "sqlite":
        return sqlite.insert(table)
    raise RepositoryError(f"Upsert is not supported for database dialect '{dialect}'")


def _issue_from_row(row: JiraIssueRow) -> Issue:
    return Issue(
        id=row.id,
        project_id=row.project_id,
        key=row.key,
        summary=row.summary,
        description=row.description,
        issue_type=row.issue_type,
        priority=row.priority,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class ProjectRepository:
    """Project table access: the tracked key registry, upserts and hand edits."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        executor: Optional[TransactionExecutor] = None,
    ):
        self.session_factory = session_factory
        self.executor = executor or TransactionExecutor(session_factory)

    async def find_all_project_keys(self) -> List[str]:
        """Return the keys of every known project, ordered by key."""
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(JiraProjectRow.key).order_by(JiraProjectRow.key)
                )
                return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise RepositoryError(f"Failed to fetch project keys: {e}") from e

    async def find_by_ids(self, ids: Sequence[int]) -> List[Project]:
        if not ids:
            return []
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(JiraProjectRow)
                    .where(JiraProjectRow.id.in_(list(ids)))
                    .order_by(JiraProjectRow.id)
                )
                return [
                    Project(id=row.id, key=row.key, name=row.name)
                    for row in result.scalars().all()
                ]
        except SQLAlchemyError as e:
            raise RepositoryError(f"Failed to fetch projects by IDs: {e}") from e

    async def find_by_id(self, project_id: int) -> Optional[Project]:
        try:
            async with self.session_factory() as session:
                row = await session.get(JiraProjectRow, project_id)
        except SQLAlchemyError as e:
            raise RepositoryError(f"Failed to fetch project {project_id}: {e}") from e
        if row is None:
            return None
        return Project(id=row.id, key=row.key, name=row.name)

    async def create(self, project: Project) -> Project:
        """
        Insert a new project row.

        Raises:
            ProjectAlreadyExistsError: a project with this id is already stored.
            TransactionError: the insert or commit failed.
        """
        async def insert(session: AsyncSession) -> None:
            if await session.get(JiraProjectRow, project.id) is not None:
                raise ProjectAlreadyExistsError(project.id)
            session.add(JiraProjectRow(id=project.id, key=project.key, name=project.name))

        try:
            await self.executor.run(insert, description=f"create project {project.id}")
        except TransactionError as e:
            if isinstance(e.__cause__, ProjectAlreadyExistsError):
                raise ProjectAlreadyExistsError(project.id) from e
            raise
        logger.info(f"Created project {project.id} ({project.key})")
        return project

    async def update(self, project: Project) -> Project:
        """
        Overwrite the key and name of an existing project row.

        Raises:
            ProjectNotFoundError: no project with this id is stored.
            TransactionError: the update or commit failed.
        """
        async def apply(session: AsyncSession) -> None:
            row = await session.get(JiraProjectRow, project.id)
            if row is None:
                raise ProjectNotFoundError(project.id)
            row.key = project.key
            row.name = project.name

        try:
            await self.executor.run(apply, description=f"update project {project.id}")
        except TransactionError as e:
            if isinstance(e.__cause__, ProjectNotFoundError):
                raise ProjectNotFoundError(project.id) from e
            raise
        logger.info(f"Updated project {project.id} ({project.key})")
        return project

    async def bulk_upsert(self, projects: List[Project]) -> List[Project]:
        """Insert or update projects (key and name) in one transaction."""
        if not projects:
            return []

        async def upsert(session: AsyncSession) -> None:
            for project in projects:
                stmt = _insert_for(session, JiraProjectRow).values(
                    id=project.id,
                    key=project.key,
                    name=project.name,
                )
                stmt = stmt.on_conflict_do_update(
                    index_elements=[JiraProjectRow.id],
                    set_={"key": stmt.excluded.key, "name": stmt.excluded.name},
                )
                await session.execute(stmt)

        await self.executor.run(upsert, description=f"upsert {len(projects)} projects")
        logger.debug(f"Upserted {len(projects)} projects")
        return projects


class IssueRepository:
    """Issue table access; each bulk upsert is one atomic batch."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        executor: Optional[TransactionExecutor] = None,
    ):
        self.session_factory = session_factory
        self.executor = executor or TransactionExecutor(session_factory)

    async def find_by_ids(self, ids: Sequence[int]) -> List[Issue]:
        if not ids:
            return []
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(JiraIssueRow)
                    .where(JiraIssueRow.id.in_(list(ids)))
                    .order_by(JiraIssueRow.id)
                )
                return [_issue_from_row(row) for row in result.scalars().all()]
        except SQLAlchemyError as e:
            raise RepositoryError(f"Failed to fetch issues by IDs: {e}") from e

    async def bulk_upsert(self, issues: List[Issue]) -> List[Issue]:
        """
        Persist one batch of issues atomically.

        Every project referenced by the batch is upserted first as a
        placeholder (key derived from the issue key, no name) so the foreign
        key holds; an existing project keeps its name. Issues are then upserted
        by id, overwriting every column except created_at.

        Raises:
            TransactionError: if any statement or the commit fails; the whole
                batch is rolled back.
        """
        if not issues:
            return []

        async def upsert(session: AsyncSession) -> None:
            registered: Set[int] = set()
            for issue in issues:
                if issue.project_id in registered:
                    continue
                registered.add(issue.project_id)
                await self._upsert_placeholder_project(session, issue)

            for issue in issues:
                await self._upsert_issue(session, issue)

        await self.executor.run(upsert, description=f"upsert batch of {len(issues)} issues")
        logger.debug(f"Upserted {len(issues)} issues")
        return issues

    @staticmethod
    async def _upsert_placeholder_project(session: AsyncSession, issue: Issue) -> None:
        stmt = _insert_for(session, JiraProjectRow).values(
            id=issue.project_id,
            key=issue.project_key,
            name=None,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[JiraProjectRow.id],
            set_={"key": stmt.excluded.key},
        )
        await session.execute(stmt)

    @staticmethod
    async def _upsert_issue(session: AsyncSession, issue: Issue) -> None:
        stmt = _insert_for(session, JiraIssueRow).values(
            id=issue.id,
            project_id=issue.project_id,
            key=issue.key,
            summary=issue.summary,
            description=issue.description,
            issue_type=issue.issue_type,
            priority=issue.priority,
            created_at=issue.created_at,
            updated_at=issue.updated_at,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[JiraIssueRow.id],
            set_={
                "project_id": stmt.excluded.project_id,
                "key": stmt.excluded.key,
                "summary": stmt.excluded.summary,
                "description": stmt.excluded.description,
                "issue_type": stmt.excluded.issue_type,
                "priority": stmt.excluded.priority,
                "updated_at": stmt.excluded.updated_at,
            },
        )
        await session.execute(stmt)
