"""Registering and editing tracked projects by hand, without a full project sync."""

import logging
from typing import Optional, Protocol

from jira_sync.core.entities import Project
from jira_sync.core.repositories import ProjectAlreadyExistsError, ProjectNotFoundError


logger = logging.getLogger(__name__)


class ProjectCommandStore(Protocol):
    async def find_by_id(self, project_id: int) -> Optional[Project]: ...

    async def create(self, project: Project) -> Project: ...

    async def update(self, project: Project) -> Project: ...


class ProjectCommandError(Exception):
    """Base class for project create/update failures."""


class ProjectValidationError(ProjectCommandError):
    pass


class ProjectCreateError(ProjectCommandError):
    pass


class DuplicateProjectError(ProjectCreateError):
    pass


class ProjectUpdateError(ProjectCommandError):
    pass


class UnknownProjectError(ProjectUpdateError):
    def __init__(self, project_id: int):
        self.project_id = project_id
        super().__init__(f"Project {project_id} not found")


def build_project(project_id: int, key: str, name: str) -> Project:
    """
    Validate user input into a Project.

    Unlike projects discovered through issues, a project registered by hand
    must carry a name.

    Raises:
        ProjectValidationError: the id, key or name is invalid.
    """
    if isinstance(project_id, bool) or not isinstance(project_id, int):
        raise ProjectValidationError(f"Project ID must be an integer: {project_id!r}")
    if not isinstance(key, str) or not key.strip():
        raise ProjectValidationError("Project key cannot be empty")
    key = key.strip()
    # Issue keys are <PROJECT>-<number>
    if "-" in key or any(c.isspace() for c in key):
        raise ProjectValidationError(f"Project key {key!r} cannot contain '-' or whitespace")
    if not isinstance(name, str) or not name:
        raise ProjectValidationError("Project name cannot be empty")
    try:
        return Project(id=project_id, key=key, name=name)
    except ValueError as e:
        raise ProjectValidationError(str(e)) from e


class ProjectCommandService:
    def __init__(self, store: ProjectCommandStore):
        self.store = store

    async def create(self, project_id: int, key: str, name: str) -> Project:
        """
        Register a new project.

        Raises:
            ProjectValidationError: the input is invalid; nothing is stored.
            DuplicateProjectError: a project with this id already exists.
            ProjectCreateError: the store failed.
        """
        project = build_project(project_id, key, name)

        try:
            created = await self.store.create(project)
        except ProjectAlreadyExistsError as e:
            raise DuplicateProjectError(str(e)) from e
        except Exception as e:
            logger.error(f"Failed to create project {project.id}: {e}")
            raise ProjectCreateError(f"Failed to create project {project.id}: {e}") from e

        return created

    async def update(self, project_id: int, key: str, name: str) -> Project:
        """
        Replace the key and name of a stored project.

        Raises:
            ProjectValidationError: the input is invalid; nothing is changed.
            UnknownProjectError: no project with this id is stored.
            ProjectUpdateError: looking up or saving the project failed.
        """
        project = build_project(project_id, key, name)

        try:
            existing = await self.store.find_by_id(project.id)
        except Exception as e:
            logger.error(f"Failed to look up project {project.id}: {e}")
            raise ProjectUpdateError(f"Failed to look up project {project.id}: {e}") from e
        if existing is None:
            raise UnknownProjectError(project.id)

        try:
            updated = await self.store.update(project)
        except ProjectNotFoundError as e:
            # Deleted between lookup and update
            raise UnknownProjectError(project.id) from e
        except Exception as e:
            logger.error(f"Failed to update project {project.id}: {e}")
            raise ProjectUpdateError(f"Failed to update project {project.id}: {e}") from e

        if existing.key != updated.key:
            logger.info(f"Project {project.id} key changed: {existing.key} -> {updated.key}")
        return updated
