"""API endpoints for registering and editing tracked Jira projects."""

import logging
from fastapi import APIRouter, Depends, HTTPException, Path
from pydantic import BaseModel, field_validator

from jira_sync.core.auth import verify_api_key
from jira_sync.core.entities import Project
from jira_sync.core.project_commands import (
    DuplicateProjectError,
    ProjectCommandService,
    ProjectCreateError,
    ProjectUpdateError,
    ProjectValidationError,
    UnknownProjectError,
)
from jira_sync.dependencies import project_command_service

logger = logging.getLogger(__name__)


router = APIRouter(prefix="/api/projects", tags=["projects"])


class ProjectUpdate(BaseModel):
    key: str
    name: str

    @field_validator('key')
    @classmethod
    def validate_key(cls, v):
        """Validate project key is not empty."""
        if not v or not v.strip():
            raise ValueError("Project key cannot be empty")
        return v.strip()


class ProjectCreate(ProjectUpdate):
    id: int


class ProjectResponse(BaseModel):
    id: int
    key: str
    name: str | None = None


def get_project_command_service() -> ProjectCommandService:
    return project_command_service()


def _to_response(project: Project) -> ProjectResponse:
    return ProjectResponse(id=project.id, key=project.key, name=project.name)


@router.post("", response_model=ProjectResponse)
async def create_project(
    project: ProjectCreate,
    service: ProjectCommandService = Depends(get_project_command_service),
    _: str = Depends(verify_api_key)
):
    """Register a project so its issues are included in the next issue sync."""
    try:
        created = await service.create(project.id, project.key, project.name)
    except ProjectValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except DuplicateProjectError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ProjectCreateError as e:
        logger.error(f"Project creation failed: {e}")
        raise HTTPException(
            status_code=500,
            detail="Failed to create project. Check server logs for details."
        )

    return _to_response(created)


@router.put("/{project_id}", response_model=ProjectResponse)
async def update_project(
    project_update: ProjectUpdate,
    project_id: int = Path(..., ge=1),
    service: ProjectCommandService = Depends(get_project_command_service),
    _: str = Depends(verify_api_key)
):
    """Replace the key and name of a stored project."""
    try:
        updated = await service.update(project_id, project_update.key, project_update.name)
    except ProjectValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except UnknownProjectError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ProjectUpdateError as e:
        logger.error(f"Project update failed: {e}")
        raise HTTPException(
            status_code=500,
            detail="Failed to update project. Check server logs for details."
        )

    return _to_response(updated)
