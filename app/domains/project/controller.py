"""Project API controller with FastAPI endpoints."""

import logging

from fastapi import APIRouter, Body, Depends, Path, Query

from app.core.dependencies import get_project_service
from app.domains.project.service import ProjectService
from app.exceptions.base import ValidationError
from app.schemas.base import ResponseSchema, envelope
from app.schemas.project import ProjectCreate, ProjectUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/projects", tags=["projects"])


@router.get("", response_model=ResponseSchema)
async def list_projects(
    uid: str | None = Query(None),
    service: ProjectService = Depends(get_project_service),
):
    """Get all projects of a user."""
    if not uid:
        raise ValidationError("uid is required")

    projects = await service.list_projects(uid)
    return envelope(projects=projects)


@router.post("", response_model=ResponseSchema, status_code=201)
async def create_project(
    project_data: ProjectCreate,
    service: ProjectService = Depends(get_project_service),
):
    """Create a new project, extracting tasks from ``documentText`` if present."""
    project, tasks_created = await service.create_project(project_data)
    return envelope(project=project, tasksCreated=tasks_created)


@router.get("/{project_id}", response_model=ResponseSchema)
async def get_project(
    project_id: str = Path(..., description="Project ID"),
    service: ProjectService = Depends(get_project_service),
):
    """Get a project together with its tasks."""
    project, tasks = await service.get_project_with_tasks(project_id)
    return envelope(project=project, tasks=tasks)


@router.patch("/{project_id}", response_model=ResponseSchema)
async def update_project(
    project_id: str = Path(..., description="Project ID"),
    project_data: ProjectUpdate = Body(...),
    service: ProjectService = Depends(get_project_service),
):
    """Update a project."""
    await service.update_project(project_id, project_data)
    return envelope()


@router.delete("/{project_id}", response_model=ResponseSchema)
async def delete_project(
    project_id: str = Path(..., description="Project ID"),
    service: ProjectService = Depends(get_project_service),
):
    """Delete a project and, before it, all of its tasks."""
    await service.delete_project(project_id)
    return envelope()
