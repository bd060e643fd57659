"""Task API controller with FastAPI endpoints."""

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, Path, Query
from pydantic import ValidationError as SchemaValidationError

from app.core.dependencies import get_task_service
from app.domains.task.service import TaskService
from app.exceptions.base import ValidationError
from app.schemas.base import ResponseSchema, envelope
from app.schemas.task import BulkTaskUpdate, TaskCreate, TaskUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tasks", tags=["tasks"])


@router.get("", response_model=ResponseSchema)
async def list_tasks(
    project_id: str | None = Query(None, alias="projectId"),
    service: TaskService = Depends(get_task_service),
):
    """Get all tasks of a project."""
    if not project_id:
        raise ValidationError("projectId is required")

    tasks = await service.list_tasks(project_id)
    return envelope(tasks=tasks)


@router.post("", response_model=ResponseSchema, status_code=201)
async def create_tasks(
    body: dict[str, Any] = Body(...),
    service: TaskService = Depends(get_task_service),
):
    """Create a single task, or many when the body carries a ``tasks`` list."""
    if "tasks" in body:
        if not isinstance(body["tasks"], list):
            raise ValidationError("tasks must be an array")
        result = await service.create_tasks(body["tasks"])
        return envelope(count=result.created, skipped=result.skipped)

    try:
        task_data = TaskCreate.model_validate(body)
    except SchemaValidationError as e:
        raise ValidationError.from_schema_error(e, "project_id and content are required")

    task = await service.create_task(task_data)
    return envelope(task=task)


@router.patch("", response_model=ResponseSchema)
async def bulk_update_tasks(
    body: dict[str, Any] = Body(...),
    service: TaskService = Depends(get_task_service),
):
    """Apply status/order changes for several tasks at once."""
    if not isinstance(body.get("updates"), list):
        raise ValidationError("updates array is required")

    try:
        bulk = BulkTaskUpdate.model_validate(body)
    except SchemaValidationError as e:
        raise ValidationError.from_schema_error(e, "Invalid task updates")

    updated = await service.bulk_update(bulk.updates)
    logger.debug("Bulk updated %d tasks", updated)
    return envelope()


@router.patch("/{task_id}", response_model=ResponseSchema)
async def update_task(
    task_id: str = Path(..., description="Task ID"),
    task_data: TaskUpdate = Body(...),
    service: TaskService = Depends(get_task_service),
):
    """Update a specific task."""
    await service.update_task(task_id, task_data)
    return envelope()


@router.delete("/{task_id}", response_model=ResponseSchema)
async def delete_task(
    task_id: str = Path(..., description="Task ID"),
    service: TaskService = Depends(get_task_service),
):
    """Delete a specific task."""
    await service.delete_task(task_id)
    return envelope()
