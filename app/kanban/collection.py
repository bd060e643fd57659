"""In-memory task store, one ordered list per project."""

import logging
from collections.abc import Iterable
from typing import Any

from app.exceptions.base import ValidationError
from app.exceptions.task import DuplicateTaskError
from app.schemas.task import COLUMN_ORDER, TaskRecord, TaskStatus

logger = logging.getLogger(__name__)


class TaskCollection:
    """Holds the tasks of every loaded project.

    Tasks keep their insertion position; column views sort by ``order`` and
    fall back to that position for ties. All operations are synchronous.
    """

    def __init__(self):
        self._tasks: dict[str, list[TaskRecord]] = {}

    def get(self, project_id: str) -> list[TaskRecord]:
        return list(self._tasks.get(project_id, []))

    def find(self, project_id: str, task_id: str) -> TaskRecord | None:
        for task in self._tasks.get(project_id, []):
            if task.id == task_id:
                return task
        return None

    def set_all(self, project_id: str, tasks: Iterable[TaskRecord]) -> None:
        """Replace the tasks of a project with the ones that belong to it."""
        self._tasks[project_id] = [t for t in tasks if t.project_id == project_id]

    def replace(self, project_id: str, tasks: Iterable[TaskRecord]) -> None:
        """Install a snapshot derived from this project's current tasks."""
        self.set_all(project_id, tasks)

    def add(self, project_id: str, task: TaskRecord) -> TaskRecord:
        if task.project_id != project_id:
            raise ValidationError(
                "Task belongs to another project",
                {"project_id": project_id, "task_project_id": task.project_id},
            )
        if self.find(project_id, task.id) is not None:
            raise DuplicateTaskError(f"Task {task.id} already exists in project {project_id}")
        self._tasks.setdefault(project_id, []).append(task)
        return task

    def patch(self, project_id: str, task_id: str, fields: dict[str, Any]) -> TaskRecord | None:
        """Merge ``fields`` into a task; a missing task is ignored."""
        tasks = self._tasks.get(project_id, [])
        for index, task in enumerate(tasks):
            if task.id == task_id:
                updated = task.updated(**fields)
                # Identical values keep the existing record
                if updated != task:
                    tasks[index] = updated
                return tasks[index]
        logger.debug("Ignoring patch for unknown task %s in %s", task_id, project_id)
        return None

    def remove(self, project_id: str, task_id: str) -> TaskRecord | None:
        tasks = self._tasks.get(project_id, [])
        for index, task in enumerate(tasks):
            if task.id == task_id:
                return tasks.pop(index)
        return None

    def insert(self, project_id: str, index: int, task: TaskRecord) -> None:
        """Put a task back at a given position (used to undo a removal)."""
        if self.find(project_id, task.id) is not None:
            raise DuplicateTaskError(f"Task {task.id} already exists in project {project_id}")
        self._tasks.setdefault(project_id, []).insert(index, task)

    def position(self, project_id: str, task_id: str) -> int | None:
        for index, task in enumerate(self._tasks.get(project_id, [])):
            if task.id == task_id:
                return index
        return None

    def reassign_id(self, project_id: str, old_id: str, new_id: str) -> None:
        """Rename a task and every dependency that points at it."""
        tasks = self._tasks.get(project_id, [])
        for index, task in enumerate(tasks):
            if task.id == old_id:
                tasks[index] = task.updated(id=new_id)
            elif old_id in task.dependencies:
                tasks[index] = task.updated(
                    dependencies=[new_id if d == old_id else d for d in task.dependencies]
                )

    def by_status(self, project_id: str) -> dict[TaskStatus, list[TaskRecord]]:
        """Group a project's tasks into the four kanban columns."""
        columns: dict[TaskStatus, list[TaskRecord]] = {status: [] for status in COLUMN_ORDER}
        for task in self._tasks.get(project_id, []):
            columns[task.status].append(task)
        for status in COLUMN_ORDER:
            # sorted() is stable, so equal orders keep insertion position
            columns[status] = sorted(columns[status], key=lambda t: t.order)
        return columns

    def clear(self, project_id: str) -> None:
        self._tasks.pop(project_id, None)

    def clear_all(self) -> None:
        self._tasks.clear()

    def project_ids(self) -> list[str]:
        return list(self._tasks)
