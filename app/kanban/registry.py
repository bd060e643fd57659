"""Projects owned by the active identity."""

import logging
from collections.abc import Iterable
from typing import Any

from app.exceptions.base import NotFoundError, ValidationError
from app.exceptions.task import DuplicateProjectError
from app.kanban.collection import TaskCollection
from app.schemas.project import ProjectRecord

logger = logging.getLogger(__name__)


class ProjectRegistry:
    """Loaded projects of one user, plus the currently selected one.

    Removing a project also drops its tasks from the wired ``TaskCollection``.
    """

    def __init__(self, uid: str, tasks: TaskCollection | None = None):
        self.uid = uid
        self.tasks = tasks if tasks is not None else TaskCollection()
        self._projects: list[ProjectRecord] = []
        self._selected_id: str | None = None

    def get(self) -> list[ProjectRecord]:
        return list(self._projects)

    def find(self, project_id: str) -> ProjectRecord | None:
        for project in self._projects:
            if project.id == project_id:
                return project
        return None

    def set_all(self, projects: Iterable[ProjectRecord]) -> None:
        self._projects = [p for p in projects if p.uid == self.uid]
        if self._selected_id and self.find(self._selected_id) is None:
            self._selected_id = None

    def add(self, project: ProjectRecord) -> ProjectRecord:
        if project.uid != self.uid:
            raise ValidationError("Project belongs to another user", {"uid": project.uid})
        if self.find(project.id) is not None:
            raise DuplicateProjectError(f"Project {project.id} already exists")
        self._projects.append(project)
        return project

    def patch(self, project_id: str, fields: dict[str, Any]) -> ProjectRecord | None:
        for index, project in enumerate(self._projects):
            if project.id == project_id:
                updated = ProjectRecord.model_validate({**project.model_dump(), **fields})
                if updated != project:
                    self._projects[index] = updated
                return self._projects[index]
        return None

    def remove(self, project_id: str) -> ProjectRecord | None:
        """Forget a project and its tasks; a missing project is ignored."""
        for index, project in enumerate(self._projects):
            if project.id == project_id:
                self._projects.pop(index)
                break
        else:
            project = None

        if self._selected_id == project_id:
            self._selected_id = None
        self.tasks.clear(project_id)
        return project

    def select(self, project_id: str | None) -> ProjectRecord | None:
        if project_id is None:
            self._selected_id = None
            return None
        project = self.find(project_id)
        if project is None:
            raise NotFoundError("Project not found", {"project_id": project_id})
        self._selected_id = project_id
        return project

    @property
    def selected(self) -> ProjectRecord | None:
        return self.find(self._selected_id) if self._selected_id else None

    def clear(self) -> None:
        for project in self._projects:
            self.tasks.clear(project.id)
        self._projects = []
        self._selected_id = None
