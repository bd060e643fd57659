"""Project service layer with business logic."""

import logging
from typing import Any

from app.domains.ai.service import TaskExtractionService
from app.domains.task.service import TaskService
from app.exceptions.ai import AIServiceError
from app.exceptions.base import NotFoundError
from app.persistence.base import PROJECTS, SERVER_TIMESTAMP, DocumentNotFound, DocumentStore
from app.schemas.project import ProjectCreate, ProjectUpdate
from app.shared.timestamps import EPOCH, to_utc_datetime

logger = logging.getLogger(__name__)


def _created_key(document: dict[str, Any]):
    try:
        return to_utc_datetime(document.get("created_at")) or EPOCH
    except ValueError:
        return EPOCH


class ProjectService:
    """Service class for project business logic."""

    def __init__(
        self,
        store: DocumentStore,
        extractor: TaskExtractionService | None = None,
    ):
        self.store = store
        self.tasks = TaskService(store)
        self.extractor = extractor

    async def list_projects(self, uid: str) -> list[dict[str, Any]]:
        """Get all projects owned by ``uid``, newest first."""
        projects = await self.store.query(PROJECTS, "uid", uid)
        return sorted(projects, key=_created_key, reverse=True)

    async def get_project(self, project_id: str) -> dict[str, Any]:
        project = await self.store.get(PROJECTS, project_id)
        if project is None:
            raise NotFoundError("Project not found", {"project_id": project_id})
        return project

    async def get_project_with_tasks(self, project_id: str) -> tuple[dict[str, Any], list[dict[str, Any]]]:
        project = await self.get_project(project_id)
        return project, await self.tasks.list_tasks(project_id)

    async def create_project(self, project_data: ProjectCreate) -> tuple[dict[str, Any], int]:
        """Create a project, seeding its board from ``document_text`` when given.

        Returns the stored project and the number of tasks created for it.
        Extraction failures never block project creation.
        """
        summary = ""
        drafts = []
        if self.extractor and project_data.document_text and project_data.document_text.strip():
            try:
                extracted = await self.extractor.extract_tasks(project_data.document_text)
                summary, drafts = extracted.summary, extracted.tasks
            except AIServiceError as e:
                logger.error("Task extraction failed, creating project without tasks: %s", e.message)

        document = project_data.model_dump(mode="json", exclude={"document_text"}, exclude_none=True)
        document["summary"] = summary
        document["created_at"] = SERVER_TIMESTAMP
        project_id = await self.store.create(PROJECTS, document)
        logger.info("Created project %s for %s", project_id, project_data.uid)

        tasks_created = 0
        if drafts:
            result = await self.tasks.create_tasks(
                [{**draft.model_dump(mode="json"), "project_id": project_id} for draft in drafts]
            )
            tasks_created = result.created

        return await self.get_project(project_id), tasks_created

    async def update_project(self, project_id: str, project_data: ProjectUpdate) -> None:
        patch = project_data.model_dump(mode="json", exclude_unset=True)
        try:
            await self.store.update(PROJECTS, project_id, patch)
        except DocumentNotFound:
            raise NotFoundError("Project not found", {"project_id": project_id})

    async def delete_project(self, project_id: str) -> int:
        """Delete a project after all of its tasks.

        If deleting the tasks fails the project is left in place.
        """
        deleted = await self.tasks.delete_project_tasks(project_id)
        await self.store.delete(PROJECTS, project_id)
        logger.info("Deleted project %s and %d tasks", project_id, deleted)
        return deleted
