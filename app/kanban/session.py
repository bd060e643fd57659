"""Board session: the context object that owns all client-side state.

A session is started when the user logs in and closed on logout. It owns
the task and project stores, the gateway, the mutation coordinator, the
notification center and the autosave timers. Nothing here is global.
"""

import logging
from typing import Any

from app.core.config import Settings, settings
from app.exceptions.base import BaseAppException, NotFoundError, ValidationError
from app.kanban import dependencies
from app.kanban.autosave import DebouncedSaver
from app.kanban.collection import TaskCollection
from app.kanban.coordinator import Mutation, OptimisticMutationCoordinator
from app.kanban.gateway import SyncGateway, validated
from app.kanban.notifications import SYNC_FAILED_MESSAGE, NotificationCenter
from app.kanban.projection import BoardProjection, TaskFilter, filter_tasks
from app.kanban.registry import ProjectRegistry
from app.schemas.project import ProjectCreate, ProjectRecord, ProjectUpdate
from app.schemas.task import TaskRecord
from app.schemas.team import TeamData

logger = logging.getLogger(__name__)


class BoardSession:
    """Client-side state of one logged-in user."""

    def __init__(
        self,
        uid: str | None = None,
        gateway: SyncGateway | None = None,
        config: Settings | None = None,
        notifier: NotificationCenter | None = None,
    ):
        self.config = config or settings
        self.uid = uid
        self.gateway = gateway or SyncGateway(config=self.config)
        self.notifier = notifier or NotificationCenter()
        self.tasks = TaskCollection()
        self.projects = ProjectRegistry(uid or "", self.tasks)
        self.coordinator = OptimisticMutationCoordinator(
            self.tasks,
            self.gateway,
            self.notifier,
            rollback_on_failure=self.config.rollback_on_failure,
        )
        self.saver = DebouncedSaver(self.config.autosave_delay, on_error=self._autosave_failed)
        self._pending_project_fields: dict[str, dict[str, Any]] = {}
        self.team: TeamData | None = None
        self.loading_projects = False
        self.loading_tasks: set[str] = set()
        self.started = False

    async def __aenter__(self) -> "BoardSession":
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    # ----- lifecycle -----

    async def start(self, username: str | None = None, password: str | None = None) -> list[ProjectRecord]:
        """Log in if credentials are given, then load the user's projects."""
        if username is not None and password is not None:
            self.uid = await self.gateway.login(username, password)
        if not self.uid:
            raise ValidationError("A user id or credentials are required to start a session")

        self.projects.uid = self.uid
        self.started = True
        logger.info("Board session started for %s", self.uid)
        return await self.refresh_projects()

    async def close(self) -> None:
        """Tear the session down: drop timers, in-flight syncs and all state."""
        self.saver.cancel_all()
        self._pending_project_fields.clear()
        await self.coordinator.close()
        self.projects.clear()
        self.tasks.clear_all()
        self.team = None
        self.notifier.clear()
        await self.gateway.aclose()
        self.started = False
        logger.info("Board session closed for %s", self.uid)

    def _autosave_failed(self, project_id: str, error: Exception) -> None:
        self.notifier.error(SYNC_FAILED_MESSAGE, {"project_id": project_id, "error": str(error)})

    def _project_id(self, project_id: str | None) -> str:
        project_id = project_id or (self.projects.selected.id if self.projects.selected else None)
        if not project_id:
            raise ValidationError("No project selected")
        return project_id

    # ----- projects -----

    async def refresh_projects(self) -> list[ProjectRecord]:
        self.loading_projects = True
        try:
            projects = await self.gateway.list_projects(self.uid)
        except BaseAppException:
            self.notifier.error("Failed to load projects")
            raise
        finally:
            self.loading_projects = False
        self.projects.set_all(projects)
        return self.projects.get()

    async def open_project(self, project_id: str) -> BoardProjection:
        """Fetch a project with its tasks and make it the selected board."""
        self.loading_tasks.add(project_id)
        try:
            project, tasks = await self.gateway.get_project(project_id)
        except BaseAppException:
            self.notifier.error("Failed to load project")
            raise
        finally:
            self.loading_tasks.discard(project_id)

        if self.projects.find(project.id) is None:
            self.projects.add(project)
        else:
            self.projects.patch(project.id, project.model_dump())
        self.tasks.set_all(project.id, tasks)
        self.projects.select(project.id)
        return self.board(project.id)

    async def refresh_tasks(self, project_id: str | None = None) -> list[TaskRecord]:
        project_id = self._project_id(project_id)
        self.loading_tasks.add(project_id)
        try:
            tasks = await self.gateway.list_tasks(project_id)
        finally:
            self.loading_tasks.discard(project_id)
        self.tasks.set_all(project_id, tasks)
        return self.tasks.get(project_id)

    async def launch_project(
        self,
        title: str,
        category: str | None = None,
        scale: int = 5,
        document_text: str | None = None,
        color: str | None = None,
    ) -> tuple[ProjectRecord, int]:
        """Create a project (optionally seeded from a document) and add it locally."""
        request = validated(
            ProjectCreate,
            {
                "uid": self.uid,
                "title": title,
                "category": category,
                "scale": scale,
                "color": color,
                "document_text": document_text,
            },
            "uid and title are required",
        )
        project, tasks_created = await self.gateway.create_project(request)
        self.projects.add(project)
        if tasks_created:
            self.notifier.success(f"{tasks_created} tasks extracted")
        return project, tasks_created

    async def update_project(self, project_id: str, debounce: bool = True, **fields: Any) -> ProjectRecord:
        """Apply a project edit locally and save it, debounced by default."""
        if self.projects.find(project_id) is None:
            raise NotFoundError("Project not found", {"project_id": project_id})
        update = validated(ProjectUpdate, fields)
        changes = update.model_dump(exclude_unset=True)
        project = self.projects.patch(project_id, changes)

        pending = self._pending_project_fields.setdefault(project_id, {})
        pending.update(changes)

        async def save() -> None:
            payload = self._pending_project_fields.pop(project_id, {})
            if payload:
                await self.gateway.update_project(project_id, payload)

        if debounce:
            self.saver.schedule(project_id, save)
        else:
            self.saver.cancel(project_id)
            try:
                await save()
            except BaseAppException:
                self.notifier.error(SYNC_FAILED_MESSAGE, {"project_id": project_id})
                raise
        return project

    async def delete_project(self, project_id: str) -> None:
        """Delete a project on the server (tasks first), then locally."""
        self.saver.cancel(project_id)
        self._pending_project_fields.pop(project_id, None)
        try:
            await self.gateway.delete_project(project_id)
        except BaseAppException:
            self.notifier.error("Failed to delete project")
            raise
        self.projects.remove(project_id)

    # ----- team -----

    async def load_team(self) -> TeamData | None:
        """The logged-in user's team, or None before it was first saved."""
        self.team = await self.gateway.get_team(self.uid)
        return self.team

    async def save_team(self, **fields: Any) -> TeamData:
        """Save team fields (``team_name``, ``members``, ``team_schedules``)."""
        team = validated(TeamData, fields)
        try:
            await self.gateway.save_team(self.uid, team)
        except BaseAppException:
            self.notifier.error("Failed to save team data")
            raise
        current = self.team.model_dump() if self.team else {}
        self.team = TeamData.model_validate({**current, **team.model_dump(exclude_unset=True)})
        return self.team

    # ----- tasks -----

    def create_task(self, content: str, project_id: str | None = None, **fields: Any) -> Mutation:
        return self.coordinator.create_task(self._project_id(project_id), content, **fields)

    def move_task(self, active_id: str, over_id: str | None, project_id: str | None = None) -> Mutation | None:
        return self.coordinator.move_task(self._project_id(project_id), active_id, over_id)

    def edit_task(self, task_id: str, project_id: str | None = None, **fields: Any) -> Mutation:
        return self.coordinator.edit_task(self._project_id(project_id), task_id, **fields)

    def delete_task(self, task_id: str, project_id: str | None = None) -> Mutation:
        return self.coordinator.delete_task(self._project_id(project_id), task_id)

    async def wait_idle(self) -> None:
        await self.coordinator.wait_idle()
        await self.saver.flush()

    # ----- read side -----

    def board(self, project_id: str | None = None) -> BoardProjection:
        return BoardProjection.build(self.tasks, self._project_id(project_id))

    def filtered_tasks(self, task_filter: TaskFilter, project_id: str | None = None) -> list[TaskRecord]:
        return filter_tasks(self.tasks.get(self._project_id(project_id)), task_filter)

    def blocking_tasks(self, task_id: str, project_id: str | None = None) -> list[TaskRecord]:
        project_id = self._project_id(project_id)
        task = self.tasks.find(project_id, task_id)
        if task is None:
            raise NotFoundError("Task not found", {"task_id": task_id})
        return dependencies.blocking_tasks(
            task, self.tasks.get(project_id), self.config.circular_dependencies_block
        )

    def is_startable(self, task_id: str, project_id: str | None = None) -> bool:
        return not self.blocking_tasks(task_id, project_id)
