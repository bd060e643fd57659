"""Optimistic task mutations.

Every user-triggered task mutation is applied to the ``TaskCollection``
synchronously and only then sent to the server in a background task:

    PENDING_LOCAL -> CONFIRMED | FAILED_NOTIFIED | ROLLED_BACK

On failure the user is told to refresh. The local change is kept unless
``rollback_on_failure`` is set, in which case the exact inverse of the local
change is applied.

Created tasks get a temporary id. As soon as the server answers, the server
id replaces it in the collection and in other tasks' dependencies. Remote
calls of one project run in the order they were issued, so a call that
targets a temporary id always runs after the create that resolves it.
"""

import asyncio
import logging
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from app.exceptions.base import BaseAppException, NotFoundError, ValidationError
from app.kanban.collection import TaskCollection
from app.kanban.gateway import SyncGateway, validated
from app.kanban.notifications import SYNC_FAILED_MESSAGE, NotificationCenter
from app.kanban.reducer import apply_drag, order_changes
from app.schemas.task import TaskCreate, TaskOrderUpdate, TaskRecord, TaskStatus, TaskUpdate
from app.shared.timestamps import utcnow

logger = logging.getLogger(__name__)

TEMP_ID_PREFIX = "temp-"


def temporary_id() -> str:
    return f"{TEMP_ID_PREFIX}{uuid.uuid4().hex}"


def is_temporary_id(task_id: str) -> bool:
    return task_id.startswith(TEMP_ID_PREFIX)


class MutationKind(str, Enum):
    CREATE = "create"
    MOVE = "move"
    EDIT = "edit"
    DELETE = "delete"


class MutationState(str, Enum):
    PENDING_LOCAL = "PENDING_LOCAL"
    CONFIRMED = "CONFIRMED"
    FAILED_NOTIFIED = "FAILED_NOTIFIED"
    ROLLED_BACK = "ROLLED_BACK"


@dataclass
class Mutation:
    """One optimistic change and the state of its server round trip."""

    kind: MutationKind
    project_id: str
    task_id: str
    state: MutationState = MutationState.PENDING_LOCAL
    error: BaseAppException | None = None
    dispatch: asyncio.Task | None = field(default=None, repr=False)

    @property
    def done(self) -> bool:
        return self.state != MutationState.PENDING_LOCAL

    async def wait(self) -> MutationState:
        if self.dispatch is not None:
            await asyncio.wait([self.dispatch])
        return self.state


class OptimisticMutationCoordinator:
    """Applies task mutations locally, then syncs them with the server."""

    def __init__(
        self,
        tasks: TaskCollection,
        gateway: SyncGateway,
        notifier: NotificationCenter,
        rollback_on_failure: bool = False,
    ):
        self.tasks = tasks
        self.gateway = gateway
        self.notifier = notifier
        self.rollback_on_failure = rollback_on_failure
        self._in_flight: set[asyncio.Task] = set()
        self._tails: dict[str, asyncio.Task] = {}
        self._server_ids: dict[str, str] = {}
        self._failed_creates: set[str] = set()

    # ----- id reconciliation -----

    def current_id(self, task_id: str) -> str:
        """The id a task is known by locally right now."""
        return self._server_ids.get(task_id, task_id)

    def _unsynced(self, task_id: str) -> bool:
        """True for a task the server does not know about."""
        return task_id in self._failed_creates or (
            is_temporary_id(task_id) and task_id not in self._server_ids
        )

    def _remote_id(self, task_id: str) -> str:
        if task_id in self._failed_creates:
            raise NotFoundError("Task was never created on the server", {"task_id": task_id})
        if is_temporary_id(task_id) and task_id not in self._server_ids:
            raise NotFoundError("Task has no server id yet", {"task_id": task_id})
        return self.current_id(task_id)

    def _remote_ids(self, task_ids: list[str]) -> list[str]:
        return [self.current_id(task_id) for task_id in task_ids]

    def _remote_changes(self, changes: list[TaskOrderUpdate]) -> list[TaskOrderUpdate]:
        """Order patches for the tasks the server knows, under their server ids."""
        remote = []
        for change in changes:
            if self._unsynced(change.id):
                logger.debug("Not sending order of unsynced task %s", change.id)
                continue
            remote.append(change.model_copy(update={"id": self.current_id(change.id)}))
        return remote

    def _compact_column(self, project_id: str, status: TaskStatus) -> list[TaskOrderUpdate]:
        """Renumber one column to 0..n-1 and return the order patches applied."""
        changes = []
        for index, task in enumerate(self.tasks.by_status(project_id)[status]):
            if task.order != index:
                changes.append(TaskOrderUpdate(id=task.id, order=index))
                self.tasks.patch(project_id, task.id, {"order": index})
        return changes

    # ----- mutations -----

    def create_task(self, project_id: str, content: str, **fields: Any) -> Mutation:
        """Add a task to its column right away and create it on the server."""
        draft = validated(
            TaskCreate,
            {**fields, "project_id": project_id, "content": content},
            "project_id and content are required",
        )
        order = draft.order
        if order is None:
            column = self.tasks.by_status(project_id)[draft.status]
            order = column[-1].order + 1 if column else 0

        temp_id = temporary_id()
        record = TaskRecord.model_validate(
            {**draft.model_dump(), "id": temp_id, "order": order, "created_at": utcnow()}
        )
        self.tasks.add(project_id, record)
        mutation = Mutation(MutationKind.CREATE, project_id, temp_id)

        request = draft.model_copy(update={"order": order})

        async def remote() -> None:
            try:
                created = await self.gateway.create_task(
                    request.model_copy(update={"dependencies": self._remote_ids(request.dependencies)})
                )
            except BaseAppException:
                self._failed_creates.add(temp_id)
                raise
            self._server_ids[temp_id] = created.id
            self.tasks.reassign_id(project_id, temp_id, created.id)
            self.tasks.patch(project_id, created.id, {"created_at": created.created_at})
            mutation.task_id = created.id
            logger.debug("Reconciled %s -> %s", temp_id, created.id)

        def inverse() -> None:
            self.tasks.remove(project_id, self.current_id(temp_id))

        return self._dispatch(mutation, remote, inverse)

    def move_task(self, project_id: str, active_id: str, over_id: str | None) -> Mutation | None:
        """Apply a drag gesture; returns None when the drop changes nothing."""
        before = self.tasks.get(project_id)
        after = apply_drag(before, active_id, over_id)
        changes = order_changes(before, after)
        if not changes:
            return None

        self.tasks.replace(project_id, after)
        mutation = Mutation(MutationKind.MOVE, project_id, active_id)
        previous = {task.id: task for task in before}

        async def remote() -> None:
            # A task whose create failed must not hold back the rest of the patch
            remote_changes = self._remote_changes(changes)
            if remote_changes:
                await self.gateway.update_tasks(remote_changes)

        def inverse() -> None:
            for change in changes:
                old = previous[change.id]
                self.tasks.patch(
                    project_id, self.current_id(change.id), {"status": old.status, "order": old.order}
                )

        return self._dispatch(mutation, remote, inverse)

    def move_to_column(self, project_id: str, task_id: str, status: TaskStatus) -> Mutation | None:
        return self.move_task(project_id, task_id, TaskStatus(status).value)

    def edit_task(self, project_id: str, task_id: str, **fields: Any) -> Mutation:
        """Patch a task in place, e.g. from an inline edit."""
        existing = self.tasks.find(project_id, task_id)
        if existing is None:
            raise NotFoundError("Task not found", {"task_id": task_id})

        update = validated(TaskUpdate, fields)
        if update.dependencies and task_id in update.dependencies:
            raise ValidationError("A task cannot depend on itself", {"task_id": task_id})

        patch = update.model_dump(exclude_unset=True)
        previous = {name: getattr(existing, name) for name in patch}
        self.tasks.patch(project_id, task_id, patch)
        mutation = Mutation(MutationKind.EDIT, project_id, task_id)

        async def remote() -> None:
            if update.dependencies:
                update_out = update.model_copy(
                    update={"dependencies": self._remote_ids(update.dependencies)}
                )
            else:
                update_out = update
            await self.gateway.update_task(self._remote_id(task_id), update_out)

        def inverse() -> None:
            self.tasks.patch(project_id, self.current_id(task_id), previous)

        return self._dispatch(mutation, remote, inverse)

    def delete_task(self, project_id: str, task_id: str) -> Mutation:
        """Remove a task and close the gap in its column.

        Other tasks keep it in their dependencies. The server renumbers the
        column itself when it deletes the task.
        """
        position = self.tasks.position(project_id, task_id)
        removed = self.tasks.remove(project_id, task_id)
        if removed is None:
            raise NotFoundError("Task not found", {"task_id": task_id})
        previous_orders = {t.id: t.order for t in self.tasks.by_status(project_id)[removed.status]}
        changes = self._compact_column(project_id, removed.status)
        mutation = Mutation(MutationKind.DELETE, project_id, task_id)

        async def remote() -> None:
            if task_id in self._failed_creates:
                # Never reached the server; only the siblings' orders are news to it
                remote_changes = self._remote_changes(changes)
                if remote_changes:
                    await self.gateway.update_tasks(remote_changes)
                return
            await self.gateway.delete_task(self._remote_id(task_id))

        def inverse() -> None:
            for change in changes:
                self.tasks.patch(
                    project_id, self.current_id(change.id), {"order": previous_orders[change.id]}
                )
            restored = removed.updated(id=self.current_id(task_id))
            self.tasks.insert(project_id, min(position, len(self.tasks.get(project_id))), restored)

        return self._dispatch(mutation, remote, inverse)

    # ----- dispatch -----

    def _dispatch(
        self,
        mutation: Mutation,
        remote: Callable[[], Awaitable[None]],
        inverse: Callable[[], None],
    ) -> Mutation:
        previous = self._tails.get(mutation.project_id)

        async def run() -> None:
            if previous is not None:
                # Keep the server in the order the user acted
                await asyncio.wait([previous])
            try:
                await remote()
            except BaseAppException as e:
                mutation.error = e
                if self.rollback_on_failure:
                    inverse()
                    mutation.state = MutationState.ROLLED_BACK
                else:
                    mutation.state = MutationState.FAILED_NOTIFIED
                logger.warning(
                    "%s of task %s failed: %s", mutation.kind.value, mutation.task_id, e.message
                )
                self.notifier.error(
                    SYNC_FAILED_MESSAGE,
                    {"kind": mutation.kind.value, "task_id": mutation.task_id, "error_code": e.error_code},
                )
            else:
                mutation.state = MutationState.CONFIRMED

        task = asyncio.create_task(run())
        mutation.dispatch = task
        self._tails[mutation.project_id] = task
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)
        return mutation

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    async def wait_idle(self) -> None:
        """Wait until every dispatched mutation has settled."""
        while self._in_flight:
            await asyncio.gather(*list(self._in_flight))

    async def close(self) -> None:
        """Cancel whatever is still in flight."""
        for task in list(self._in_flight):
            task.cancel()
        if self._in_flight:
            await asyncio.gather(*list(self._in_flight), return_exceptions=True)
        self._tails.clear()
