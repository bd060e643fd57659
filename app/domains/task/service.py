"""Task service layer with business logic."""

import logging
from collections import defaultdict
from typing import Any

from pydantic import ValidationError as SchemaValidationError

from app.exceptions.base import NotFoundError, ValidationError
from app.persistence.base import (
    PROJECTS,
    SERVER_TIMESTAMP,
    TASKS,
    DocumentNotFound,
    DocumentStore,
    WriteOp,
)
from app.schemas.task import BatchResult, TaskCreate, TaskOrderUpdate, TaskUpdate

logger = logging.getLogger(__name__)


def _order_key(document: dict[str, Any]) -> int:
    order = document.get("order")
    return order if isinstance(order, int) else 0


def _next_orders(documents: list[dict[str, Any]]) -> dict[str, int]:
    """First free ``order`` per status, one past the highest in use."""
    next_order: dict[str, int] = defaultdict(int)
    for document in documents:
        status = document.get("status") or "TODO"
        next_order[status] = max(next_order[status], _order_key(document) + 1)
    return next_order


class TaskService:
    """Service class for task business logic.

    Documents are returned exactly as the store hands them back, timestamps
    included; normalization is the client's job.
    """

    def __init__(self, store: DocumentStore):
        self.store = store

    async def list_tasks(self, project_id: str) -> list[dict[str, Any]]:
        """Get all tasks of a project, sorted by order."""
        tasks = await self.store.query(TASKS, "project_id", project_id)
        return sorted(tasks, key=_order_key)

    async def get_task(self, task_id: str) -> dict[str, Any]:
        task = await self.store.get(TASKS, task_id)
        if task is None:
            raise NotFoundError("Task not found", {"task_id": task_id})
        return task

    async def create_task(self, task_data: TaskCreate) -> dict[str, Any]:
        """Create one task, appending it to its column unless an order was given."""
        project = await self.store.get(PROJECTS, task_data.project_id)
        if project is None:
            raise NotFoundError("Project not found", {"project_id": task_data.project_id})

        order = task_data.order
        if order is None:
            siblings = await self.store.query(TASKS, "project_id", task_data.project_id)
            order = _next_orders(siblings)[task_data.status.value]

        task_id = await self.store.create(TASKS, self._task_document(task_data, order))
        logger.info("Created task %s in project %s", task_id, task_data.project_id)
        return await self.get_task(task_id)

    async def create_tasks(self, drafts: list[Any]) -> BatchResult:
        """Create many tasks in one atomic batch.

        Drafts that fail validation (missing ``project_id`` or ``content``,
        bad status, ...) are skipped and counted rather than failing the batch.
        """
        valid: list[TaskCreate] = []
        skipped = 0
        for index, raw in enumerate(drafts):
            try:
                valid.append(TaskCreate.model_validate(raw))
            except SchemaValidationError as e:
                skipped += 1
                logger.warning("Skipping task draft %d: %s", index, e.errors()[0]["msg"])

        # Next free slot per (project, column)
        next_order: dict[tuple[str, str], int] = {}
        counted: set[str] = set()
        for task in valid:
            if task.project_id in counted:
                continue
            counted.add(task.project_id)
            existing = await self.store.query(TASKS, "project_id", task.project_id)
            for status, order in _next_orders(existing).items():
                next_order[(task.project_id, status)] = order

        ops = []
        for task in valid:
            key = (task.project_id, task.status.value)
            order = task.order if task.order is not None else next_order.get(key, 0)
            next_order[key] = max(next_order.get(key, 0), order + 1)
            ops.append(WriteOp.create(TASKS, self._task_document(task, order)))

        ids = await self.store.batch_write(ops) if ops else []
        logger.info("Batch created %d tasks, skipped %d", len(ids), skipped)
        return BatchResult(created=len(ids), skipped=skipped, ids=ids)

    async def bulk_update(self, updates: list[TaskOrderUpdate]) -> int:
        """Apply status/order changes for several tasks in one batch."""
        ops = []
        for update in updates:
            patch = update.model_dump(mode="json", exclude={"id"}, exclude_none=True)
            if patch:
                ops.append(WriteOp.update(TASKS, update.id, patch))
        if not ops:
            return 0

        try:
            await self.store.batch_write(ops)
        except DocumentNotFound as e:
            raise NotFoundError("Task not found", {"task_id": e.doc_id})
        return len(ops)

    async def update_task(self, task_id: str, task_data: TaskUpdate) -> None:
        """Patch the fields that were sent."""
        patch = task_data.model_dump(mode="json", exclude_unset=True)
        if task_id in (patch.get("dependencies") or []):
            raise ValidationError("A task cannot depend on itself", {"task_id": task_id})

        try:
            await self.store.update(TASKS, task_id, patch)
        except DocumentNotFound:
            raise NotFoundError("Task not found", {"task_id": task_id})

    async def delete_task(self, task_id: str) -> None:
        """Delete a task and renumber the rest of its column in the same batch."""
        task = await self.store.get(TASKS, task_id)
        if task is None:
            await self.store.delete(TASKS, task_id)
            return

        status = task.get("status") or "TODO"
        siblings = [
            t
            for t in await self.store.query(TASKS, "project_id", task.get("project_id"))
            if t["id"] != task_id and (t.get("status") or "TODO") == status
        ]
        ops = [WriteOp.delete(TASKS, task_id)]
        for index, sibling in enumerate(sorted(siblings, key=_order_key)):
            if sibling.get("order") != index:
                ops.append(WriteOp.update(TASKS, sibling["id"], {"order": index}))
        await self.store.batch_write(ops)
        logger.info("Deleted task %s, renumbered %d siblings", task_id, len(ops) - 1)

    async def delete_project_tasks(self, project_id: str) -> int:
        """Delete every task of a project in one batch."""
        tasks = await self.store.query(TASKS, "project_id", project_id)
        if tasks:
            await self.store.batch_write([WriteOp.delete(TASKS, t["id"]) for t in tasks])
        return len(tasks)

    @staticmethod
    def _task_document(task: TaskCreate, order: int) -> dict[str, Any]:
        document = task.model_dump(mode="json", exclude={"order"})
        document["order"] = order
        document["created_at"] = SERVER_TIMESTAMP
        return document
