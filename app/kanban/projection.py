"""Read-side board views: columns, statistics and filtering."""

import math
from collections.abc import Iterable, Sequence
from datetime import datetime

from pydantic import Field

from app.kanban.collection import TaskCollection
from app.schemas.base import BaseSchema
from app.schemas.task import COLUMN_ORDER, TaskPriority, TaskRecord, TaskStatus
from app.shared.timestamps import utcnow


def _percent(part: int, total: int) -> int:
    # Half rounds up: 2.5 -> 3
    return math.floor(part / total * 100 + 0.5) if total else 0


class BoardStats(BaseSchema):
    """Aggregate figures for one board."""

    total: int = 0
    by_status: dict[TaskStatus, int] = Field(default_factory=dict)
    completion_percentage: int = 0
    status_percentages: dict[TaskStatus, int] = Field(default_factory=dict)
    estimated_hours: float = 0.0
    actual_hours: float = 0.0

    @classmethod
    def from_tasks(cls, tasks: Sequence[TaskRecord]) -> "BoardStats":
        total = len(tasks)
        by_status = {status: 0 for status in COLUMN_ORDER}
        for task in tasks:
            by_status[task.status] += 1
        return cls(
            total=total,
            by_status=by_status,
            completion_percentage=_percent(by_status[TaskStatus.DONE], total),
            status_percentages={s: _percent(n, total) for s, n in by_status.items()},
            estimated_hours=sum(t.estimated_hours or 0.0 for t in tasks),
            actual_hours=sum(t.actual_hours or 0.0 for t in tasks),
        )


class BoardProjection(BaseSchema):
    """Four-column view of a project plus its statistics."""

    project_id: str
    columns: dict[TaskStatus, list[TaskRecord]]
    stats: BoardStats

    @classmethod
    def build(cls, collection: TaskCollection, project_id: str) -> "BoardProjection":
        columns = collection.by_status(project_id)
        tasks = [task for status in COLUMN_ORDER for task in columns[status]]
        return cls(project_id=project_id, columns=columns, stats=BoardStats.from_tasks(tasks))


class TaskFilter(BaseSchema):
    """Filter bar state; empty criteria match everything."""

    search: str = ""
    statuses: list[TaskStatus] = Field(default_factory=list)
    priorities: list[TaskPriority] = Field(default_factory=list)
    assignees: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    has_dependencies: bool | None = None
    overdue: bool = False

    @property
    def active_count(self) -> int:
        return sum(
            [
                bool(self.search),
                bool(self.statuses),
                bool(self.priorities),
                bool(self.assignees),
                bool(self.tags),
                self.has_dependencies is not None,
                self.overdue,
            ]
        )

    def matches(self, task: TaskRecord, now: datetime | None = None) -> bool:
        if self.search:
            needle = self.search.lower()
            haystack = [task.content, task.description, *task.tags]
            if not any(needle in text.lower() for text in haystack):
                return False

        if self.statuses and task.status not in self.statuses:
            return False
        if self.priorities and task.priority not in self.priorities:
            return False
        if self.assignees and task.assignee not in self.assignees:
            return False
        if self.tags and not set(self.tags) & set(task.tags):
            return False
        if self.has_dependencies is not None and bool(task.dependencies) != self.has_dependencies:
            return False

        if self.overdue:
            now = now or utcnow()
            if task.status == TaskStatus.DONE or task.due_date is None or task.due_date > now:
                return False
        return True


def filter_tasks(
    tasks: Iterable[TaskRecord], task_filter: TaskFilter, now: datetime | None = None
) -> list[TaskRecord]:
    return [task for task in tasks if task_filter.matches(task, now)]
