"""Task dependency derivations.

A task can start once every task it depends on is DONE. Two cases are
treated as resolved rather than blocking:

* dangling ids (the dependency was deleted) are ignored;
* circular edges, where the dependency can reach the task again through
  its own dependencies, unless ``circular_block`` is set.
"""

from collections.abc import Sequence
from dataclasses import dataclass

from app.schemas.task import TaskRecord, TaskStatus


@dataclass(frozen=True)
class DependencyStatus:
    task: TaskRecord
    is_completed: bool
    is_circular: bool


def _index(tasks: Sequence[TaskRecord]) -> dict[str, TaskRecord]:
    return {task.id: task for task in tasks}


def _reaches(start: TaskRecord, target_id: str, by_id: dict[str, TaskRecord]) -> bool:
    """Whether ``target_id`` is reachable from ``start`` along dependency edges."""
    seen: set[str] = set()
    stack = list(start.dependencies)
    while stack:
        current = stack.pop()
        if current == target_id:
            return True
        if current in seen or current not in by_id:
            continue
        seen.add(current)
        stack.extend(by_id[current].dependencies)
    return False


def dependency_statuses(task: TaskRecord, tasks: Sequence[TaskRecord]) -> list[DependencyStatus]:
    """Status of each resolvable dependency of ``task``; dangling ids are skipped."""
    by_id = _index(tasks)
    statuses = []
    for dep_id in task.dependencies:
        dep = by_id.get(dep_id)
        if dep is None or dep.id == task.id:
            continue
        statuses.append(
            DependencyStatus(
                task=dep,
                is_completed=dep.status == TaskStatus.DONE,
                is_circular=_reaches(dep, task.id, by_id),
            )
        )
    return statuses


def blocking_tasks(
    task: TaskRecord, tasks: Sequence[TaskRecord], circular_block: bool = False
) -> list[TaskRecord]:
    """Dependencies that still keep ``task`` from starting."""
    return [
        status.task
        for status in dependency_statuses(task, tasks)
        if not status.is_completed and (circular_block or not status.is_circular)
    ]


def is_startable(task: TaskRecord, tasks: Sequence[TaskRecord], circular_block: bool = False) -> bool:
    return not blocking_tasks(task, tasks, circular_block)


def blocked_tasks(task: TaskRecord, tasks: Sequence[TaskRecord]) -> list[TaskRecord]:
    """Tasks that list ``task`` among their dependencies."""
    return [t for t in tasks if t.id != task.id and task.id in t.dependencies]


def available_dependencies(task: TaskRecord, tasks: Sequence[TaskRecord]) -> list[TaskRecord]:
    """Tasks that could still be added as dependencies of ``task``."""
    return [t for t in tasks if t.id != task.id and t.id not in task.dependencies]
