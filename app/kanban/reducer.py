"""Drag-and-drop reducer.

Pure functions computing the next task list of a project from a drag
gesture. The dragged task is dropped either on a column (its status value,
e.g. ``"IN_PROGRESS"``) or on another task. After every move each column is
renumbered so that its ``order`` values are exactly ``0..n-1``.
"""

from collections.abc import Sequence

from app.schemas.task import COLUMN_ORDER, TaskOrderUpdate, TaskRecord, TaskStatus

_COLUMN_IDS = {status.value: status for status in COLUMN_ORDER}


def full_ordering(tasks: Sequence[TaskRecord]) -> list[TaskRecord]:
    """Tasks sorted by column, then order, then original position."""
    positioned = sorted(enumerate(tasks), key=lambda p: (p[1].column, p[1].order, p[0]))
    return [task for _, task in positioned]


def _renumber(sequence: list[TaskRecord]) -> list[TaskRecord]:
    # Stable sort by column keeps the sequence inside each column
    result = []
    next_order = {status: 0 for status in COLUMN_ORDER}
    for task in sorted(sequence, key=lambda t: t.column):
        order = next_order[task.status]
        next_order[task.status] = order + 1
        result.append(task if task.order == order else task.updated(order=order))
    return result


def renormalize(tasks: Sequence[TaskRecord]) -> list[TaskRecord]:
    """Return the tasks in board order with dense per-column ``order`` values."""
    return _renumber(full_ordering(tasks))


def _column(over_id: str) -> TaskStatus | None:
    return _COLUMN_IDS.get(over_id)


def apply_drag(tasks: Sequence[TaskRecord], active_id: str, over_id: str | None) -> list[TaskRecord]:
    """Compute the task list after dropping ``active_id`` on ``over_id``.

    Unknown ids, a missing target and dropping a task on itself or on its own
    column leave the input unchanged.
    """
    unchanged = list(tasks)
    if not over_id or active_id == over_id:
        return unchanged

    ordering = full_ordering(tasks)
    active_index = next((i for i, t in enumerate(ordering) if t.id == active_id), None)
    if active_index is None:
        return unchanged
    active = ordering[active_index]

    column = _column(over_id)
    if column is not None:
        if active.status == column:
            return unchanged
        rest = ordering[:active_index] + ordering[active_index + 1:]
        # Appended last, the stable column sort leaves it at the end of its column
        return _renumber(rest + [active.updated(status=column)])

    target_index = next((i for i, t in enumerate(ordering) if t.id == over_id), None)
    if target_index is None:
        return unchanged
    target = ordering[target_index]

    moved = active if active.status == target.status else active.updated(status=target.status)
    sequence = ordering[:active_index] + ordering[active_index + 1:]
    sequence.insert(target_index, moved)
    return _renumber(sequence)


def order_changes(before: Sequence[TaskRecord], after: Sequence[TaskRecord]) -> list[TaskOrderUpdate]:
    """Minimal bulk patch turning ``before`` into ``after``.

    Only tasks whose status or order differ are listed, and only with the
    fields that changed.
    """
    previous = {task.id: task for task in before}
    changes = []
    for task in after:
        old = previous.get(task.id)
        status = task.status if old is None or old.status != task.status else None
        order = task.order if old is None or old.order != task.order else None
        if status is not None or order is not None:
            changes.append(TaskOrderUpdate(id=task.id, status=status, order=order))
    return changes
