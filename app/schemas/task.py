"""Task schemas for request/response serialization."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import AliasChoices, Field, field_validator, model_validator

from app.shared.timestamps import EPOCH, OptionalTimestamp, Timestamp

from .base import BaseSchema, RecordSchema


class TaskStatus(str, Enum):
    GOAL = "GOAL"
    TODO = "TODO"
    IN_PROGRESS = "IN_PROGRESS"
    DONE = "DONE"


# Kanban columns in display order
COLUMN_ORDER: tuple[TaskStatus, ...] = (
    TaskStatus.GOAL,
    TaskStatus.TODO,
    TaskStatus.IN_PROGRESS,
    TaskStatus.DONE,
)


class TaskPriority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


def _clean_content(v: str | None) -> str | None:
    if isinstance(v, str):
        v = v.strip()
        if not v:
            raise ValueError("Task content cannot be empty or only whitespace")
    return v


def _clean_id_list(v: Any) -> list[str]:
    if v is None:
        return []
    seen: list[str] = []
    for item in v:
        item = str(item)
        if item not in seen:
            seen.append(item)
    return seen


class TaskDraft(BaseSchema):
    """Task fields supplied by a user or by AI extraction, before it has a project."""

    content: str = Field(..., min_length=1, max_length=500)
    description: str = Field(default="", validation_alias=AliasChoices("description", "desc"))
    status: TaskStatus = TaskStatus.TODO
    is_ai_generated: bool = False
    order: int | None = Field(default=None, ge=0)
    priority: TaskPriority | None = None
    due_date: OptionalTimestamp = None
    dependencies: list[str] = Field(default_factory=list)
    assignee: str | None = None
    tags: list[str] = Field(default_factory=list)
    estimated_hours: float | None = Field(default=None, ge=0)
    actual_hours: float | None = Field(default=None, ge=0)

    @field_validator("content", mode="before")
    @classmethod
    def validate_content(cls, v):
        return _clean_content(v)

    @field_validator("description", mode="before")
    @classmethod
    def default_description(cls, v):
        return v or ""

    @field_validator("dependencies", "tags", mode="before")
    @classmethod
    def dedupe_lists(cls, v):
        return _clean_id_list(v)


class TaskCreate(TaskDraft):
    """Schema for creating a new task."""

    project_id: str = Field(..., min_length=1)


class TaskUpdate(BaseSchema):
    """Schema for patching a task; only fields that were sent are applied."""

    content: str | None = Field(None, min_length=1, max_length=500)
    description: str | None = Field(None, validation_alias=AliasChoices("description", "desc"))
    status: TaskStatus | None = None
    order: int | None = Field(None, ge=0)
    is_ai_generated: bool | None = None
    priority: TaskPriority | None = None
    due_date: OptionalTimestamp = None
    dependencies: list[str] | None = None
    assignee: str | None = None
    tags: list[str] | None = None
    estimated_hours: float | None = Field(None, ge=0)
    actual_hours: float | None = Field(None, ge=0)

    @field_validator("content", mode="before")
    @classmethod
    def validate_content(cls, v):
        if v is None:
            raise ValueError("Task content cannot be removed")
        return _clean_content(v)

    @field_validator("dependencies", "tags", mode="before")
    @classmethod
    def dedupe_lists(cls, v):
        return None if v is None else _clean_id_list(v)


class TaskOrderUpdate(BaseSchema):
    """One entry of a bulk status/order patch."""

    id: str = Field(..., min_length=1)
    status: TaskStatus | None = None
    order: int | None = Field(None, ge=0)


class BulkTaskUpdate(BaseSchema):
    """Schema for ``PATCH /tasks``."""

    updates: list[TaskOrderUpdate]


class BatchResult(BaseSchema):
    """Outcome of a batch task creation."""

    created: int = 0
    skipped: int = 0
    ids: list[str] = Field(default_factory=list)


class TaskRecord(RecordSchema):
    """A task as held by the board stores."""

    id: str = Field(..., min_length=1)
    project_id: str = Field(..., min_length=1)
    status: TaskStatus = TaskStatus.TODO
    content: str = Field(..., min_length=1)
    description: str = Field(default="", validation_alias=AliasChoices("description", "desc"))
    is_ai_generated: bool = False
    order: int = 0
    created_at: Timestamp = EPOCH
    priority: TaskPriority | None = None
    due_date: OptionalTimestamp = None
    dependencies: list[str] = Field(default_factory=list)
    assignee: str | None = None
    tags: list[str] = Field(default_factory=list)
    estimated_hours: float | None = None
    actual_hours: float | None = None

    @model_validator(mode="before")
    @classmethod
    def drop_self_dependency(cls, data):
        if isinstance(data, dict) and data.get("id") and data.get("dependencies"):
            data = {
                **data,
                "dependencies": [d for d in data["dependencies"] if d != data["id"]],
            }
        return data

    @field_validator("status", mode="before")
    @classmethod
    def default_status(cls, v):
        return v or TaskStatus.TODO

    @field_validator("description", mode="before")
    @classmethod
    def default_description(cls, v):
        return v or ""

    @field_validator("order", mode="before")
    @classmethod
    def default_order(cls, v):
        return 0 if v is None else v

    @field_validator("is_ai_generated", mode="before")
    @classmethod
    def default_flag(cls, v):
        return bool(v)

    @field_validator("content", mode="before")
    @classmethod
    def validate_content(cls, v):
        return _clean_content(v)

    @field_validator("dependencies", "tags", mode="before")
    @classmethod
    def dedupe_lists(cls, v):
        return _clean_id_list(v)

    @property
    def column(self) -> int:
        return COLUMN_ORDER.index(self.status)

    def updated(self, **fields: Any) -> TaskRecord:
        """Return a validated copy with ``fields`` merged in."""
        return TaskRecord.model_validate({**self.model_dump(), **fields})
