"""Project schemas for request/response serialization."""

from __future__ import annotations

from enum import Enum

from pydantic import AliasChoices, Field, field_validator

from app.shared.timestamps import EPOCH, Timestamp

from .base import BaseSchema, RecordSchema
from .task import TaskDraft

HEX_COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"


class ProjectCategory(str, Enum):
    SOFTWARE = "Software"
    BUSINESS = "Business"
    DESIGN = "Design"
    MARKETING = "Marketing"
    FINANCE = "Finance"
    GENERAL = "General"


CATEGORY_COLORS: dict[ProjectCategory, str] = {
    ProjectCategory.SOFTWARE: "#7C3AED",
    ProjectCategory.BUSINESS: "#06B6D4",
    ProjectCategory.DESIGN: "#EC4899",
    ProjectCategory.MARKETING: "#F59E0B",
    ProjectCategory.FINANCE: "#10B981",
    ProjectCategory.GENERAL: "#6366F1",
}


def category_color(category: ProjectCategory | str) -> str:
    """Color used for a project that has no explicit color."""
    try:
        return CATEGORY_COLORS[ProjectCategory(category)]
    except ValueError:
        return CATEGORY_COLORS[ProjectCategory.GENERAL]


def _clean_title(v: str | None) -> str | None:
    if isinstance(v, str):
        v = v.strip()
        if not v:
            raise ValueError("Project title cannot be empty or only whitespace")
    return v


class ProjectCreate(BaseSchema):
    """Schema for the project launch form."""

    uid: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1, max_length=255)
    category: ProjectCategory = ProjectCategory.GENERAL
    scale: int = Field(default=5, ge=1, le=10)
    color: str | None = Field(default=None, pattern=HEX_COLOR_PATTERN)
    document_text: str | None = Field(
        default=None,
        validation_alias=AliasChoices("documentText", "document_text"),
        serialization_alias="documentText",
    )

    @field_validator("title", mode="before")
    @classmethod
    def validate_title(cls, v):
        return _clean_title(v)

    @field_validator("category", mode="before")
    @classmethod
    def default_category(cls, v):
        return v or ProjectCategory.GENERAL


class ProjectUpdate(BaseSchema):
    """Schema for patching a project."""

    title: str | None = Field(None, min_length=1, max_length=255)
    category: ProjectCategory | None = None
    scale: int | None = Field(None, ge=1, le=10)
    color: str | None = Field(None, pattern=HEX_COLOR_PATTERN)
    summary: str | None = None

    @field_validator("title", mode="before")
    @classmethod
    def validate_title(cls, v):
        if v is None:
            raise ValueError("Project title cannot be removed")
        return _clean_title(v)


class ProjectRecord(RecordSchema):
    """A project as held by the project registry."""

    id: str = Field(..., min_length=1)
    uid: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    category: ProjectCategory = ProjectCategory.GENERAL
    scale: int = Field(default=5, ge=1, le=10)
    color: str | None = None
    summary: str = ""
    created_at: Timestamp = EPOCH

    @field_validator("title", mode="before")
    @classmethod
    def validate_title(cls, v):
        return _clean_title(v)

    @field_validator("category", mode="before")
    @classmethod
    def normalize_category(cls, v):
        try:
            return ProjectCategory(v)
        except ValueError:
            return ProjectCategory.GENERAL

    @field_validator("scale", mode="before")
    @classmethod
    def clamp_scale(cls, v):
        if v is None:
            return 5
        return min(max(int(v), 1), 10)

    @field_validator("summary", mode="before")
    @classmethod
    def default_summary(cls, v):
        return v or ""

    @property
    def display_color(self) -> str:
        return self.color or category_color(self.category)


class ExtractedTasks(BaseSchema):
    """Result of AI task extraction from a project document."""

    summary: str = ""
    tasks: list[TaskDraft] = Field(default_factory=list)
