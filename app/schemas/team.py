"""Team schemas: members and their weekly schedules."""

from __future__ import annotations

from enum import Enum

from pydantic import AliasChoices, Field, field_validator

from app.shared.timestamps import OptionalTimestamp

from .base import BaseSchema
from .project import HEX_COLOR_PATTERN


class ScheduleSlot(str, Enum):
    FLEX = "FLEX"
    AFTERNOON = "AFTERNOON"
    VACATION = "VACATION"
    WORK = "WORK"


class TeamMember(BaseSchema):
    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=100)
    color: str = Field(default="#6366F1", pattern=HEX_COLOR_PATTERN)

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v):
        return v.strip() if isinstance(v, str) else v


class TeamData(BaseSchema):
    """Team document of one user: name, members and per-member schedules.

    ``team_schedules`` maps a member id to a ``{day: slot}`` mapping. Fields
    travel under their camelCase names.
    """

    team_name: str = Field(
        default="",
        max_length=100,
        validation_alias=AliasChoices("teamName", "team_name"),
        serialization_alias="teamName",
    )
    members: list[TeamMember] = Field(default_factory=list)
    team_schedules: dict[str, dict[str, ScheduleSlot]] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("teamSchedules", "team_schedules"),
        serialization_alias="teamSchedules",
    )
    updated_at: OptionalTimestamp = None

    @field_validator("members")
    @classmethod
    def unique_member_ids(cls, v):
        ids = [member.id for member in v]
        if len(ids) != len(set(ids)):
            raise ValueError("Team member ids must be unique")
        return v


class TeamSave(BaseSchema):
    """Body of ``POST /team``."""

    uid: str | None = None
    team_data: TeamData | None = Field(
        default=None,
        validation_alias=AliasChoices("teamData", "team_data"),
        serialization_alias="teamData",
    )
