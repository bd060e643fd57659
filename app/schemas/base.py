"""Base schemas for the application."""

from typing import Any

from pydantic import BaseModel, ConfigDict


class BaseSchema(BaseModel):
    """Base schema class with common configuration."""
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class RecordSchema(BaseSchema):
    """Immutable record held by the board stores."""
    model_config = ConfigDict(
        from_attributes=True, populate_by_name=True, frozen=True, extra="ignore"
    )


class ResponseSchema(BaseSchema):
    """Standard API response envelope."""
    model_config = ConfigDict(extra="allow")

    success: bool
    error: str | None = None
    error_code: str | None = None


def envelope(success: bool = True, **payload: Any) -> dict[str, Any]:
    """Build a ``{success, ...payload}`` response body."""
    return {"success": success, **payload}
