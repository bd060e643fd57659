# ruff: noqa: D107
"""Base exception classes."""

from typing import Any

from fastapi import HTTPException


class BaseAppException(HTTPException):
    """Base application exception."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        error_code: str = "INTERNAL_ERROR",
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}

        super().__init__(
            status_code=status_code,
            detail={"message": message, "error_code": error_code, "details": details},
        )

    def __str__(self) -> str:
        return self.message


class NotFoundError(BaseAppException):
    """Exception raised when a resource is not found."""

    def __init__(
        self,
        message: str = "Resource not found",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message=message, status_code=404, error_code="NOT_FOUND", details=details)


class ValidationError(BaseAppException):
    """Exception raised when a required field is missing or malformed."""

    def __init__(
        self,
        message: str = "Validation failed",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            message=message,
            status_code=400,
            error_code="VALIDATION_ERROR",
            details=details,
        )

    @classmethod
    def from_schema_error(cls, error, message: str = "Validation failed") -> "ValidationError":
        """Wrap a pydantic ``ValidationError``."""
        return cls(message, {"errors": error_list(error.errors())})


class PersistenceFailure(BaseAppException):
    """Exception raised when the document store rejects a write."""

    def __init__(
        self,
        message: str = "Persistence operation failed",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            message=message,
            status_code=500,
            error_code="PERSISTENCE_FAILURE",
            details=details,
        )


class AuthenticationError(BaseAppException):
    """Exception raised when the local credentials do not match."""

    def __init__(
        self,
        message: str = "Invalid username or password",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            message=message,
            status_code=401,
            error_code="AUTHENTICATION_FAILED",
            details=details,
        )


def error_list(errors: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Convert pydantic error dicts into a JSON-serializable list."""
    return [
        {
            "loc": [str(part) for part in error.get("loc", [])],
            "msg": str(error.get("msg", "Validation error")),
            "type": error.get("type", "value_error"),
        }
        for error in errors
    ]
