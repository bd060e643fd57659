# ruff: noqa: D107
"""AI task-extraction exceptions."""

from typing import Any

from .base import BaseAppException


class AIServiceError(BaseAppException):
    """Base exception for AI extraction errors."""

    def __init__(
        self,
        message: str = "AI service error occurred",
        error_code: str = "AI_SERVICE_ERROR",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, 502, error_code, details)


class AIServiceUnavailableError(AIServiceError):
    """Exception raised when the AI service cannot be reached."""

    def __init__(
        self,
        message: str = "AI service is temporarily unavailable",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, "AI_SERVICE_UNAVAILABLE", details)


class AITimeoutError(AIServiceError):
    """Exception raised when the AI request exceeds its deadline."""

    def __init__(
        self,
        message: str = "AI service request timed out",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, "AI_TIMEOUT", details)


class AIParsingError(AIServiceError):
    """Exception raised when the AI answer is not the expected JSON document."""

    def __init__(
        self,
        message: str = "Failed to parse AI service response",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, "AI_PARSING_ERROR", details)


class AIContentFilterError(AIServiceError):
    """Exception raised when the document is blocked by safety filters."""

    def __init__(
        self,
        message: str = "Content was blocked by AI safety filters",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, "AI_CONTENT_FILTERED", details)


class AIRateLimitError(AIServiceError):
    """Exception raised when the AI service rate limit or quota is hit."""

    def __init__(
        self,
        message: str = "AI service rate limit exceeded",
        retry_after: int | None = None,
        details: dict[str, Any] | None = None,
    ):
        if details is None:
            details = {}
        if retry_after:
            details["retry_after"] = retry_after
        super().__init__(message, "AI_RATE_LIMITED", details)


# Map error text fragments reported by the SDK to exceptions
AI_ERROR_MAPPING = {
    "quota": AIRateLimitError,
    "rate limit": AIRateLimitError,
    "429": AIRateLimitError,
    "safety": AIContentFilterError,
    "blocked": AIContentFilterError,
    "unavailable": AIServiceUnavailableError,
    "503": AIServiceUnavailableError,
    "deadline": AITimeoutError,
    "timeout": AITimeoutError,
}


def map_ai_error(error: Exception) -> AIServiceError:
    """Map an SDK exception to the matching AI exception."""
    text = str(error).lower()
    for fragment, exception_class in AI_ERROR_MAPPING.items():
        if fragment in text:
            return exception_class(f"AI request failed: {error}")
    return AIServiceError(f"AI request failed: {error}")
