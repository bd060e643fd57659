# ruff: noqa: D107
"""Exceptions raised by the sync gateway."""

from typing import Any

from .base import BaseAppException


class TransientNetworkError(BaseAppException):
    """The server could not be reached or answered with an unexpected status."""

    def __init__(
        self,
        message: str = "Network request failed",
        status_code: int = 503,
        error_code: str = "TRANSIENT_NETWORK_ERROR",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, status_code, error_code, details)


class RequestTimeoutError(TransientNetworkError):
    """The server did not answer before the request deadline."""

    def __init__(
        self,
        message: str = "Request timed out",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, 504, "REQUEST_TIMEOUT", details)
