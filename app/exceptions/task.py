"""Task and project store exceptions."""

from .base import BaseAppException


class DuplicateTaskError(BaseAppException):
    """Raised when a task id is added twice to the same collection."""

    def __init__(self, message: str = "Task with this id already exists"):
        super().__init__(message=message, status_code=409, error_code="DUPLICATE_TASK")


class DuplicateProjectError(BaseAppException):
    """Raised when a project id is added twice to the registry."""

    def __init__(self, message: str = "Project with this id already exists"):
        super().__init__(message=message, status_code=409, error_code="DUPLICATE_PROJECT")
