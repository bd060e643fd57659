"""Authentication schemas."""

from pydantic import Field

from .base import BaseSchema


class LoginRequest(BaseSchema):
    """Credentials posted to ``/auth/login``."""

    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)
