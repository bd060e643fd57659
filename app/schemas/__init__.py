# ruff: noqa: F403, F401
"""Schemas package initialization."""

from .auth import *
from .base import *
from .project import *
from .task import *
from .team import *
