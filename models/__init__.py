"""
Models package initialization.
"""

from .base import Base, BaseModel
from .document import Document

__all__ = [
    "Base",
    "BaseModel",
    "Document",
]
