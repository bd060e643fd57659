"""
Document model backing the SQL document store.

Every project and task is one row: the collection it belongs to plus the
document body as JSON.
"""

from sqlalchemy import JSON, Column, Index, String

from .base import BaseModel


class Document(BaseModel):
    __tablename__ = "documents"

    collection = Column(String(64), nullable=False)
    data = Column(JSON, nullable=False, default=dict)

    __table_args__ = (Index("ix_documents_collection", "collection"),)
