"""Document store interface.

The service layer only ever talks to a ``DocumentStore``: a collection of
schemaless documents addressed by ``(collection, id)``. Two implementations
exist (in-memory and SQLAlchemy); ``create_document_store`` picks one from the
settings exactly once, when the application starts.
"""

from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from app.core.config import DocumentStoreEnum, Settings

PROJECTS = "projects"
TASKS = "tasks"
TEAMS = "teams"


class _ServerTimestamp:
    """Sentinel replaced by the store's own notion of "now" on write."""

    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = _ServerTimestamp()


class DocumentNotFound(LookupError):
    """Raised by ``update`` when the target document does not exist."""

    def __init__(self, collection: str, doc_id: str):
        super().__init__(f"{collection}/{doc_id} does not exist")
        self.collection = collection
        self.doc_id = doc_id


class WriteKind(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    SET = "set"
    DELETE = "delete"


@dataclass
class WriteOp:
    """One operation of an atomic batch."""

    kind: WriteKind
    collection: str
    doc_id: str | None = None
    data: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def create(cls, collection: str, data: dict[str, Any], doc_id: str | None = None) -> WriteOp:
        return cls(WriteKind.CREATE, collection, doc_id or new_document_id(), data)

    @classmethod
    def update(cls, collection: str, doc_id: str, data: dict[str, Any]) -> WriteOp:
        return cls(WriteKind.UPDATE, collection, doc_id, data)

    @classmethod
    def set(cls, collection: str, doc_id: str, data: dict[str, Any]) -> WriteOp:
        """Merge ``data`` into a document, creating it when missing."""
        return cls(WriteKind.SET, collection, doc_id, data)

    @classmethod
    def delete(cls, collection: str, doc_id: str) -> WriteOp:
        return cls(WriteKind.DELETE, collection, doc_id)


def new_document_id() -> str:
    return uuid.uuid4().hex


class DocumentStore(ABC):
    """Persistence collaborator used by the project and task services.

    Documents are returned as plain dicts that include their ``id``.
    Timestamp fields come back in the store's native representation.
    """

    @abstractmethod
    async def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        """Fetch one document, or None."""

    @abstractmethod
    async def query(self, collection: str, field_name: str, value: Any) -> list[dict[str, Any]]:
        """Return every document whose ``field_name`` equals ``value``."""

    @abstractmethod
    async def create(self, collection: str, data: dict[str, Any]) -> str:
        """Insert a document and return its new id."""

    @abstractmethod
    async def update(self, collection: str, doc_id: str, patch: dict[str, Any]) -> None:
        """Merge ``patch`` into an existing document; raises DocumentNotFound."""

    async def set(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        """Create or merge into the document with a caller-chosen id."""
        await self.batch_write([WriteOp.set(collection, doc_id, data)])

    @abstractmethod
    async def delete(self, collection: str, doc_id: str) -> None:
        """Delete a document; deleting a missing document is not an error."""

    @abstractmethod
    async def batch_write(self, ops: list[WriteOp]) -> list[str]:
        """Apply all operations atomically and return the ids they touched."""

    async def close(self) -> None:
        """Release any resources held by the store."""


def create_document_store(config: Settings) -> DocumentStore:
    """Build the document store selected by the settings."""
    if config.document_store == DocumentStoreEnum.sql:
        from app.persistence.sql import SQLDocumentStore

        return SQLDocumentStore.from_url(config.database_url, echo=config.debug)

    from app.persistence.memory import InMemoryDocumentStore

    return InMemoryDocumentStore()
