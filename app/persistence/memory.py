"""In-memory document store.

Timestamps are kept the way Firestore hands them out: as
``{"seconds": .., "nanoseconds": ..}`` mappings.
"""

import copy
from collections import defaultdict
from typing import Any

from app.persistence.base import (
    SERVER_TIMESTAMP,
    DocumentNotFound,
    DocumentStore,
    WriteKind,
    WriteOp,
    new_document_id,
)
from app.shared.timestamps import native_timestamp


class InMemoryDocumentStore(DocumentStore):
    """Dict-backed store used in development and tests."""

    def __init__(self):
        self._collections: dict[str, dict[str, dict[str, Any]]] = defaultdict(dict)

    def _resolve(self, data: dict[str, Any]) -> dict[str, Any]:
        resolved = {}
        for key, value in data.items():
            if value is SERVER_TIMESTAMP:
                value = native_timestamp()
            resolved[key] = copy.deepcopy(value)
        return resolved

    def _document(self, doc_id: str, data: dict[str, Any]) -> dict[str, Any]:
        return {**copy.deepcopy(data), "id": doc_id}

    async def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        data = self._collections[collection].get(doc_id)
        return None if data is None else self._document(doc_id, data)

    async def query(self, collection: str, field_name: str, value: Any) -> list[dict[str, Any]]:
        return [
            self._document(doc_id, data)
            for doc_id, data in self._collections[collection].items()
            if data.get(field_name) == value
        ]

    async def create(self, collection: str, data: dict[str, Any]) -> str:
        doc_id = new_document_id()
        self._collections[collection][doc_id] = self._resolve(data)
        return doc_id

    async def update(self, collection: str, doc_id: str, patch: dict[str, Any]) -> None:
        documents = self._collections[collection]
        if doc_id not in documents:
            raise DocumentNotFound(collection, doc_id)
        documents[doc_id].update(self._resolve(patch))

    async def delete(self, collection: str, doc_id: str) -> None:
        self._collections[collection].pop(doc_id, None)

    async def batch_write(self, ops: list[WriteOp]) -> list[str]:
        # Validate every op before touching anything so the batch stays atomic
        for op in ops:
            if op.kind == WriteKind.UPDATE and op.doc_id not in self._collections[op.collection]:
                raise DocumentNotFound(op.collection, op.doc_id)

        touched = []
        for op in ops:
            documents = self._collections[op.collection]
            if op.kind == WriteKind.CREATE:
                doc_id = op.doc_id or new_document_id()
                documents[doc_id] = self._resolve(op.data)
            elif op.kind == WriteKind.UPDATE:
                doc_id = op.doc_id
                documents[doc_id].update(self._resolve(op.data))
            elif op.kind == WriteKind.SET:
                doc_id = op.doc_id
                documents[doc_id] = {**documents.get(doc_id, {}), **self._resolve(op.data)}
            else:
                doc_id = op.doc_id
                documents.pop(doc_id, None)
            touched.append(doc_id)
        return touched

    def count(self, collection: str) -> int:
        return len(self._collections[collection])
