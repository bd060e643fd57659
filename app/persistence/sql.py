"""SQLAlchemy-backed document store.

Documents live in a single ``documents`` table as JSON. Timestamps written
through ``SERVER_TIMESTAMP`` are stored as ISO-8601 strings, which is the
native form this store hands back.
"""

import logging
from typing import Any

from sqlalchemy import and_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.future import select

from app.database import build_engine, build_session_factory, create_schema
from app.exceptions.base import PersistenceFailure
from app.persistence.base import (
    SERVER_TIMESTAMP,
    DocumentNotFound,
    DocumentStore,
    WriteKind,
    WriteOp,
    new_document_id,
)
from app.shared.timestamps import utcnow
from models.document import Document

logger = logging.getLogger(__name__)


class SQLDocumentStore(DocumentStore):
    """Document store over an async SQLAlchemy engine."""

    def __init__(
        self,
        engine: AsyncEngine,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
    ):
        self.engine = engine
        self.session_factory = session_factory or build_session_factory(engine)
        self._schema_ready = False

    @classmethod
    def from_url(cls, database_url: str, echo: bool = False) -> "SQLDocumentStore":
        return cls(build_engine(database_url, echo=echo))

    async def _ensure_schema(self) -> None:
        if not self._schema_ready:
            await create_schema(self.engine)
            self._schema_ready = True

    @staticmethod
    def _resolve(data: dict[str, Any]) -> dict[str, Any]:
        return {
            key: utcnow().isoformat() if value is SERVER_TIMESTAMP else value
            for key, value in data.items()
        }

    @staticmethod
    def _document(row: Document) -> dict[str, Any]:
        return {**(row.data or {}), "id": row.id}

    async def _find(self, session: AsyncSession, collection: str, doc_id: str) -> Document | None:
        stmt = select(Document).where(
            and_(Document.collection == collection, Document.id == doc_id)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        await self._ensure_schema()
        try:
            async with self.session_factory() as session:
                row = await self._find(session, collection, doc_id)
                return None if row is None else self._document(row)
        except SQLAlchemyError as e:
            raise PersistenceFailure(f"Failed to read {collection}/{doc_id}: {str(e)}")

    async def query(self, collection: str, field_name: str, value: Any) -> list[dict[str, Any]]:
        await self._ensure_schema()
        stmt = select(Document).where(Document.collection == collection)
        if isinstance(value, str):
            stmt = stmt.where(Document.data[field_name].as_string() == value)
        try:
            async with self.session_factory() as session:
                result = await session.execute(stmt.order_by(Document.created_at))
                rows = result.scalars().all()
        except SQLAlchemyError as e:
            raise PersistenceFailure(f"Failed to query {collection}: {str(e)}")

        documents = [self._document(row) for row in rows]
        if not isinstance(value, str):
            documents = [doc for doc in documents if doc.get(field_name) == value]
        return documents

    async def create(self, collection: str, data: dict[str, Any]) -> str:
        ids = await self.batch_write([WriteOp.create(collection, data)])
        return ids[0]

    async def update(self, collection: str, doc_id: str, patch: dict[str, Any]) -> None:
        await self.batch_write([WriteOp.update(collection, doc_id, patch)])

    async def delete(self, collection: str, doc_id: str) -> None:
        await self.batch_write([WriteOp.delete(collection, doc_id)])

    async def batch_write(self, ops: list[WriteOp]) -> list[str]:
        await self._ensure_schema()
        touched = []
        async with self.session_factory() as session:
            try:
                for op in ops:
                    if op.kind == WriteKind.CREATE:
                        doc_id = op.doc_id or new_document_id()
                        session.add(
                            Document(id=doc_id, collection=op.collection, data=self._resolve(op.data))
                        )
                    else:
                        doc_id = op.doc_id
                        row = await self._find(session, op.collection, doc_id)
                        if op.kind == WriteKind.SET and row is None:
                            session.add(
                                Document(id=doc_id, collection=op.collection, data=self._resolve(op.data))
                            )
                        elif op.kind in (WriteKind.UPDATE, WriteKind.SET):
                            if row is None:
                                raise DocumentNotFound(op.collection, doc_id)
                            # Reassign so the JSON column is flagged dirty
                            row.data = {**(row.data or {}), **self._resolve(op.data)}
                        elif row is not None:
                            await session.delete(row)
                    touched.append(doc_id)
                await session.commit()
            except DocumentNotFound:
                await session.rollback()
                raise
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error("Batch write of %d operations failed: %s", len(ops), str(e))
                raise PersistenceFailure(f"Failed to write documents: {str(e)}")
        return touched

    async def close(self) -> None:
        await self.engine.dispose()
