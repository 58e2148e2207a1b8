"""
SQL-backed document store.

All collections share one ``documents`` table keyed by (collection, doc_id);
field values live in a JSON payload. Each write runs in its own transaction,
which gives per-document atomicity.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    DateTime,
    Index,
    Integer,
    MetaData,
    String,
    UniqueConstraint,
    func,
    select,
)
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from ..errors import StoreError
from ..logging import get_logger
from .base import Document, matches

logger = get_logger(__name__)

# Naming convention for deterministic constraint/index names
naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    """Base class for document store models."""

    metadata = MetaData(naming_convention=naming_convention)


class DocumentRecord(Base):
    __tablename__ = "documents"
    __table_args__ = (
        UniqueConstraint("collection", "doc_id", name="documents_collection_doc_id_key"),
        Index("idx_documents_collection_seq", "collection", "seq"),
    )

    # Insertion sequence; gives collections a stable natural order
    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    collection: Mapped[str] = mapped_column(String(255), nullable=False)
    doc_id: Mapped[str] = mapped_column(String(64), nullable=False)
    data: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.current_timestamp()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.current_timestamp()
    )

    def to_document(self) -> Document:
        return {"id": self.doc_id, **dict(self.data)}


def to_async_url(database_url: str) -> str:
    """Map a plain database URL to its async driver."""
    if database_url.startswith("postgresql://"):
        return database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if database_url.startswith("sqlite://"):
        return database_url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    return database_url


class SqlDocumentStore:
    """Document store on a SQLAlchemy async engine."""

    def __init__(self, database_url: str, echo: bool = False):
        self.database_url = to_async_url(database_url)
        self._engine: AsyncEngine = create_async_engine(self.database_url, echo=echo)
        self._sessions = async_sessionmaker(self._engine, expire_on_commit=False)

    async def initialize(self) -> None:
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("SQL document store initialized", dialect=self._engine.dialect.name)

    async def close(self) -> None:
        await self._engine.dispose()

    async def find_by_id(self, collection: str, doc_id: str) -> Document | None:
        async with self._sessions() as session:
            stmt = select(DocumentRecord).where(
                DocumentRecord.collection == collection,
                DocumentRecord.doc_id == doc_id,
            )
            result = await session.execute(stmt)
            record = result.scalar_one_or_none()
            return record.to_document() if record else None

    async def find_all(self, collection: str) -> list[Document]:
        async with self._sessions() as session:
            stmt = (
                select(DocumentRecord)
                .where(DocumentRecord.collection == collection)
                .order_by(DocumentRecord.seq)
            )
            result = await session.execute(stmt)
            return [record.to_document() for record in result.scalars().all()]

    async def insert(self, collection: str, document: Document) -> Document:
        doc_id = document.get("id")
        if not doc_id:
            raise StoreError("Document id is required for insert")

        data = {key: value for key, value in document.items() if key != "id"}
        try:
            async with self._sessions() as session, session.begin():
                session.add(DocumentRecord(collection=collection, doc_id=doc_id, data=data))
        except IntegrityError as e:
            raise StoreError(f"Duplicate document id '{doc_id}' in '{collection}'") from e
        return {"id": doc_id, **data}

    async def update_where(
        self, collection: str, filter: Mapping[str, Any], patch: Mapping[str, Any]
    ) -> int:
        updated = 0
        async with self._sessions() as session, session.begin():
            stmt = select(DocumentRecord).where(DocumentRecord.collection == collection)
            result = await session.execute(stmt)
            for record in result.scalars().all():
                if not matches(record.to_document(), filter):
                    continue
                # Reassign so the JSON column is flagged dirty
                record.data = {**record.data, **patch}
                record.updated_at = func.current_timestamp()
                updated += 1
        return updated

    async def count(self, collection: str) -> int:
        async with self._sessions() as session:
            stmt = (
                select(func.count())
                .select_from(DocumentRecord)
                .where(DocumentRecord.collection == collection)
            )
            result = await session.execute(stmt)
            return int(result.scalar() or 0)
