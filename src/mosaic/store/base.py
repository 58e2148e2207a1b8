"""Document store interface shared by the storage engines."""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import Any, Protocol, runtime_checkable

Document = dict[str, Any]


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


@runtime_checkable
class DocumentStore(Protocol):
    """Engine-agnostic document store.

    Every single-document write is atomic: a document is either fully written
    or left unchanged. There is no cross-document transaction guarantee.
    Documents returned by the store are fresh copies the caller may keep.
    """

    async def initialize(self) -> None:
        """Prepare the backing storage (create tables, open pools)."""
        ...

    async def close(self) -> None:
        ...

    async def find_by_id(self, collection: str, doc_id: str) -> Document | None:
        ...

    async def find_all(self, collection: str) -> list[Document]:
        """Return every document of ``collection`` in insertion order."""
        ...

    async def insert(self, collection: str, document: Document) -> Document:
        """Store ``document``, which must already carry a unique ``id``."""
        ...

    async def update_where(
        self, collection: str, filter: Mapping[str, Any], patch: Mapping[str, Any]
    ) -> int:
        """Apply ``patch`` to every document matching ``filter``; return the count."""
        ...

    async def count(self, collection: str) -> int:
        ...


def matches(document: Mapping[str, Any], filter: Mapping[str, Any]) -> bool:
    """Equality match of every filter key against the document."""
    return all(document.get(key) == value for key, value in filter.items())
