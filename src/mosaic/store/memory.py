"""In-process document store for development and tests."""

from __future__ import annotations

import copy
import threading
from collections.abc import Mapping
from typing import Any

from ..errors import StoreError
from ..logging import get_logger
from .base import Document, matches

logger = get_logger(__name__)


class InMemoryDocumentStore:
    """Dictionary-backed store; collections keep insertion order."""

    def __init__(self):
        self._collections: dict[str, dict[str, Document]] = {}
        self._lock = threading.Lock()

    async def initialize(self) -> None:
        logger.info("In-memory document store ready")

    async def close(self) -> None:
        pass

    async def find_by_id(self, collection: str, doc_id: str) -> Document | None:
        with self._lock:
            document = self._collections.get(collection, {}).get(doc_id)
            return copy.deepcopy(document) if document is not None else None

    async def find_all(self, collection: str) -> list[Document]:
        with self._lock:
            return [copy.deepcopy(d) for d in self._collections.get(collection, {}).values()]

    async def insert(self, collection: str, document: Document) -> Document:
        doc_id = document.get("id")
        if not doc_id:
            raise StoreError("Document id is required for insert")

        with self._lock:
            documents = self._collections.setdefault(collection, {})
            if doc_id in documents:
                raise StoreError(f"Duplicate document id '{doc_id}' in '{collection}'")
            documents[doc_id] = copy.deepcopy(document)
        return copy.deepcopy(document)

    async def update_where(
        self, collection: str, filter: Mapping[str, Any], patch: Mapping[str, Any]
    ) -> int:
        updated = 0
        with self._lock:
            documents = self._collections.get(collection, {})
            for doc_id, document in documents.items():
                if matches(document, filter):
                    # Replace the whole document so readers never see a partial write
                    documents[doc_id] = {**document, **copy.deepcopy(dict(patch))}
                    updated += 1
        return updated

    async def count(self, collection: str) -> int:
        with self._lock:
            return len(self._collections.get(collection, {}))

    def collections(self) -> list[str]:
        with self._lock:
            return list(self._collections.keys())
