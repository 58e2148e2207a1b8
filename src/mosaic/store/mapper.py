"""
Type-to-store mapper.

Maps declared type names to storage collections and shapes records to their
type descriptors. The mapper keeps no mutable state: its naming tables come
from the frozen composite schema.
"""

import asyncio
import uuid
from collections.abc import Mapping
from typing import Any

from ..errors import InvalidDocumentError, UnknownTypeError
from ..logging import get_logger
from ..schema.composite import CompositeSchema, TypeDescriptor
from .base import Document, DocumentStore, SortDirection

logger = get_logger(__name__)


def new_document_id() -> str:
    return str(uuid.uuid4())


def _sort_value(sort_key: str):
    def key(document: Document) -> tuple[bool, Any]:
        value = document.get(sort_key)
        # Documents missing the key sort before all others
        return (value is not None, value if value is not None else 0)

    return key


class TypeMapper:
    """Deterministic mapping from declared types to document collections."""

    def __init__(self, store: DocumentStore, schema: CompositeSchema):
        self.store = store
        self.schema = schema

    def collection_for(self, type_name: str) -> str:
        """
        Return the collection identifier for a declared type.

        Args:
            type_name: Name of an object type in the composite schema

        Returns:
            The collection identifier, ``"<namespace>.<TypeName>"``

        Raises:
            UnknownTypeError: If the type is not declared
        """
        descriptor = self.schema.descriptor(type_name)
        if descriptor is None:
            raise UnknownTypeError(type_name)
        return descriptor.collection

    def descriptor(self, collection: str) -> TypeDescriptor:
        descriptor = self.schema.descriptor_for_collection(collection)
        if descriptor is None:
            raise UnknownTypeError(collection)
        return descriptor

    async def find_by_id(self, collection: str, doc_id: Any) -> Document | None:
        self.descriptor(collection)
        if doc_id is None:
            return None
        return await self.store.find_by_id(collection, str(doc_id))

    async def find_all(
        self,
        collection: str,
        sort_key: str = "id",
        direction: SortDirection = SortDirection.ASC,
    ) -> list[Document]:
        """
        List every document in a collection, ordered by ``sort_key``.

        Descending order is exactly the reverse of ascending order, ties included.
        """
        descriptor = self.descriptor(collection)
        if descriptor.field(sort_key) is None:
            raise InvalidDocumentError(f"Cannot sort '{descriptor.name}' by '{sort_key}'")

        documents = sorted(await self.store.find_all(collection), key=_sort_value(sort_key))
        if SortDirection(direction) is SortDirection.DESC:
            documents.reverse()
        return documents

    async def insert(self, collection: str, document: Mapping[str, Any]) -> Document:
        """Shape ``document`` to its type, assign a fresh id and store it."""
        descriptor = self.descriptor(collection)
        record = {"id": new_document_id(), **descriptor.shape(document)}

        # A write already issued completes even if the request is cancelled
        stored = await asyncio.shield(self.store.insert(collection, record))
        logger.debug("Document inserted", collection=collection, id=stored["id"])
        return stored

    async def update_where(
        self, collection: str, filter: Mapping[str, Any], patch: Mapping[str, Any]
    ) -> int:
        descriptor = self.descriptor(collection)
        for key in filter:
            if descriptor.field(key) is None:
                raise InvalidDocumentError(f"Cannot filter '{descriptor.name}' by '{key}'")
        shaped = descriptor.shape_patch(patch)
        if not shaped:
            return 0

        count = await asyncio.shield(self.store.update_where(collection, dict(filter), shaped))
        logger.debug("Documents updated", collection=collection, count=count)
        return count

    async def count(self, collection: str) -> int:
        self.descriptor(collection)
        return await self.store.count(collection)
