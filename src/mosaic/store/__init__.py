"""Document storage: the store interface, its engines and the type mapper."""

from .base import Document, DocumentStore, SortDirection
from .factory import create_store
from .mapper import TypeMapper
from .memory import InMemoryDocumentStore

__all__ = [
    "Document",
    "DocumentStore",
    "InMemoryDocumentStore",
    "SortDirection",
    "TypeMapper",
    "create_store",
]
