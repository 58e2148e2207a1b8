"""Factory for creating the configured document store."""

from ..config import settings
from ..logging import get_logger
from .base import DocumentStore
from .memory import InMemoryDocumentStore

logger = get_logger(__name__)

MEMORY_URL = "memory://"


def create_store(database_url: str | None = None) -> DocumentStore:
    """Create a document store for ``database_url`` (defaults to settings)."""
    url = database_url or settings.database_url

    if url == MEMORY_URL:
        logger.info("Using in-memory document store")
        return InMemoryDocumentStore()

    from .sql import SqlDocumentStore

    store = SqlDocumentStore(url, echo=settings.sql_echo)
    logger.info("Using SQL document store", database_url=store.database_url.split("@")[-1])
    return store
