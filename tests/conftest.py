"""
Shared pytest fixtures and configuration for all tests.
"""

from collections.abc import Callable

import pytest

from mosaic.auth.context import CallerContext
from mosaic.execution import Dispatcher, OperationRequest
from mosaic.plugins import CheckInsPlugin, EventsPlugin, PeoplePlugin
from mosaic.schema.composite import CompositeSchema
from mosaic.schema.loader import build_schema
from mosaic.store import InMemoryDocumentStore, TypeMapper


@pytest.fixture
def builtin_schema() -> CompositeSchema:
    """Composite of the three built-in plugins, validated."""
    return build_schema([PeoplePlugin(), EventsPlugin(), CheckInsPlugin()])


@pytest.fixture
def memory_store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def mapper(memory_store: InMemoryDocumentStore, builtin_schema: CompositeSchema) -> TypeMapper:
    return TypeMapper(memory_store, builtin_schema)


@pytest.fixture
def dispatcher(builtin_schema: CompositeSchema, mapper: TypeMapper) -> Dispatcher:
    return Dispatcher(builtin_schema, mapper, max_writes_per_mutation=1)


@pytest.fixture
def caller() -> Callable[..., CallerContext]:
    """Factory for caller contexts with a given role."""

    def make(role: str | None, identity: str | None = "user-1") -> CallerContext:
        return CallerContext(role=role, identity=identity)

    return make


@pytest.fixture
def op() -> Callable[..., OperationRequest]:
    """Factory for operation requests."""

    def make(
        operation: str, arguments: dict | None = None, fields: list[str] | None = None
    ) -> OperationRequest:
        return OperationRequest(operation=operation, arguments=arguments or {}, fields=fields or [])

    return make
