"""
Resolver context and the request-scoped store handle.
"""

from __future__ import annotations

import inspect
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from ..auth.context import CallerContext
from ..errors import RequestClosedError, WriteLimitExceeded
from ..store.base import Document, SortDirection
from ..store.mapper import TypeMapper


class StoreHandle:
    """
    Store operations addressed by type name, scoped to one request.

    The handle enforces the request's write budget (zero for queries) and
    refuses new operations once the request has been closed.
    """

    def __init__(self, mapper: TypeMapper, write_budget: int = 0):
        self._mapper = mapper
        self._write_budget = write_budget
        self._writes = 0
        self._closed = False

    @property
    def writes(self) -> int:
        return self._writes

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        self._closed = True

    def collection_for(self, type_name: str) -> str:
        return self._mapper.collection_for(type_name)

    def _check_open(self) -> None:
        if self._closed:
            raise RequestClosedError()

    def _spend_write(self) -> None:
        self._check_open()
        if self._write_budget == 0:
            raise WriteLimitExceeded("Queries cannot write to the store")
        if self._writes >= self._write_budget:
            raise WriteLimitExceeded(
                f"A mutation may perform at most {self._write_budget} store write(s)"
            )
        self._writes += 1

    async def find_by_id(self, type_name: str, doc_id: Any) -> Document | None:
        self._check_open()
        return await self._mapper.find_by_id(self.collection_for(type_name), doc_id)

    async def find_all(
        self,
        type_name: str,
        sort_key: str = "id",
        direction: SortDirection = SortDirection.ASC,
    ) -> list[Document]:
        self._check_open()
        return await self._mapper.find_all(self.collection_for(type_name), sort_key, direction)

    async def insert(self, type_name: str, values: Mapping[str, Any]) -> Document:
        collection = self.collection_for(type_name)
        self._spend_write()
        return await self._mapper.insert(collection, values)

    async def update_where(
        self, type_name: str, filter: Mapping[str, Any], patch: Mapping[str, Any]
    ) -> int:
        collection = self.collection_for(type_name)
        self._spend_write()
        return await self._mapper.update_where(collection, filter, patch)

    async def count(self, type_name: str) -> int:
        self._check_open()
        return await self._mapper.count(self.collection_for(type_name))


@dataclass(frozen=True)
class ResolverContext:
    """Everything an operation resolver may use."""

    caller: CallerContext
    store: StoreHandle
    operation: str
    request_id: str | None = None

    @property
    def role(self) -> str | None:
        return self.caller.role

    @property
    def identity(self) -> str | None:
        return self.caller.identity


async def call_resolver(resolver: Any, *args: Any) -> Any:
    """Invoke a sync or async resolver."""
    value = resolver(*args)
    if inspect.isawaitable(value):
        value = await value
    return value
