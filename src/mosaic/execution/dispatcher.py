"""
Resolver dispatcher: routes a request to its operation and projects the result.

Each request moves through
``RECEIVED -> AUTHORIZING -> {DENIED | AUTHORIZED} -> RESOLVING -> {FAILED | COMPLETED}``.
Authorization always completes before the first store access. Resolution is
two-staged: the operation resolver produces the top-level entity, then each
requested field is projected independently from a read-only view of it.
"""

import asyncio
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any

from ..access_control import authorize_field, authorize_operation
from ..auth.context import CallerContext
from ..config import settings
from ..errors import (
    FieldResolutionError,
    InternalError,
    InvalidRequest,
    MosaicError,
    PathSegment,
    PermissionDenied,
    UnknownOperation,
)
from ..logging import get_logger, get_request_id, operation_context
from ..schema.composite import CompositeSchema, Operation, TypeDescriptor
from ..schema.types import TypeRef
from ..store.mapper import TypeMapper
from .arguments import coerce_arguments
from .context import ResolverContext, StoreHandle, call_resolver
from .mutations import MutationExecutor
from .request import ExecutionResult, OperationRequest, RequestState

logger = get_logger(__name__)

FieldOutcome = tuple[Any, MosaicError | None]


class Dispatcher:
    """Executes operation requests against a composed schema."""

    def __init__(
        self,
        schema: CompositeSchema,
        mapper: TypeMapper,
        max_writes_per_mutation: int | None = None,
    ):
        self.schema = schema
        self.mapper = mapper
        self.executor = MutationExecutor(schema)
        self.max_writes_per_mutation = (
            max_writes_per_mutation
            if max_writes_per_mutation is not None
            else settings.max_writes_per_mutation
        )

    async def dispatch(self, request: OperationRequest, caller: CallerContext) -> ExecutionResult:
        """Run one request to a terminal state. Never raises for request-level errors."""
        with operation_context(request.operation, caller.role):
            return await self._dispatch(request, caller)

    async def _dispatch(self, request: OperationRequest, caller: CallerContext) -> ExecutionResult:
        result = ExecutionResult(operation=request.operation)

        operation = self.schema.operation(request.operation)
        if operation is None:
            return self._finish(result, RequestState.FAILED, UnknownOperation(request.operation))

        result.advance(RequestState.AUTHORIZING)
        if not authorize_operation(operation.declaration, caller).allowed:
            return self._finish(result, RequestState.DENIED, PermissionDenied(operation.name))
        result.advance(RequestState.AUTHORIZED)

        result.advance(RequestState.RESOLVING)
        handle = StoreHandle(
            self.mapper,
            write_budget=self.max_writes_per_mutation if operation.is_mutation else 0,
        )
        ctx = ResolverContext(
            caller=caller,
            store=handle,
            operation=operation.name,
            request_id=get_request_id(),
        )
        try:
            fields = self._selection(operation, request.fields)
            arguments = coerce_arguments(operation.declaration, request.arguments, self.schema)

            if operation.is_mutation:
                value = await self.executor.execute(operation.name, arguments, ctx)
            else:
                value = await call_resolver(operation.resolver, arguments, ctx)

            result.data = await self._project(
                operation.declaration.return_ref, value, fields, caller, result.errors
            )
        except MosaicError as e:
            result.errors.clear()
            return self._finish(result, RequestState.FAILED, e.at([]))
        except Exception as e:
            logger.exception("Operation resolver raised", operation=operation.name)
            message = str(e) if settings.debug else "Internal server error"
            result.errors.clear()
            return self._finish(result, RequestState.FAILED, InternalError(message))
        finally:
            handle.close()

        return self._finish(result, RequestState.COMPLETED)

    def _finish(
        self, result: ExecutionResult, state: RequestState, error: MosaicError | None = None
    ) -> ExecutionResult:
        if error is not None:
            result.errors.append(error)
            result.data = None
        result.advance(state)
        logger.info(
            "Operation dispatched",
            operation=result.operation,
            state=state.value,
            errors=[e.code for e in result.errors],
        )
        return result

    def _selection(self, operation: Operation, requested: list[str]) -> list[str]:
        fields = list(dict.fromkeys(requested))
        return_name = operation.declaration.return_ref.name
        if self.schema.descriptor(return_name) is not None and not fields:
            raise InvalidRequest(
                f"Operation '{operation.name}' returns {return_name}; request at least one field"
            )
        return fields

    # Field projection

    async def _project(
        self,
        ref: TypeRef,
        value: Any,
        fields: list[str],
        caller: CallerContext,
        errors: list[MosaicError],
    ) -> Any:
        descriptor = self.schema.descriptor(ref.name)
        if descriptor is None:
            return value

        if value is None:
            if not ref.nullable:
                raise FieldResolutionError(f"Operation returned null for non-null type {ref}")
            return None

        if not ref.is_list:
            data, field_errors = await self._project_entity(descriptor, value, fields, caller, [])
            errors.extend(field_errors)
            return data

        if not isinstance(value, list | tuple):
            raise FieldResolutionError(f"Operation must return a list for type {ref}")

        projected = await asyncio.gather(
            *(
                self._project_entity(descriptor, item, fields, caller, [index])
                for index, item in enumerate(value)
            )
        )
        items = []
        for index, (data, field_errors) in enumerate(projected):
            if data is None and not ref.item_nullable:
                errors.append(
                    FieldResolutionError(f"Null item in list of non-null {ref.name}", [index])
                )
            errors.extend(field_errors)
            items.append(data)
        return items

    async def _project_entity(
        self,
        descriptor: TypeDescriptor,
        entity: Any,
        fields: list[str],
        caller: CallerContext,
        path: list[PathSegment],
    ) -> tuple[dict[str, Any] | None, list[MosaicError]]:
        if entity is None:
            return None, []
        if not isinstance(entity, Mapping):
            return None, [
                FieldResolutionError(f"Resolver returned a non-document for {descriptor.name}", path)
            ]

        parent = MappingProxyType(dict(entity))
        outcomes = await asyncio.gather(
            *(self._resolve_field(descriptor, parent, name, caller, [*path, name]) for name in fields)
        )

        data: dict[str, Any] = {}
        errors: list[MosaicError] = []
        for name, (value, error) in zip(fields, outcomes, strict=True):
            data[name] = value
            if error is not None:
                errors.append(error)
        return data, errors

    async def _resolve_field(
        self,
        descriptor: TypeDescriptor,
        parent: Mapping[str, Any],
        name: str,
        caller: CallerContext,
        path: list[PathSegment],
    ) -> FieldOutcome:
        declared = descriptor.field(name)
        if declared is None:
            return None, FieldResolutionError(
                f"Cannot query field '{name}' on type '{descriptor.name}'", path
            )

        if not authorize_field(descriptor.name, declared, caller).allowed:
            return None, PermissionDenied(f"{descriptor.name}.{name}", path)

        resolver = self.schema.field_resolver(descriptor.name, name)
        try:
            if resolver is None:
                value = parent.get(name)
            else:
                value = await call_resolver(resolver, parent)
        except MosaicError as e:
            return None, e.at(path)
        except Exception as e:
            logger.warning(
                "Field resolver raised",
                field=f"{descriptor.name}.{name}",
                error=str(e),
            )
            detail = f": {e}" if settings.debug else ""
            return None, FieldResolutionError(
                f"Failed to resolve '{descriptor.name}.{name}'{detail}", path
            )

        if value is None and not declared.ref.nullable:
            return None, FieldResolutionError(
                f"Non-null field '{descriptor.name}.{name}' resolved to null", path
            )
        return value, None
