"""
Mutation executor: verifies referenced entities, then applies the write.
"""

from collections.abc import Mapping
from typing import Any

from ..access_control import authorize_operation
from ..errors import PermissionDenied, ReferenceNotFound, UnknownOperation
from ..logging import get_logger
from ..schema.composite import CompositeSchema
from ..schema.declarations import OperationDeclaration
from ..schema.types import TypeRef
from .context import ResolverContext, call_resolver

logger = get_logger(__name__)


class MutationExecutor:
    """
    Runs mutation resolvers after checking their references.

    Every id an argument or input field declares as a reference is looked up
    before the resolver runs. If any is missing, the mutation fails with
    ``ReferenceNotFound`` and nothing is written.
    """

    def __init__(self, schema: CompositeSchema):
        self.schema = schema

    async def execute(
        self, mutation_name: str, input: Mapping[str, Any], ctx: ResolverContext
    ) -> Any:
        """
        Execute an authorized mutation.

        Args:
            mutation_name: Name of a declared mutation
            input: Coerced arguments
            ctx: Resolver context of the current request

        Returns:
            The entity produced by the mutation resolver

        Raises:
            UnknownOperation: If ``mutation_name`` is not a declared mutation
            PermissionDenied: If the caller is not allowed to run it
            ReferenceNotFound: If a referenced entity does not exist
        """
        operation = self.schema.operation(mutation_name)
        if operation is None or not operation.is_mutation:
            raise UnknownOperation(mutation_name)

        # Fail closed when called outside the dispatcher
        if not authorize_operation(operation.declaration, ctx.caller).allowed:
            raise PermissionDenied(mutation_name)

        missing: list[tuple[str, str]] = []
        for type_name, ref_id in self.collect_references(operation.declaration, input):
            if await ctx.store.find_by_id(type_name, ref_id) is None:
                missing.append((type_name, str(ref_id)))

        if missing:
            logger.info(
                "Mutation rejected: missing references",
                mutation=mutation_name,
                missing=[f"{t}:{i}" for t, i in missing],
            )
            raise ReferenceNotFound(missing)

        entity = await call_resolver(operation.resolver, dict(input), ctx)
        logger.info(
            "Mutation executed",
            mutation=mutation_name,
            writes=ctx.store.writes,
            entity_id=entity.get("id") if isinstance(entity, Mapping) else None,
        )
        return entity

    def collect_references(
        self, declaration: OperationDeclaration, arguments: Mapping[str, Any]
    ) -> list[tuple[str, Any]]:
        """All (type name, id) pairs the arguments refer to, without duplicates."""
        found: list[tuple[str, Any]] = []

        for arg, type_name in declaration.references.items():
            found.extend((type_name, ref_id) for ref_id in _ids(arguments.get(arg)))

        for arg, ref in declaration.arg_refs().items():
            self._walk_input(ref, arguments.get(arg), found)

        return list(dict.fromkeys((type_name, str(ref_id)) for type_name, ref_id in found))

    def _walk_input(self, ref: TypeRef, value: Any, found: list[tuple[str, Any]]) -> None:
        declaration = self.schema.inputs.get(ref.name)
        if declaration is None or value is None:
            return

        for item in value if ref.is_list else [value]:
            if not isinstance(item, Mapping):
                continue
            for f in declaration.fields:
                field_value = item.get(f.name)
                if f.references:
                    found.extend((f.references, ref_id) for ref_id in _ids(field_value))
                else:
                    self._walk_input(f.ref, field_value, found)


def _ids(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, list):
        return [v for v in value if v is not None]
    return [value]
