"""
The composite schema: the frozen, name-unique union of all registered fragments.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any

from graphql import (
    GraphQLArgument,
    GraphQLBoolean,
    GraphQLField,
    GraphQLFloat,
    GraphQLID,
    GraphQLInputField,
    GraphQLInputObjectType,
    GraphQLInt,
    GraphQLList,
    GraphQLNonNull,
    GraphQLObjectType,
    GraphQLScalarType,
    GraphQLSchema,
    GraphQLString,
    get_introspection_query,
    graphql_sync,
    print_schema,
)
from graphql import validate_schema as gql_validate_schema

from ..errors import InvalidDocumentError, SchemaValidationError
from ..logging import get_logger
from .declarations import (
    FieldDeclaration,
    FieldResolver,
    InputDeclaration,
    OperationDeclaration,
    OperationResolver,
)
from .types import TypeRef, normalize_datetime

logger = get_logger(__name__)


def collection_name(namespace: str, type_name: str) -> str:
    """Storage collection identifier for a type declared by ``namespace``."""
    return f"{namespace}.{type_name}"


@dataclass(frozen=True)
class TypeDescriptor:
    """A declared object type together with its storage collection."""

    name: str
    namespace: str
    fields: tuple[FieldDeclaration, ...]
    collection: str
    # Fields produced by a field resolver rather than read from the document
    computed: frozenset[str] = frozenset()
    description: str | None = None

    def field(self, name: str) -> FieldDeclaration | None:
        for declared in self.fields:
            if declared.name == name:
                return declared
        return None

    @property
    def field_names(self) -> list[str]:
        return [f.name for f in self.fields]

    @property
    def stored_fields(self) -> list[FieldDeclaration]:
        return [f for f in self.fields if f.name != "id" and f.name not in self.computed]

    def shape(self, values: Mapping[str, Any]) -> dict[str, Any]:
        """Build a full record from ``values``, excluding the id.

        Undeclared keys are dropped and missing nullable fields default to None.

        Raises:
            InvalidDocumentError: If a non-null stored field is missing or null.
        """
        record: dict[str, Any] = {}
        for declared in self.stored_fields:
            value = values.get(declared.name)
            if value is None and not declared.ref.nullable:
                raise InvalidDocumentError(
                    f"Field '{self.name}.{declared.name}' is required"
                )
            record[declared.name] = self._stored_value(declared, value)
        return record

    def shape_patch(self, patch: Mapping[str, Any]) -> dict[str, Any]:
        """Validate a partial update against the stored fields."""
        stored = {f.name: f for f in self.stored_fields}
        shaped: dict[str, Any] = {}
        for key, value in patch.items():
            declared = stored.get(key)
            if declared is None:
                raise InvalidDocumentError(f"Cannot update field '{self.name}.{key}'")
            if value is None and not declared.ref.nullable:
                raise InvalidDocumentError(f"Field '{self.name}.{key}' cannot be null")
            shaped[key] = self._stored_value(declared, value)
        return shaped

    def _stored_value(self, declared: FieldDeclaration, value: Any) -> Any:
        if value is None or declared.ref.name != "DateTime":
            return value
        try:
            if declared.ref.is_list:
                return [v if v is None else normalize_datetime(v) for v in value]
            return normalize_datetime(value)
        except (TypeError, ValueError) as e:
            raise InvalidDocumentError(
                f"Field '{self.name}.{declared.name}' must be an ISO-8601 timestamp"
            ) from e


class OperationKind(Enum):
    QUERY = "query"
    MUTATION = "mutation"


@dataclass(frozen=True)
class Operation:
    kind: OperationKind
    declaration: OperationDeclaration
    resolver: OperationResolver

    @property
    def name(self) -> str:
        return self.declaration.name

    @property
    def is_mutation(self) -> bool:
        return self.kind is OperationKind.MUTATION


DateTimeScalar = GraphQLScalarType("DateTime", description="ISO-8601 timestamp")
JSONScalar = GraphQLScalarType("JSON", description="Arbitrary JSON value")

_GRAPHQL_SCALARS = {
    "ID": GraphQLID,
    "String": GraphQLString,
    "Int": GraphQLInt,
    "Float": GraphQLFloat,
    "Boolean": GraphQLBoolean,
    "DateTime": DateTimeScalar,
    "JSON": JSONScalar,
}


@dataclass(frozen=True)
class CompositeSchema:
    """Read-only merged view of every registered fragment."""

    types: Mapping[str, TypeDescriptor]
    inputs: Mapping[str, InputDeclaration]
    queries: Mapping[str, OperationDeclaration]
    mutations: Mapping[str, OperationDeclaration]
    resolvers: Mapping[str, OperationResolver]
    field_resolvers: Mapping[str, FieldResolver]
    namespaces: tuple[str, ...] = ()
    _collections: Mapping[str, TypeDescriptor] = field(default_factory=dict, repr=False)

    @classmethod
    def build(
        cls,
        types: dict[str, TypeDescriptor],
        inputs: dict[str, InputDeclaration],
        queries: dict[str, OperationDeclaration],
        mutations: dict[str, OperationDeclaration],
        resolvers: dict[str, OperationResolver],
        field_resolvers: dict[str, FieldResolver],
        namespaces: list[str],
    ) -> CompositeSchema:
        return cls(
            types=MappingProxyType(dict(types)),
            inputs=MappingProxyType(dict(inputs)),
            queries=MappingProxyType(dict(queries)),
            mutations=MappingProxyType(dict(mutations)),
            resolvers=MappingProxyType(dict(resolvers)),
            field_resolvers=MappingProxyType(dict(field_resolvers)),
            namespaces=tuple(namespaces),
            _collections=MappingProxyType({d.collection: d for d in types.values()}),
        )

    def names(self) -> frozenset[str]:
        """Every declared name in the composite."""
        return frozenset(
            [*self.types.keys(), *self.inputs.keys(), *self.queries.keys(), *self.mutations.keys()]
        )

    def operation(self, name: str) -> Operation | None:
        if name in self.queries:
            return Operation(OperationKind.QUERY, self.queries[name], self.resolvers[name])
        if name in self.mutations:
            return Operation(OperationKind.MUTATION, self.mutations[name], self.resolvers[name])
        return None

    def descriptor(self, type_name: str) -> TypeDescriptor | None:
        return self.types.get(type_name)

    def descriptor_for_collection(self, collection: str) -> TypeDescriptor | None:
        return self._collections.get(collection)

    def field_resolver(self, type_name: str, field_name: str) -> FieldResolver | None:
        return self.field_resolvers.get(f"{type_name}.{field_name}")

    def summary(self) -> dict[str, int]:
        return {
            "namespaces": len(self.namespaces),
            "types": len(self.types),
            "inputs": len(self.inputs),
            "queries": len(self.queries),
            "mutations": len(self.mutations),
        }

    # GraphQL rendering

    def to_graphql_schema(self) -> GraphQLSchema:
        """Render the composite as a graphql-core schema (SDL and validation only)."""
        named: dict[str, Any] = dict(_GRAPHQL_SCALARS)

        def wrap(ref: TypeRef) -> Any:
            gql_type = named[ref.name]
            if ref.is_list:
                item = gql_type if ref.item_nullable else GraphQLNonNull(gql_type)
                gql_type = GraphQLList(item)
            return gql_type if ref.nullable else GraphQLNonNull(gql_type)

        object_types = []
        for descriptor in self.types.values():
            object_type = GraphQLObjectType(
                descriptor.name,
                fields=lambda d=descriptor: {
                    f.name: GraphQLField(wrap(f.ref), description=f.description) for f in d.fields
                },
                description=descriptor.description,
            )
            named[descriptor.name] = object_type
            object_types.append(object_type)

        input_types = []
        for declaration in self.inputs.values():
            input_type = GraphQLInputObjectType(
                declaration.name,
                fields=lambda i=declaration: {
                    f.name: GraphQLInputField(wrap(f.ref), description=f.description)
                    for f in i.fields
                },
                description=declaration.description,
            )
            named[declaration.name] = input_type
            input_types.append(input_type)

        def root(name: str, operations: Mapping[str, OperationDeclaration]) -> Any:
            if not operations:
                return None
            return GraphQLObjectType(
                name,
                fields=lambda: {
                    op.name: GraphQLField(
                        wrap(op.return_ref),
                        args={arg: GraphQLArgument(wrap(ref)) for arg, ref in op.arg_refs().items()},
                        description=op.description,
                    )
                    for op in operations.values()
                },
            )

        return GraphQLSchema(
            query=root("Query", self.queries),
            mutation=root("Mutation", self.mutations),
            types=[*object_types, *input_types],
        )

    def to_sdl(self) -> str:
        return print_schema(self.to_graphql_schema())

    def validate(self) -> None:
        """Validate the composite as a GraphQL schema.

        Raises:
            SchemaValidationError: If graphql-core rejects the schema or introspection fails.
        """
        graphql_schema = self.to_graphql_schema()

        errors = gql_validate_schema(graphql_schema)
        if errors:
            error_messages = [str(e) for e in errors]
            logger.error("Composite schema validation failed", errors=error_messages)
            raise SchemaValidationError(
                f"Composite schema validation failed: {'; '.join(error_messages)}"
            )

        result = graphql_sync(graphql_schema, get_introspection_query())
        if result.errors:
            error_messages = [str(e) for e in result.errors]
            raise SchemaValidationError(f"Introspection failed: {'; '.join(error_messages)}")

        logger.info("Composite schema validation successful", **self.summary())
