"""
Schema registry: merges plugin fragments into one composite schema.

The registry has an explicit two-phase lifecycle. During the build phase
fragments are registered one at a time; each registration is all-or-nothing.
``compose()`` ends the build phase and returns the immutable composite that is
served for the remainder of the process.
"""

from mosaic.errors import (
    DanglingReferenceError,
    DuplicateNameError,
    MissingResolverError,
    RegistrationError,
    RegistryFrozenError,
)
from mosaic.logging import get_logger

from .composite import CompositeSchema, TypeDescriptor, collection_name
from .declarations import (
    FieldDeclaration,
    FieldResolver,
    InputDeclaration,
    OperationDeclaration,
    OperationResolver,
    SchemaFragment,
)
from .types import BUILTIN_SCALARS, TypeRef

logger = get_logger(__name__)

RESERVED_NAMES: frozenset[str] = BUILTIN_SCALARS | {"Query", "Mutation", "Subscription"}

_IMPLICIT_ID = FieldDeclaration(name="id", type="ID", nullable=False)


class _Staging:
    """Copy of the registry state that a single registration works against."""

    def __init__(self, registry: "SchemaRegistry"):
        self.types: dict[str, TypeDescriptor] = dict(registry._types)
        self.inputs: dict[str, InputDeclaration] = dict(registry._inputs)
        self.queries: dict[str, OperationDeclaration] = dict(registry._queries)
        self.mutations: dict[str, OperationDeclaration] = dict(registry._mutations)
        self.resolvers: dict[str, OperationResolver] = dict(registry._resolvers)
        self.field_resolvers: dict[str, FieldResolver] = dict(registry._field_resolvers)
        self.namespaces: list[str] = list(registry._namespaces)

    def names(self) -> set[str]:
        return {*self.types, *self.inputs, *self.queries, *self.mutations}


class SchemaRegistry:
    """
    Registry of schema fragments contributed by plugins.

    Provides methods to register fragments during the build phase and to
    compose them into a single read-only ``CompositeSchema``.
    """

    def __init__(self):
        self._types: dict[str, TypeDescriptor] = {}
        self._inputs: dict[str, InputDeclaration] = {}
        self._queries: dict[str, OperationDeclaration] = {}
        self._mutations: dict[str, OperationDeclaration] = {}
        self._resolvers: dict[str, OperationResolver] = {}
        self._field_resolvers: dict[str, FieldResolver] = {}
        self._namespaces: list[str] = []
        self._composite: CompositeSchema | None = None

    @property
    def frozen(self) -> bool:
        return self._composite is not None

    def register(self, fragment: SchemaFragment) -> None:
        """
        Register a fragment with the registry.

        Args:
            fragment: Fragment to merge into the composite

        Raises:
            RegistryFrozenError: If ``compose()`` has already been called
            DuplicateNameError: If any declared name collides
            DanglingReferenceError: If any type reference cannot be resolved
            MissingResolverError: If a declared operation has no resolver
        """
        if self.frozen:
            raise RegistryFrozenError(fragment.namespace)

        logger.info("Registering schema fragment", namespace=fragment.namespace)
        try:
            staged = self._stage(fragment)
        except RegistrationError as e:
            logger.error(
                "Schema fragment rejected",
                namespace=fragment.namespace,
                error=e.message,
                code=e.code,
            )
            raise

        self._types = staged.types
        self._inputs = staged.inputs
        self._queries = staged.queries
        self._mutations = staged.mutations
        self._resolvers = staged.resolvers
        self._field_resolvers = staged.field_resolvers
        self._namespaces = staged.namespaces

        logger.info(
            "Schema fragment registered",
            namespace=fragment.namespace,
            names=fragment.declared_names(),
        )

    def compose(self) -> CompositeSchema:
        """End the build phase and return the immutable composite schema."""
        if self._composite is None:
            self._composite = CompositeSchema.build(
                types=self._types,
                inputs=self._inputs,
                queries=self._queries,
                mutations=self._mutations,
                resolvers=self._resolvers,
                field_resolvers=self._field_resolvers,
                namespaces=self._namespaces,
            )
            logger.info("Composite schema composed", **self._composite.summary())
        return self._composite

    def list_namespaces(self) -> list[str]:
        return list(self._namespaces)

    def names(self) -> set[str]:
        return {*self._types, *self._inputs, *self._queries, *self._mutations}

    def __len__(self) -> int:
        """Return the number of registered fragments."""
        return len(self._namespaces)

    def __contains__(self, name: str) -> bool:
        """Check if a declared name is registered."""
        return name in self.names()

    # Staging

    def _stage(self, fragment: SchemaFragment) -> _Staging:
        staged = _Staging(self)
        namespace = fragment.namespace

        if namespace in staged.namespaces:
            raise DuplicateNameError(namespace, "is already a registered namespace")
        staged.namespaces.append(namespace)

        self._check_names(fragment, staged.names())

        for declaration in fragment.types:
            fields = declaration.fields
            id_field = next((f for f in fields if f.name == "id"), None)
            if id_field is None:
                fields = (_IMPLICIT_ID, *fields)
            elif str(id_field.ref) != "ID!":
                raise RegistrationError(f"Field '{declaration.name}.id' must be of type ID!")
            _check_unique_fields(declaration.name, fields)
            staged.types[declaration.name] = TypeDescriptor(
                name=declaration.name,
                namespace=namespace,
                fields=fields,
                collection=collection_name(namespace, declaration.name),
                description=declaration.description,
            )

        for extension in fragment.extensions:
            target = staged.types.get(extension.name)
            if target is None:
                raise DanglingReferenceError(extension.name, f"extension from '{namespace}'")
            fields = (*target.fields, *extension.fields)
            _check_unique_fields(extension.name, fields)
            staged.types[extension.name] = TypeDescriptor(
                name=target.name,
                namespace=target.namespace,
                fields=fields,
                collection=target.collection,
                computed=target.computed,
                description=target.description,
            )

        for declaration in fragment.inputs:
            _check_unique_fields(declaration.name, declaration.fields)
            staged.inputs[declaration.name] = declaration
        for declaration in fragment.queries:
            staged.queries[declaration.name] = declaration
        for declaration in fragment.mutations:
            staged.mutations[declaration.name] = declaration

        self._check_references(fragment, staged)
        self._attach_resolvers(fragment, staged)
        return staged

    @staticmethod
    def _check_names(fragment: SchemaFragment, existing: set[str]) -> None:
        seen: set[str] = set()
        for name in fragment.declared_names():
            if name in RESERVED_NAMES:
                raise DuplicateNameError(name, "is a reserved name")
            if name in seen:
                raise DuplicateNameError(name, f"is declared twice in '{fragment.namespace}'")
            if name in existing:
                raise DuplicateNameError(name)
            seen.add(name)

    @staticmethod
    def _check_references(fragment: SchemaFragment, staged: _Staging) -> None:
        object_types = staged.types
        input_types = staged.inputs

        def resolve(ref: TypeRef, allowed: dict, where: str) -> None:
            if ref.is_scalar or ref.name in allowed:
                return
            raise DanglingReferenceError(ref.name, where)

        def resolve_object(name: str, where: str) -> None:
            if name not in object_types:
                raise DanglingReferenceError(name, where)

        touched_types = [d.name for d in fragment.types] + [e.name for e in fragment.extensions]
        for type_name in touched_types:
            for f in object_types[type_name].fields:
                resolve(f.ref, object_types, f"field '{type_name}.{f.name}'")

        for declaration in fragment.inputs:
            for f in declaration.fields:
                where = f"input field '{declaration.name}.{f.name}'"
                resolve(f.ref, input_types, where)
                if f.references:
                    resolve_object(f.references, where)

        for declaration in (*fragment.queries, *fragment.mutations):
            for arg, ref in declaration.arg_refs().items():
                resolve(ref, input_types, f"argument '{declaration.name}.{arg}'")
            resolve(declaration.return_ref, object_types, f"return type of '{declaration.name}'")
            for arg, type_name in declaration.references.items():
                if arg not in declaration.args:
                    raise DanglingReferenceError(arg, f"references of '{declaration.name}'")
                resolve_object(type_name, f"argument '{declaration.name}.{arg}'")
            if not declaration.public and not declaration.required_roles:
                logger.warning(
                    "Operation declares no roles and is not public; it will deny all callers",
                    operation=declaration.name,
                    namespace=fragment.namespace,
                )

    @staticmethod
    def _attach_resolvers(fragment: SchemaFragment, staged: _Staging) -> None:
        operations = [*fragment.queries, *fragment.mutations]
        declared = {op.name for op in operations}

        for op in operations:
            if op.name not in fragment.resolvers:
                raise MissingResolverError(op.name)
        for name, resolver in fragment.resolvers.items():
            if name not in declared:
                raise DanglingReferenceError(name, f"resolver map of '{fragment.namespace}'")
            staged.resolvers[name] = resolver

        # A fragment may only compute fields it declares itself
        owned = {
            f"{declaration.name}.{f.name}"
            for declaration in (*fragment.types, *fragment.extensions)
            for f in declaration.fields
            if f.name != "id"
        }

        computed: dict[str, set[str]] = {}
        for key, resolver in fragment.field_resolvers.items():
            type_name, _, field_name = key.partition(".")
            descriptor = staged.types.get(type_name)
            if descriptor is None or descriptor.field(field_name) is None:
                raise DanglingReferenceError(key, f"field resolver map of '{fragment.namespace}'")
            if key not in owned:
                raise DuplicateNameError(key, f"is not a field declared by '{fragment.namespace}'")
            staged.field_resolvers[key] = resolver
            computed.setdefault(type_name, set()).add(field_name)

        for type_name, field_names in computed.items():
            descriptor = staged.types[type_name]
            staged.types[type_name] = TypeDescriptor(
                name=descriptor.name,
                namespace=descriptor.namespace,
                fields=descriptor.fields,
                collection=descriptor.collection,
                computed=descriptor.computed | field_names,
                description=descriptor.description,
            )


def _check_unique_fields(type_name: str, fields: tuple[FieldDeclaration, ...]) -> None:
    seen: set[str] = set()
    for f in fields:
        if f.name in seen:
            raise DuplicateNameError(f"{type_name}.{f.name}", "is already declared")
        seen.add(f.name)
