"""
Declaration models for plugin-contributed schema fragments.

Declarations use GraphQL type notation for field, argument and return types.
Models are frozen: a fragment is immutable once it has been submitted.
"""

import re
from collections.abc import Callable
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .types import TypeRef, is_valid_name

_NAMESPACE_RE = re.compile(r"^[a-z][a-z0-9_]*$")

OperationResolver = Callable[..., Any]
FieldResolver = Callable[..., Any]


def _check_name(value: str) -> str:
    if not is_valid_name(value):
        raise ValueError(f"Invalid name: {value!r}")
    return value


def _check_type(value: str) -> str:
    TypeRef.parse(value)
    return value


class FieldDeclaration(BaseModel):
    """A field on a type or input declaration."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    type: str
    nullable: bool = True
    # Object type whose id this input field carries
    references: str | None = None
    # Field-level policy; None means the field inherits its operation's policy
    required_roles: frozenset[str] | None = Field(default=None, alias="requiredRoles")
    description: str | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        return _check_name(value)

    @field_validator("type")
    @classmethod
    def validate_type(cls, value: str) -> str:
        return _check_type(value)

    @property
    def ref(self) -> TypeRef:
        parsed = TypeRef.parse(self.type)
        return parsed if self.nullable else parsed.required()


class TypeDeclaration(BaseModel):
    """An object type whose instances are stored as documents."""

    model_config = ConfigDict(frozen=True)

    name: str
    fields: tuple[FieldDeclaration, ...]
    description: str | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        return _check_name(value)

    def field_names(self) -> list[str]:
        return [f.name for f in self.fields]


class TypeExtension(BaseModel):
    """Additional fields contributed to a type declared by another fragment."""

    model_config = ConfigDict(frozen=True)

    name: str
    fields: tuple[FieldDeclaration, ...]


class InputDeclaration(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    fields: tuple[FieldDeclaration, ...]
    description: str | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        return _check_name(value)


class OperationDeclaration(BaseModel):
    """A query or mutation entry point."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    args: dict[str, str] = Field(default_factory=dict, alias="argTypes")
    return_type: str = Field(alias="returnType")
    required_roles: frozenset[str] = Field(default_factory=frozenset, alias="requiredRoles")
    # Readable by any caller, including anonymous ones
    public: bool = False
    # Argument name -> object type whose id the argument carries
    references: dict[str, str] = Field(default_factory=dict)
    description: str | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        return _check_name(value)

    @field_validator("return_type")
    @classmethod
    def validate_return_type(cls, value: str) -> str:
        return _check_type(value)

    @field_validator("args")
    @classmethod
    def validate_args(cls, value: dict[str, str]) -> dict[str, str]:
        for arg_name, notation in value.items():
            _check_name(arg_name)
            _check_type(notation)
        return value

    @property
    def return_ref(self) -> TypeRef:
        return TypeRef.parse(self.return_type)

    def arg_refs(self) -> dict[str, TypeRef]:
        return {name: TypeRef.parse(notation) for name, notation in self.args.items()}


class SchemaFragment(BaseModel):
    """A plugin's self-contained set of declarations and resolvers."""

    model_config = ConfigDict(frozen=True)

    namespace: str
    types: tuple[TypeDeclaration, ...] = ()
    extensions: tuple[TypeExtension, ...] = ()
    inputs: tuple[InputDeclaration, ...] = ()
    queries: tuple[OperationDeclaration, ...] = ()
    mutations: tuple[OperationDeclaration, ...] = ()
    # Operation name -> callable(args, ctx)
    resolvers: dict[str, OperationResolver] = Field(default_factory=dict)
    # "Type.field" -> callable(parent)
    field_resolvers: dict[str, FieldResolver] = Field(default_factory=dict)

    @field_validator("namespace")
    @classmethod
    def validate_namespace(cls, value: str) -> str:
        if not _NAMESPACE_RE.match(value):
            raise ValueError(
                "Namespace must start with a lowercase letter and contain only "
                "lowercase letters, digits and underscores"
            )
        return value

    def declared_names(self) -> list[str]:
        """All names this fragment introduces, in declaration order."""
        names: list[str] = []
        names.extend(t.name for t in self.types)
        names.extend(i.name for i in self.inputs)
        names.extend(q.name for q in self.queries)
        names.extend(m.name for m in self.mutations)
        return names
