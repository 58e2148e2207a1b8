"""
Schema composition: fragment declarations, the registry and the composite schema.
"""

from .composite import (
    CompositeSchema,
    Operation,
    OperationKind,
    TypeDescriptor,
    collection_name,
)
from .declarations import (
    FieldDeclaration,
    InputDeclaration,
    OperationDeclaration,
    SchemaFragment,
    TypeDeclaration,
    TypeExtension,
)
from .plugin import Plugin
from .registry import SchemaRegistry
from .types import BUILTIN_SCALARS, TypeRef

__all__ = [
    "BUILTIN_SCALARS",
    "CompositeSchema",
    "FieldDeclaration",
    "InputDeclaration",
    "Operation",
    "OperationDeclaration",
    "OperationKind",
    "Plugin",
    "SchemaFragment",
    "SchemaRegistry",
    "TypeDeclaration",
    "TypeDescriptor",
    "TypeExtension",
    "TypeRef",
    "collection_name",
]
