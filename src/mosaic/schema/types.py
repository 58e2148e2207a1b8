"""
Type references in GraphQL notation (``ID``, ``String!``, ``[CheckIn!]!``).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

from graphql import GraphQLError, assert_name
from graphql.language import ListTypeNode, NamedTypeNode, NonNullTypeNode, parse_type

BUILTIN_SCALARS: frozenset[str] = frozenset(
    {"ID", "String", "Int", "Float", "Boolean", "DateTime", "JSON"}
)


@dataclass(frozen=True)
class TypeRef:
    """A parsed type reference."""

    name: str
    nullable: bool = True
    is_list: bool = False
    item_nullable: bool = True

    @classmethod
    def parse(cls, notation: str) -> TypeRef:
        """Parse a type reference such as ``[CheckIn!]!``.

        Raises:
            ValueError: If the notation is malformed or nests lists.
        """
        try:
            node = parse_type(notation)
        except GraphQLError as e:
            raise ValueError(f"Malformed type reference: {notation!r}") from e

        nullable = True
        if isinstance(node, NonNullTypeNode):
            nullable, node = False, node.type

        if isinstance(node, ListTypeNode):
            item = node.type
            item_nullable = True
            if isinstance(item, NonNullTypeNode):
                item_nullable, item = False, item.type
            if not isinstance(item, NamedTypeNode):
                raise ValueError(f"Nested list types are not supported: {notation!r}")
            return cls(item.name.value, nullable, True, item_nullable)

        return cls(node.name.value, nullable=nullable)

    def required(self) -> TypeRef:
        return TypeRef(self.name, False, self.is_list, self.item_nullable)

    @property
    def is_scalar(self) -> bool:
        return self.name in BUILTIN_SCALARS

    def __str__(self) -> str:
        inner = self.name
        if self.is_list:
            inner = f"[{self.name}{'' if self.item_nullable else '!'}]"
        return inner if self.nullable else f"{inner}!"


def is_valid_name(name: str) -> bool:
    try:
        assert_name(name)
    except (GraphQLError, TypeError):
        return False
    return True


def normalize_datetime(value: str | datetime) -> str:
    """ISO-8601 text of ``value`` in UTC; naive values are taken as UTC.

    Stored DateTime values share one offset, so their text order is chronological.

    Raises:
        ValueError: If ``value`` is not an ISO-8601 timestamp.
    """
    parsed = value if isinstance(value, datetime) else datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc).isoformat()
