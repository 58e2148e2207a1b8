"""
People plugin: registered users and their roles.
"""

from collections.abc import Mapping
from typing import Any

from ..execution.context import ResolverContext
from ..schema.declarations import (
    FieldDeclaration,
    OperationDeclaration,
    SchemaFragment,
    TypeDeclaration,
)
from ..schema.plugin import Plugin
from ..store.base import SortDirection
from .roles import ORGANIZER, STAFF


async def resolve_user(args: dict[str, Any], ctx: ResolverContext):
    return await ctx.store.find_by_id("User", args["id"])


async def resolve_users(args: dict[str, Any], ctx: ResolverContext):
    return await ctx.store.find_all("User", sort_key="name", direction=SortDirection.ASC)


async def resolve_create_user(args: dict[str, Any], ctx: ResolverContext):
    return await ctx.store.insert("User", args)


def resolve_display_name(parent: Mapping[str, Any]) -> str:
    name = parent.get("name") or ""
    role = parent.get("role")
    return f"{name} ({role})" if role else name


class PeoplePlugin(Plugin):
    """Declares the ``User`` type."""

    name = "people"
    description = "Users and the roles they hold"

    def fragment(self) -> SchemaFragment:
        return SchemaFragment(
            namespace="people",
            types=(
                TypeDeclaration(
                    name="User",
                    description="A person known to the event",
                    fields=(
                        FieldDeclaration(name="id", type="ID!"),
                        FieldDeclaration(name="name", type="String!"),
                        FieldDeclaration(
                            name="email",
                            type="String",
                            required_roles=frozenset({ORGANIZER}),
                        ),
                        FieldDeclaration(name="role", type="String"),
                        FieldDeclaration(name="displayName", type="String!"),
                    ),
                ),
            ),
            queries=(
                OperationDeclaration(
                    name="user",
                    args={"id": "ID!"},
                    return_type="User",
                    required_roles=STAFF,
                ),
                OperationDeclaration(
                    name="users",
                    return_type="[User!]!",
                    required_roles=frozenset({ORGANIZER}),
                ),
            ),
            mutations=(
                OperationDeclaration(
                    name="createUser",
                    args={"name": "String!", "email": "String", "role": "String"},
                    return_type="User!",
                    required_roles=frozenset({ORGANIZER}),
                ),
            ),
            resolvers={
                "user": resolve_user,
                "users": resolve_users,
                "createUser": resolve_create_user,
            },
            field_resolvers={"User.displayName": resolve_display_name},
        )
