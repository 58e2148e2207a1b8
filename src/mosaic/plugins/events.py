"""
Events plugin: the public event calendar.
"""

from typing import Any

from ..execution.context import ResolverContext
from ..schema.declarations import (
    FieldDeclaration,
    OperationDeclaration,
    SchemaFragment,
    TypeDeclaration,
)
from ..schema.plugin import Plugin
from .roles import ORGANIZER


async def resolve_event(args: dict[str, Any], ctx: ResolverContext):
    return await ctx.store.find_by_id("Event", args["id"])


async def resolve_events(args: dict[str, Any], ctx: ResolverContext):
    return await ctx.store.find_all("Event", sort_key="startsAt")


async def resolve_create_event(args: dict[str, Any], ctx: ResolverContext):
    return await ctx.store.insert("Event", args)


class EventsPlugin(Plugin):
    """Declares the ``Event`` type; listing events is public."""

    name = "events"
    description = "Scheduled events"

    def fragment(self) -> SchemaFragment:
        return SchemaFragment(
            namespace="events",
            types=(
                TypeDeclaration(
                    name="Event",
                    fields=(
                        FieldDeclaration(name="name", type="String!"),
                        FieldDeclaration(name="startsAt", type="DateTime"),
                        FieldDeclaration(name="location", type="String"),
                    ),
                ),
            ),
            queries=(
                OperationDeclaration(name="events", return_type="[Event!]!", public=True),
                OperationDeclaration(
                    name="event", args={"id": "ID!"}, return_type="Event", public=True
                ),
            ),
            mutations=(
                OperationDeclaration(
                    name="createEvent",
                    args={"name": "String!", "startsAt": "DateTime", "location": "String"},
                    return_type="Event!",
                    required_roles=frozenset({ORGANIZER}),
                ),
            ),
            resolvers={
                "event": resolve_event,
                "events": resolve_events,
                "createEvent": resolve_create_event,
            },
        )
