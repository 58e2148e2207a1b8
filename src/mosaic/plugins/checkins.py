"""
Check-ins plugin: records a user's arrival at an event.

``checkIn`` takes a ``CheckInInput`` whose ``user`` and ``event`` fields
reference documents owned by the people and events plugins. The mutation
executor verifies both exist before the resolver writes anything.
"""

from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Any

from ..execution.context import ResolverContext
from ..logging import get_logger
from ..schema.declarations import (
    FieldDeclaration,
    InputDeclaration,
    OperationDeclaration,
    SchemaFragment,
    TypeDeclaration,
)
from ..schema.plugin import Plugin
from .roles import ORGANIZER, STAFF

logger = get_logger(__name__)


async def resolve_check_ins(args: dict[str, Any], ctx: ResolverContext):
    return await ctx.store.find_all("CheckIn", sort_key="timestamp")


async def resolve_check_in(args: dict[str, Any], ctx: ResolverContext):
    check_in = args["input"]
    document = await ctx.store.insert(
        "CheckIn",
        {
            "user": check_in["user"],
            "event": check_in["event"],
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )
    logger.info(
        "Checked in",
        user=document["user"],
        event=document["event"],
        recorded_by=ctx.identity,
    )
    return document


class CheckInsPlugin(Plugin):
    """Declares ``CheckIn`` and the ``checkIn`` mutation."""

    name = "checkins"
    description = "Event check-ins"

    def __init__(self, checkin_roles: Iterable[str] | None = None):
        self.checkin_roles = frozenset(checkin_roles) if checkin_roles else STAFF

    def fragment(self) -> SchemaFragment:
        return SchemaFragment(
            namespace="checkins",
            types=(
                TypeDeclaration(
                    name="CheckIn",
                    fields=(
                        FieldDeclaration(name="id", type="ID!"),
                        FieldDeclaration(name="user", type="ID!"),
                        FieldDeclaration(name="event", type="ID!"),
                        FieldDeclaration(name="timestamp", type="DateTime!"),
                    ),
                ),
            ),
            inputs=(
                InputDeclaration(
                    name="CheckInInput",
                    fields=(
                        FieldDeclaration(name="user", type="ID!", references="User"),
                        FieldDeclaration(name="event", type="ID!", references="Event"),
                    ),
                ),
            ),
            queries=(
                OperationDeclaration(
                    name="checkIns",
                    return_type="[CheckIn]",
                    required_roles=frozenset({ORGANIZER}),
                ),
            ),
            mutations=(
                OperationDeclaration(
                    name="checkIn",
                    args={"input": "CheckInInput!"},
                    return_type="CheckIn",
                    required_roles=self.checkin_roles,
                ),
            ),
            resolvers={
                "checkIns": resolve_check_ins,
                "checkIn": resolve_check_in,
            },
        )
