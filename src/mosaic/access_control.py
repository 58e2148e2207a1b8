"""
Authorization gate shared by the dispatcher and the mutation executor.

The gate is a pure predicate over role sets; it never touches the store.
"""

from collections.abc import Collection
from enum import Enum
from typing import TYPE_CHECKING

from .logging import get_logger

if TYPE_CHECKING:
    from .auth.context import CallerContext
    from .schema.declarations import FieldDeclaration, OperationDeclaration

logger = get_logger(__name__)


class Decision(Enum):
    ALLOW = "allow"
    DENY = "deny"

    @property
    def allowed(self) -> bool:
        return self is Decision.ALLOW


def authorize(required_roles: Collection[str] | None, caller_role: str | None) -> Decision:
    """
    Allow iff the caller's role is one of the required roles.

    An empty or missing policy denies every caller, as does a caller
    without a role.
    """
    if not required_roles or caller_role is None:
        return Decision.DENY
    return Decision.ALLOW if caller_role in required_roles else Decision.DENY


def authorize_operation(operation: "OperationDeclaration", caller: "CallerContext") -> Decision:
    """Check an operation's policy; public operations admit every caller."""
    if operation.public:
        return Decision.ALLOW

    decision = authorize(operation.required_roles, caller.role)
    if not decision.allowed:
        logger.warning(
            "access_denied",
            operation=operation.name,
            reason=f"role '{caller.role}' not allowed",
            required_roles=sorted(operation.required_roles),
        )
    return decision


def authorize_field(
    type_name: str, field: "FieldDeclaration", caller: "CallerContext"
) -> Decision:
    """Check a field-level policy; fields without one inherit their operation's."""
    if field.required_roles is None:
        return Decision.ALLOW

    decision = authorize(field.required_roles, caller.role)
    if not decision.allowed:
        logger.warning(
            "access_denied",
            field=f"{type_name}.{field.name}",
            reason=f"role '{caller.role}' not allowed",
        )
    return decision
