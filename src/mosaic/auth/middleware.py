"""Authentication dependency for FastAPI."""

from __future__ import annotations

from fastapi import Header, HTTPException, Request

from ..logging import bind_caller, get_logger
from .adapters.base import AuthAdapter, AuthenticationError
from .adapters.none import NoAuthAdapter
from .context import CallerContext

logger = get_logger(__name__)


async def resolve_caller(adapter: AuthAdapter, authorization: str | None) -> CallerContext:
    """
    Build the caller context from an Authorization header value.

    Missing credentials yield an anonymous caller (no role), except in
    no-auth mode where the development principal is used.

    Raises:
        HTTPException: 401 for malformed headers or tokens that fail verification
    """
    if not authorization:
        if isinstance(adapter, NoAuthAdapter):
            authorization = "Bearer dev-token"
        else:
            return CallerContext.anonymous()

    if not authorization.startswith("Bearer "):
        logger.warning("Invalid authorization format received")
        raise HTTPException(
            status_code=401,
            detail="Invalid authorization format. Expected: Bearer <token>",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token = authorization[7:]
    if not token:
        logger.warning("Empty token provided")
        raise HTTPException(
            status_code=401,
            detail="Empty token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        principal = await adapter.verify_token(token)
    except AuthenticationError as e:
        logger.warning("Authentication failed", error=str(e))
        raise HTTPException(
            status_code=401,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        ) from e

    logger.debug(
        "Caller authenticated",
        provider=principal.get("provider"),
        subject=principal.get("subject"),
        role=principal.get("role"),
    )
    return CallerContext(
        role=principal.get("role"),
        identity=principal["subject"],
        principal=principal,
        token=token,
    )


async def get_caller_context(
    request: Request,
    authorization: str | None = Header(None),
) -> CallerContext:
    """FastAPI dependency: the caller context for this request."""
    adapter: AuthAdapter = request.app.state.auth_adapter
    caller = await resolve_caller(adapter, authorization)
    bind_caller(caller.identity, caller.role)
    return caller
