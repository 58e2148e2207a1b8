"""Authentication boundary: establishes the caller's role and identity."""

from .adapters.base import AuthAdapter, AuthenticationError, Principal
from .context import CallerContext
from .factory import get_auth_adapter
from .middleware import get_caller_context, resolve_caller

__all__ = [
    "AuthAdapter",
    "AuthenticationError",
    "Principal",
    "CallerContext",
    "get_auth_adapter",
    "get_caller_context",
    "resolve_caller",
]
