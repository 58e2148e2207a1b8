"""Caller context for request handling."""

from __future__ import annotations

from dataclasses import dataclass

from .adapters.base import Principal


@dataclass(frozen=True)
class CallerContext:
    """Who is calling: role and identity as established by the auth boundary."""

    role: str | None
    identity: str | None
    principal: Principal | None = None
    token: str | None = None

    @property
    def is_authenticated(self) -> bool:
        """Check if the request carries a verified identity."""
        return self.identity is not None and self.principal is not None

    @property
    def provider(self) -> str | None:
        """Get the authentication provider name."""
        return self.principal["provider"] if self.principal else None

    @classmethod
    def anonymous(cls) -> CallerContext:
        return cls(role=None, identity=None)
