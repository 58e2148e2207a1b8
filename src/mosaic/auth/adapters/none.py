"""No-auth adapter for local development without authentication."""

from __future__ import annotations

import os

from ...logging import get_logger
from .base import AuthenticationError, Principal

logger = get_logger(__name__)


class NoAuthAdapter:
    """
    No-auth adapter that bypasses authentication for local development.

    Every token is accepted and mapped to a development principal carrying
    ``default_role``. WARNING: Only use this in development environments!
    """

    def __init__(self, default_user_id: str = "dev-user", default_role: str | None = None):
        self.default_user_id = default_user_id
        self.default_role = default_role

        environment = os.getenv("MOSAIC_ENVIRONMENT", "").lower()
        if environment in ("production", "prod"):
            logger.error(
                "NoAuthAdapter detected in production environment! "
                "This is a security risk and should never be used in production.",
                environment=environment,
            )
            raise RuntimeError(
                "NoAuthAdapter cannot be used in production environments. "
                "Please configure a proper authentication provider."
            )

        logger.warning(
            "NoAuthAdapter is active - ALL requests will be treated as authenticated! "
            "This should ONLY be used in development.",
            user_id=default_user_id,
            role=default_role,
        )

    async def verify_token(self, token: str) -> Principal:
        """
        Always returns the development principal - no actual verification.

        Any non-empty token will be accepted. The token content doesn't matter.
        """
        if not token:
            raise AuthenticationError("Token required (even in no-auth mode)")

        return Principal(
            provider="none",
            subject=self.default_user_id,
            role=self.default_role,
            display_name="Development User",
            claims={"mode": "development"},
        )
