"""Factory for creating auth adapters based on configuration."""

from __future__ import annotations

from ..config import Settings, settings
from .adapters.base import AuthAdapter
from .adapters.jwt import JWTAuthAdapter
from .adapters.none import NoAuthAdapter


def get_auth_adapter(config: Settings | None = None) -> AuthAdapter:
    """Create and return the configured auth adapter."""
    config = config or settings
    provider = config.auth_provider
    options = dict(config.auth_config or {})

    if provider == "none":
        # No-auth mode for local development
        return NoAuthAdapter(
            default_user_id=options.get("default_user_id", "dev-user"),
            default_role=options.get("default_role", config.default_role),
        )

    elif provider == "jwt":
        secret_key = options.get("secret_key") or config.jwt_secret
        if not secret_key:
            raise ValueError(
                "JWT secret key is required. Set MOSAIC_JWT_SECRET or provide in auth_config."
            )

        return JWTAuthAdapter(
            secret_key=secret_key,
            algorithm=options.get("algorithm", config.jwt_algorithm),
            issuer=options.get("issuer", "mosaic"),
            audience=options.get("audience", "mosaic-api"),
            role_claim=options.get("role_claim", config.jwt_role_claim),
        )

    else:
        raise ValueError(f"Unsupported auth provider: {provider}")
