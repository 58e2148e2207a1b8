"""Tests for auth adapters, the factory and caller resolution."""

import os
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import jwt
import pytest
from fastapi import HTTPException

from mosaic.auth.adapters.base import AuthenticationError
from mosaic.auth.adapters.jwt import JWTAuthAdapter
from mosaic.auth.adapters.none import NoAuthAdapter
from mosaic.auth.context import CallerContext
from mosaic.auth.factory import get_auth_adapter
from mosaic.auth.middleware import resolve_caller
from mosaic.config import Settings

SECRET = "unit-test-secret-key-with-enough-bytes"


def encode(claims: dict, secret: str = SECRET) -> str:
    now = datetime.now(timezone.utc)
    payload = {"iss": "mosaic", "aud": "mosaic-api", "iat": now, "exp": now + timedelta(minutes=5)}
    payload.update(claims)
    return jwt.encode(payload, secret, algorithm="HS256")


@pytest.fixture
def jwt_adapter():
    return JWTAuthAdapter(secret_key=SECRET)


class TestJWTAdapter:
    """Test JWT authentication adapter."""

    @pytest.mark.asyncio
    async def test_verify_token_with_role(self, jwt_adapter):
        principal = await jwt_adapter.verify_token(
            encode({"sub": "u-1", "role": "Organizer", "email": "o@example.org", "name": "Olu"})
        )

        assert principal["provider"] == "jwt"
        assert principal["subject"] == "u-1"
        assert principal["role"] == "Organizer"
        assert principal["email"] == "o@example.org"
        assert principal["display_name"] == "Olu"
        assert principal["claims"]["sub"] == "u-1"

    @pytest.mark.asyncio
    async def test_token_without_role(self, jwt_adapter):
        principal = await jwt_adapter.verify_token(encode({"sub": "u-1"}))
        assert principal["role"] is None

    @pytest.mark.asyncio
    async def test_custom_role_claim(self):
        adapter = JWTAuthAdapter(secret_key=SECRET, role_claim="mosaic_role")
        principal = await adapter.verify_token(encode({"sub": "u-1", "mosaic_role": "Sponsor"}))
        assert principal["role"] == "Sponsor"

    @pytest.mark.asyncio
    async def test_non_string_role_is_rejected(self, jwt_adapter):
        with pytest.raises(AuthenticationError):
            await jwt_adapter.verify_token(encode({"sub": "u-1", "role": ["Organizer"]}))

    @pytest.mark.asyncio
    async def test_missing_subject(self, jwt_adapter):
        with pytest.raises(AuthenticationError, match="Missing 'sub'"):
            await jwt_adapter.verify_token(encode({"role": "Organizer"}))

    @pytest.mark.asyncio
    async def test_wrong_secret(self, jwt_adapter):
        with pytest.raises(AuthenticationError, match="Invalid token"):
            await jwt_adapter.verify_token(
                encode({"sub": "u-1"}, secret="a-different-secret-key-of-sufficient-length")
            )

    @pytest.mark.asyncio
    async def test_wrong_audience(self, jwt_adapter):
        with pytest.raises(AuthenticationError):
            await jwt_adapter.verify_token(encode({"sub": "u-1", "aud": "someone-else"}))


class TestNoAuthAdapter:
    """Test NoAuth authentication adapter."""

    @pytest.mark.asyncio
    async def test_any_token_maps_to_dev_principal(self):
        adapter = NoAuthAdapter(default_user_id="dev", default_role="Organizer")
        for token in ["dev-token", "anything", "a.b.c"]:
            principal = await adapter.verify_token(token)
            assert principal["provider"] == "none"
            assert principal["subject"] == "dev"
            assert principal["role"] == "Organizer"

    @pytest.mark.asyncio
    async def test_empty_token_fails(self):
        with pytest.raises(AuthenticationError, match="Token required"):
            await NoAuthAdapter().verify_token("")

    @patch.dict(os.environ, {"MOSAIC_ENVIRONMENT": "production"})
    def test_refused_in_production(self):
        with pytest.raises(RuntimeError):
            NoAuthAdapter()


class TestAuthFactory:
    """Test auth adapter factory."""

    def test_default_none_adapter(self):
        adapter = get_auth_adapter(Settings(auth_provider="none", default_role="Volunteer"))
        assert isinstance(adapter, NoAuthAdapter)
        assert adapter.default_role == "Volunteer"

    def test_none_adapter_with_config(self):
        adapter = get_auth_adapter(
            Settings(auth_provider="none", auth_config={"default_user_id": "custom-user"})
        )
        assert adapter.default_user_id == "custom-user"

    def test_jwt_adapter_from_settings(self):
        adapter = get_auth_adapter(
            Settings(auth_provider="jwt", jwt_secret="s3cret", jwt_role_claim="mosaic_role")
        )
        assert isinstance(adapter, JWTAuthAdapter)
        assert adapter.secret_key == "s3cret"
        assert adapter.role_claim == "mosaic_role"

    def test_jwt_adapter_config_overrides(self):
        adapter = get_auth_adapter(
            Settings(
                auth_provider="jwt",
                jwt_secret="env-secret",
                auth_config={"secret_key": "config-secret", "algorithm": "HS512"},
            )
        )
        assert adapter.secret_key == "config-secret"
        assert adapter.algorithm == "HS512"

    def test_jwt_adapter_missing_secret(self):
        with pytest.raises(ValueError, match="JWT secret key is required"):
            get_auth_adapter(Settings(auth_provider="jwt", jwt_secret=None))

    def test_unknown_provider(self):
        with pytest.raises(ValueError, match="Unsupported auth provider"):
            get_auth_adapter(Settings(auth_provider="saml"))


class TestResolveCaller:
    @pytest.mark.asyncio
    async def test_missing_header_is_anonymous(self, jwt_adapter):
        assert await resolve_caller(jwt_adapter, None) == CallerContext.anonymous()

    @pytest.mark.asyncio
    async def test_missing_header_in_no_auth_mode(self):
        caller = await resolve_caller(NoAuthAdapter(default_role="Sponsor"), None)
        assert caller.role == "Sponsor"
        assert caller.identity == "dev-user"
        assert caller.provider == "none"
        assert caller.is_authenticated

    @pytest.mark.asyncio
    async def test_bearer_token(self, jwt_adapter):
        token = encode({"sub": "u-9", "role": "Volunteer"})
        caller = await resolve_caller(jwt_adapter, f"Bearer {token}")

        assert caller.role == "Volunteer"
        assert caller.identity == "u-9"
        assert caller.token == token

    @pytest.mark.asyncio
    @pytest.mark.parametrize("header", ["Token abc", "Bearer ", "Bearer garbage"])
    async def test_bad_credentials_are_401(self, jwt_adapter, header):
        with pytest.raises(HTTPException) as exc_info:
            await resolve_caller(jwt_adapter, header)
        assert exc_info.value.status_code == 401
