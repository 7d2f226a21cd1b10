"""
Tests for configuration, token handling and route guards.
"""
from types import SimpleNamespace
from uuid import uuid4

import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient
from jose import jwt

from agency_api.auth.dependencies import (
    CurrentUser, get_current_admin_user, get_super_admin_user, require_roles, require_tenant
)
from agency_api.auth.jwt_handler import ALGORITHM, JWTHandler, PasswordHandler
from agency_api.config import ConfigurationError, Settings, get_settings, parse_duration
from agency_api.database.models import TenantType, UserRole

from .test_base import API, BaseAPITest


def token_for(role: UserRole = UserRole.USER, slug: str = "alanis-web-dev",
              tenant_type: TenantType = TenantType.ALANIS_WEB_DEV) -> str:
    user = SimpleNamespace(id=uuid4(), email="someone@example.com", role=role)
    tenant = SimpleNamespace(id=uuid4(), slug=slug, type=tenant_type)
    return JWTHandler.create_access_token(user, tenant)


@pytest.fixture
def guarded_client():
    """A small app exercising each guard on its own route."""
    guarded = FastAPI()

    @guarded.get("/cherry-only")
    async def cherry_only(user: CurrentUser = Depends(require_tenant("cherry-pop-design"))):
        return {"tenant": user.tenant_slug}

    @guarded.get("/any-tenant")
    async def any_tenant(user: CurrentUser = Depends(require_tenant())):
        return {"tenant": user.tenant_slug}

    @guarded.get("/admins")
    async def admins(user: CurrentUser = Depends(get_current_admin_user)):
        return {"role": user.role}

    @guarded.get("/super-admins")
    async def super_admins(user: CurrentUser = Depends(get_super_admin_user)):
        return {"role": user.role}

    @guarded.get("/staff")
    async def staff(user: CurrentUser = Depends(require_roles(UserRole.USER))):
        return {"role": user.role}

    return TestClient(guarded)


def bearer(token: str):
    return {"Authorization": f"Bearer {token}"}


class TestConfiguration:
    """Test cases for settings."""

    def test_parse_duration(self):
        assert parse_duration("15m") == 900
        assert parse_duration("7d") == 604800
        assert parse_duration("2h") == 7200
        assert parse_duration("45s") == 45
        assert parse_duration("120") == 120

    def test_parse_duration_rejects_garbage(self):
        with pytest.raises(ConfigurationError):
            parse_duration("soon")
        with pytest.raises(ConfigurationError):
            parse_duration("15 minutes")

    def test_refresh_secret_is_required(self):
        with pytest.raises(ConfigurationError):
            Settings(jwt_refresh_secret="")

    def test_webhook_attempts_must_be_positive(self):
        with pytest.raises(ConfigurationError):
            Settings(jwt_refresh_secret="secret", webhook_max_attempts=0)

    def test_defaults(self):
        settings = Settings(jwt_refresh_secret="secret", n8n_webhook_url="http://n8n.example.com/webhook/")

        assert settings.access_token_expire_seconds == 900
        assert settings.refresh_token_expire_seconds == 604800
        assert settings.bcrypt_rounds == 12
        assert settings.jwt_secret
        assert settings.default_tenant_id is None
        assert settings.n8n_webhook_url == "http://n8n.example.com/webhook"
        assert settings.allowed_origins == ["*"]

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("JWT_REFRESH_SECRET", "refresh")
        monkeypatch.setenv("JWT_EXPIRATION", "1h")
        monkeypatch.setenv("WEBHOOK_MAX_ATTEMPTS", "3")
        monkeypatch.setenv("ALLOWED_ORIGINS", "https://a.example.com,https://b.example.com")

        settings = Settings.from_env()

        assert settings.access_token_expire_seconds == 3600
        assert settings.webhook_max_attempts == 3
        assert settings.allowed_origins == ["https://a.example.com", "https://b.example.com"]


class TestTokens:
    """Test cases for token and password handling."""

    def test_password_hash_round_trip(self):
        hashed = PasswordHandler.hash_password("secure_password123")

        assert hashed != "secure_password123"
        assert PasswordHandler.verify_password("secure_password123", hashed)
        assert not PasswordHandler.verify_password("wrong", hashed)

    def test_decode_access_token(self):
        payload = JWTHandler.decode_access_token(token_for(UserRole.ADMIN))

        assert payload["type"] == "access"
        assert payload["role"] == "ADMIN"
        assert payload["tenant_slug"] == "alanis-web-dev"

    def test_decode_rejects_other_token_types(self):
        token = jwt.encode(
            {"sub": str(uuid4()), "token_id": str(uuid4()), "type": "refresh"},
            get_settings().jwt_secret,
            algorithm=ALGORITHM
        )

        assert JWTHandler.decode_access_token(token) is None
        assert JWTHandler.decode_access_token("header.payload.signature") is None


class TestGuards(BaseAPITest):
    """Test cases for role and tenant guards."""

    def test_required_tenant_admits_matching_tenant(self, guarded_client):
        result = guarded_client.get("/cherry-only", headers=bearer(token_for(
            slug="cherry-pop-design", tenant_type=TenantType.CHERRY_POP_DESIGN
        )))

        self.assert_success_response(result)
        assert result.json() == {"tenant": "cherry-pop-design"}

    def test_required_tenant_rejects_other_tenant(self, guarded_client):
        result = guarded_client.get("/cherry-only", headers=bearer(token_for()))

        self.assert_forbidden(result)
        assert result.json()["detail"] == "Access denied. Required tenant: cherry-pop-design"

    def test_route_without_required_tenant(self, guarded_client):
        result = guarded_client.get("/any-tenant", headers=bearer(token_for()))

        self.assert_success_response(result)

    def test_guard_without_token(self, guarded_client):
        result = guarded_client.get("/cherry-only")

        self.assert_unauthorized(result)

    def test_admin_guard(self, guarded_client):
        assert guarded_client.get("/admins", headers=bearer(token_for(UserRole.ADMIN))).status_code == 200
        assert guarded_client.get("/admins", headers=bearer(token_for(UserRole.SUPER_ADMIN))).status_code == 200

        result = guarded_client.get("/admins", headers=bearer(token_for(UserRole.USER)))
        self.assert_forbidden(result)
        assert result.json()["detail"] == "Insufficient permissions"

    def test_super_admin_guard(self, guarded_client):
        assert guarded_client.get("/super-admins", headers=bearer(token_for(UserRole.SUPER_ADMIN))).status_code == 200
        self.assert_forbidden(guarded_client.get("/super-admins", headers=bearer(token_for(UserRole.ADMIN))))

    def test_roles_are_not_hierarchical(self, guarded_client):
        """A route admitting USER does not admit ADMIN unless listed."""
        assert guarded_client.get("/staff", headers=bearer(token_for(UserRole.USER))).status_code == 200
        self.assert_forbidden(guarded_client.get("/staff", headers=bearer(token_for(UserRole.ADMIN))))


class TestHealth(BaseAPITest):
    """Test cases for health endpoints."""

    def test_root(self, client):
        result = client.get("/")

        self.assert_success_response(result)
        assert result.json()["status"] == "operational"

    def test_health(self, client):
        result = client.get("/health")

        self.assert_success_response(result)
        assert result.json()["database"] == "connected"

    def test_api_requires_token(self, client):
        self.assert_unauthorized(client.get(f"{API}/clients"))
