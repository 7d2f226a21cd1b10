"""
Pytest configuration and fixtures for backend testing.

Provides an in-memory database reset for every test, the FastAPI test
client, tenants and users with their bearer headers, and outbound HTTP
transports that record workflow and invoicing calls.
"""
import os

# Settings are read once at import time, so the environment is fixed first
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ.setdefault("JWT_SECRET", "test-access-secret")
os.environ.setdefault("JWT_REFRESH_SECRET", "test-refresh-secret")
for variable in ("DEFAULT_TENANT_ID", "N8N_WEBHOOK_URL", "INVOICE_NINJA_URL", "INVOICE_NINJA_API_KEY"):
    os.environ.pop(variable, None)

import copy
import pytest
import httpx
from typing import Callable, Dict, Generator, List
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from agency_api.api.main import app
from agency_api.config import get_settings
from agency_api.database.connection import DatabaseManager, SessionLocal
from agency_api.database.models import Tenant, TenantType, User, UserRole
from agency_api.auth.jwt_handler import PasswordHandler
from agency_api.integrations.outbox import WebhookOutbox, get_outbox

from .test_base import DEFAULT_PASSWORD, N8N_BASE_URL, bearer_headers


@pytest.fixture(autouse=True)
def reset_database() -> Generator[None, None, None]:
    """Give every test empty tables and no dependency overrides."""
    DatabaseManager.reset_db()
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def db_session() -> Generator[Session, None, None]:
    """Session for arranging and inspecting data directly."""
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def tenant(db_session: Session) -> Tenant:
    """Tenant used as the default tenant for public submissions."""
    tenant = Tenant(name="Alanis Web Dev", slug="alanis-web-dev", type=TenantType.ALANIS_WEB_DEV, settings={})
    db_session.add(tenant)
    db_session.commit()
    return tenant


@pytest.fixture
def other_tenant(db_session: Session) -> Tenant:
    """Second tenant for isolation tests."""
    tenant = Tenant(name="Cherry Pop Design", slug="cherry-pop-design", type=TenantType.CHERRY_POP_DESIGN, settings={})
    db_session.add(tenant)
    db_session.commit()
    return tenant


@pytest.fixture
def make_user(db_session: Session) -> Callable[..., User]:
    """Factory creating committed users."""
    def _make_user(tenant: Tenant, email: str, role: UserRole = UserRole.USER,
                   password: str = DEFAULT_PASSWORD, active: bool = True,
                   first_name: str = "Test", last_name: str = "User") -> User:
        user = User(
            tenant_id=tenant.id,
            email=email,
            password_hash=PasswordHandler.hash_password(password),
            first_name=first_name,
            last_name=last_name,
            role=role,
            active=active,
        )
        db_session.add(user)
        db_session.commit()
        return user

    return _make_user


@pytest.fixture
def staff_user(make_user, tenant) -> User:
    return make_user(tenant, "staff@example.com", first_name="Ana", last_name="Lopez")


@pytest.fixture
def admin_user(make_user, tenant) -> User:
    return make_user(tenant, "admin@example.com", UserRole.ADMIN, first_name="Admin", last_name="User")


@pytest.fixture
def super_admin_user(make_user, tenant) -> User:
    return make_user(tenant, "root@example.com", UserRole.SUPER_ADMIN, first_name="Root", last_name="User")


@pytest.fixture
def other_tenant_user(make_user, other_tenant) -> User:
    return make_user(other_tenant, "designer@example.com", UserRole.ADMIN, first_name="Dana", last_name="Cruz")


@pytest.fixture
def auth_headers(staff_user) -> Dict[str, str]:
    return bearer_headers(staff_user)


@pytest.fixture
def admin_auth_headers(admin_user) -> Dict[str, str]:
    return bearer_headers(admin_user)


@pytest.fixture
def super_admin_headers(super_admin_user) -> Dict[str, str]:
    return bearer_headers(super_admin_user)


@pytest.fixture
def different_tenant_headers(other_tenant_user) -> Dict[str, str]:
    return bearer_headers(other_tenant_user)


@pytest.fixture
def webhook_requests() -> List[httpx.Request]:
    """Requests received by the fake workflow endpoint."""
    return []


@pytest.fixture
def webhook_status() -> Dict[str, int]:
    """Status code the fake workflow endpoint answers with; tests may change it."""
    return {"code": 200}


@pytest.fixture
def outbox(webhook_requests, webhook_status) -> WebhookOutbox:
    """Outbox delivering to a recording transport."""
    def handler(request: httpx.Request) -> httpx.Response:
        webhook_requests.append(request)
        return httpx.Response(webhook_status["code"], json={"ok": True})

    return WebhookOutbox(base_url=N8N_BASE_URL, transport=httpx.MockTransport(handler))


@pytest.fixture
def settings(tenant):
    """Settings whose default tenant is `tenant`."""
    overridden = copy.copy(get_settings())
    overridden.default_tenant_id = str(tenant.id)
    return overridden


@pytest.fixture
def client(settings, outbox) -> Generator[TestClient, None, None]:
    """FastAPI test client wired to the test settings and outbox."""
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_outbox] = lambda: outbox
    with TestClient(app) as test_client:
        yield test_client
