"""
Pytest configuration and fixtures for ERP portal tests
"""

import os
import sys
from collections.abc import AsyncGenerator, Callable

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))  # noqa: PTH100, PTH118, PTH119, PTH120

# Keep the application engine off any real server; each test gets its own sqlite file
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("LOG_JSON", "false")

from erp_portal.database import Base, get_db  # noqa: E402
from erp_portal.models import LegacyConfigUser, PlatformAdmin, Tenant  # noqa: E402, F401
from erp_portal.schemas.tenant import AdminCreate, Company, InitialEnvironment, TenantRegister  # noqa: E402
from erp_portal.services.proxy_gateway import ProxyGateway, get_proxy_gateway  # noqa: E402
from main import app  # noqa: E402


class FakeErp:
    """
    Stand-in for a tenant's ERP host, served through httpx.MockTransport.

    Every outbound request is recorded in `calls`; `responder` decides the answer.
    """

    def __init__(self):
        self.calls: list[httpx.Request] = []
        self.responder: Callable[[httpx.Request], httpx.Response] = lambda request: httpx.Response(200, json={})

    def respond_with(self, responder: Callable[[httpx.Request], httpx.Response]) -> None:
        self.responder = responder

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        return self.responder(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self._handle)

    def gateway(self) -> ProxyGateway:
        return ProxyGateway(transport=self.transport)


def _registration(
    subdomain: str = "cliente1",
    email: str = "a@b.com",
    password: str = "secret123",
    webservice_base_url: str = "",
) -> TenantRegister:
    return TenantRegister(
        company=Company(legal_name="Cliente Um Ltda", trade_name="Cliente Um", tax_id="12345678000199"),
        admin=AdminCreate(email=email, name="Ana Admin", phone="11999990000", password=password),
        subdomain=subdomain,
        initial_environment=InitialEnvironment(webservice_base_url=webservice_base_url) if webservice_base_url else None,
    )


def _registration_body(subdomain: str = "cliente1", email: str = "a@b.com", password: str = "secret123") -> dict:
    return _registration(subdomain=subdomain, email=email, password=password).model_dump(mode="json")


@pytest.fixture
async def test_engine(tmp_path):
    """Fresh sqlite database file per test."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'portal.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def test_db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def fake_erp() -> FakeErp:
    return FakeErp()


@pytest.fixture
async def client(session_factory, fake_erp) -> AsyncGenerator[httpx.AsyncClient, None]:
    """HTTP client against the app with the test database and the fake ERP wired in."""

    async def _override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_proxy_gateway] = fake_erp.gateway

    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app, raise_app_exceptions=False),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
async def registered(client) -> dict:
    """Tenant "cliente1" registered through the API, with its admin's bearer headers."""
    response = await client.post("/api/tenant/register", json=_registration_body())
    assert response.status_code == 201
    body = response.json()

    login = await client.post("/api/tenant/login", json={"email": "a@b.com", "password": "secret123"})
    assert login.status_code == 200
    return {
        "tenant": body["tenant"],
        "admin": body["admin"],
        "headers": {"Authorization": f"Bearer {login.json()['access_token']}"},
    }


@pytest.fixture
def make_registration() -> Callable[..., TenantRegister]:
    """Build a TenantRegister payload; keyword arguments override the defaults."""
    return _registration


@pytest.fixture
def make_registration_body() -> Callable[..., dict]:
    return _registration_body
