"""
Tests for the ERP token exchange routes
"""

import json

import httpx
import pytest

from erp_portal.schemas.tenant import EnvironmentUpdate
from erp_portal.services import tenant_service


class TestErpLogin:
    @pytest.mark.asyncio
    async def test_forwards_grant_fields(self, client, fake_erp):
        fake_erp.respond_with(
            lambda request: httpx.Response(200, json={"access_token": "a", "expires_in": 300, "refresh_token": "r"})
        )

        response = await client.post(
            "/api/auth/login",
            json={"endpoint": "https://erp.local:8051/", "grant_type": "password", "username": "mestre", "password": "totvs"},
        )

        assert response.status_code == 200
        assert response.json()["access_token"] == "a"
        request = fake_erp.calls[0]
        assert str(request.url) == "https://erp.local:8051/api/connect/token"
        assert json.loads(request.content) == {"grant_type": "password", "username": "mestre", "password": "totvs"}

    @pytest.mark.asyncio
    async def test_endpoint_without_scheme_defaults_to_http(self, client, fake_erp):
        fake_erp.respond_with(lambda request: httpx.Response(200, json={"access_token": "a", "expires_in": 300}))

        await client.post("/api/auth/login", json={"endpoint": "erp.local:8051", "username": "u", "password": "p"})

        assert str(fake_erp.calls[0].url) == "http://erp.local:8051/api/connect/token"

    @pytest.mark.asyncio
    async def test_missing_endpoint_is_400(self, client, fake_erp):
        response = await client.post("/api/auth/login", json={"username": "mestre", "password": "totvs"})

        assert response.status_code == 400
        assert response.json()["error"]["details"]["field"] == "endpoint"
        assert fake_erp.calls == []

    @pytest.mark.asyncio
    async def test_upstream_rejection_is_relayed_unchanged(self, client, fake_erp):
        fake_erp.respond_with(
            lambda request: httpx.Response(400, json={"error": "invalid_grant", "error_description": "Usuário inválido"})
        )

        response = await client.post(
            "/api/auth/login", json={"endpoint": "erp.local", "username": "mestre", "password": "errada"}
        )

        assert response.status_code == 400
        assert response.json() == {"error": "invalid_grant", "error_description": "Usuário inválido"}
        assert "errada" not in response.text


class TestErpRefresh:
    @pytest.mark.asyncio
    async def test_refresh_strips_trailing_slash(self, client, fake_erp):
        fake_erp.respond_with(lambda request: httpx.Response(200, json={"access_token": "b", "expires_in": 300}))

        response = await client.post(
            "/api/auth/refresh",
            json={"endpoint": "http://erp.local:8051/", "grant_type": "refresh_token", "refresh_token": "r"},
        )

        assert response.status_code == 200
        assert str(fake_erp.calls[0].url) == "http://erp.local:8051/api/connect/token"
        assert json.loads(fake_erp.calls[0].content) == {"grant_type": "refresh_token", "refresh_token": "r"}

    @pytest.mark.asyncio
    async def test_expired_refresh_token_is_relayed(self, client, fake_erp):
        fake_erp.respond_with(lambda request: httpx.Response(401, text="Unauthorized"))

        response = await client.post("/api/auth/refresh", json={"endpoint": "erp.local", "refresh_token": "old"})

        assert response.status_code == 401
        assert response.json() == {"message": "Unauthorized"}


@pytest.fixture
async def erp_environment(test_db, make_registration):
    """Tenant "cliente1" whose environment points at its ERP with a custom token path."""
    tenant, _ = await tenant_service.create_tenant(make_registration(), test_db)
    environment = await tenant_service.update_environment(
        tenant.id,
        tenant.environments[0]["id"],
        EnvironmentUpdate(rest_base_url="erp.cliente1.local:8051", token_endpoint="/oauth/token"),
        test_db,
    )
    return environment


class TestTenantErpLogin:
    @pytest.mark.asyncio
    async def test_uses_environment_token_endpoint(self, client, fake_erp, erp_environment):
        fake_erp.respond_with(
            lambda request: httpx.Response(200, json={"access_token": "a", "expires_in": 300, "refresh_token": "r"})
        )

        response = await client.post(
            "/api/erp/auth/login", json={"username": "mestre", "password": "totvs"}, headers={"X-Tenant": "cliente1"}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["access_token"] == "a"
        assert data["refresh_token"] == "r"
        assert data["tenant_key"] == "cliente1"
        assert data["environment_id"] == erp_environment.id
        assert str(fake_erp.calls[0].url) == "http://erp.cliente1.local:8051/oauth/token"
        assert json.loads(fake_erp.calls[0].content) == {
            "grant_type": "password",
            "username": "mestre",
            "password": "totvs",
        }

    @pytest.mark.asyncio
    async def test_refused_grant_is_relayed(self, client, fake_erp, erp_environment):
        fake_erp.respond_with(lambda request: httpx.Response(400, json={"error": "invalid_grant"}))

        response = await client.post(
            "/api/erp/auth/login", json={"username": "mestre", "password": "errada"}, headers={"X-Tenant": "cliente1"}
        )

        assert response.status_code == 400
        assert response.json() == {"error": "invalid_grant"}

    @pytest.mark.asyncio
    async def test_unknown_environment(self, client, fake_erp, erp_environment):
        response = await client.post(
            "/api/erp/auth/login",
            json={"username": "mestre", "password": "totvs", "environment_id": "missing"},
            headers={"X-Tenant": "cliente1"},
        )

        assert response.status_code == 404
        assert fake_erp.calls == []


class TestTenantErpRefresh:
    @pytest.mark.asyncio
    async def test_refresh_through_environment(self, client, fake_erp, erp_environment):
        fake_erp.respond_with(lambda request: httpx.Response(200, json={"access_token": "b", "expires_in": 300}))

        response = await client.post(
            "/api/erp/auth/refresh", json={"refresh_token": "r"}, headers={"X-Tenant": "cliente1"}
        )

        assert response.status_code == 200
        assert response.json()["access_token"] == "b"
        assert response.json()["refresh_token"] == "r"
        assert str(fake_erp.calls[0].url) == "http://erp.cliente1.local:8051/oauth/token"
        assert json.loads(fake_erp.calls[0].content) == {"grant_type": "refresh_token", "refresh_token": "r"}

    @pytest.mark.asyncio
    async def test_refused_refresh_asks_for_login(self, client, fake_erp, erp_environment):
        fake_erp.respond_with(lambda request: httpx.Response(401, text="Unauthorized"))

        response = await client.post(
            "/api/erp/auth/refresh", json={"refresh_token": "old"}, headers={"X-Tenant": "cliente1"}
        )

        assert response.status_code == 401
        assert response.json()["error"]["error_code"] == "CREDENTIAL_EXPIRED"
