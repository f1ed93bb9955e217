"""
Tests for the tenant administration routes
"""

import pytest
from sqlalchemy import update

from erp_portal.auth import create_access_token
from erp_portal.models import PlatformAdmin


class TestRegistration:
    @pytest.mark.asyncio
    async def test_register_returns_tenant_and_admin_without_hash(self, client, make_registration_body):
        response = await client.post("/api/tenant/register", json=make_registration_body())

        assert response.status_code == 201
        data = response.json()
        assert data["tenant"]["tenant_key"] == "cliente1"
        assert data["tenant"]["domains"]["tenant_host"] == "cliente1.portalrm.simpleit.app.br"
        assert data["tenant"]["trial"]["days"] == 7
        assert data["tenant"]["access"]["blocked"] is False
        assert data["tenant"]["environments"][0]["name"] == "Produção"
        assert data["admin"]["email"] == "a@b.com"
        assert "password" not in response.text
        assert "password_hash" not in response.text

    @pytest.mark.asyncio
    async def test_duplicate_subdomain_then_duplicate_email(self, client, make_registration_body):
        first = await client.post("/api/tenant/register", json=make_registration_body())
        assert first.status_code == 201

        same_subdomain = await client.post("/api/tenant/register", json=make_registration_body(email="other@b.com"))
        assert same_subdomain.status_code == 409
        assert same_subdomain.json()["error"]["error_code"] == "VALIDATION_DUPLICATE_RESOURCE"

        same_email = await client.post("/api/tenant/register", json=make_registration_body(subdomain="cliente2"))
        assert same_email.status_code == 409
        assert same_email.json()["error"]["details"]["field"] == "email"

    @pytest.mark.asyncio
    async def test_malformed_payload_is_400_naming_fields(self, client):
        response = await client.post("/api/tenant/register", json={"subdomain": "cliente1"})

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["error_code"] == "VALIDATION_FAILED"
        fields = {item["field"] for item in error["details"]["validation_errors"]}
        assert {"company", "admin"} <= fields

    @pytest.mark.asyncio
    async def test_password_is_not_echoed_on_validation_error(self, client, make_registration_body):
        body = make_registration_body()
        body["admin"]["email"] = "not-an-email"

        response = await client.post("/api/tenant/register", json=body)

        assert response.status_code == 400
        assert "secret123" not in response.text

    @pytest.mark.asyncio
    async def test_check_subdomain(self, client, make_registration_body):
        before = await client.get("/api/tenant/check-subdomain/cliente1")
        assert before.json() == {"subdomain": "cliente1", "available": True}

        await client.post("/api/tenant/register", json=make_registration_body())

        after = await client.get("/api/tenant/check-subdomain/Cliente1")
        assert after.json() == {"subdomain": "cliente1", "available": False}

        reserved = await client.get("/api/tenant/check-subdomain/www")
        assert reserved.json()["available"] is False


class TestAdminLogin:
    @pytest.mark.asyncio
    async def test_login_returns_token(self, client, registered):
        assert registered["headers"]["Authorization"].startswith("Bearer ")

    @pytest.mark.asyncio
    async def test_wrong_password(self, client, registered):
        response = await client.post("/api/tenant/login", json={"email": "a@b.com", "password": "wrong"})

        assert response.status_code == 401
        assert response.json()["error"]["error_code"] == "AUTH_INVALID_CREDENTIALS"
        assert response.headers["www-authenticate"] == "Bearer"


class TestTenantAccess:
    @pytest.mark.asyncio
    async def test_get_tenant_requires_token(self, client, registered):
        response = await client.get(f"/api/tenant/{registered['tenant']['id']}")
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_get_own_tenant(self, client, registered):
        response = await client.get(f"/api/tenant/{registered['tenant']['id']}", headers=registered["headers"])

        assert response.status_code == 200
        data = response.json()
        assert data["tenant"]["tenant_key"] == "cliente1"
        assert data["admin"]["email"] == "a@b.com"

    @pytest.mark.asyncio
    async def test_other_tenant_is_forbidden(self, client, registered, make_registration_body):
        other = await client.post(
            "/api/tenant/register", json=make_registration_body(subdomain="cliente2", email="c@d.com")
        )
        response = await client.get(f"/api/tenant/{other.json()['tenant']['id']}", headers=registered["headers"])

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_invalid_token(self, client, registered):
        response = await client.get(
            f"/api/tenant/{registered['tenant']['id']}", headers={"Authorization": "Bearer not-a-jwt"}
        )
        assert response.status_code == 401
        assert response.json()["error"]["error_code"] == "AUTH_TOKEN_INVALID"

    @pytest.mark.asyncio
    async def test_token_for_deleted_admin(self, client, registered):
        token = create_access_token({"sub": "ghost@b.com"})
        response = await client.get(
            f"/api/tenant/{registered['tenant']['id']}", headers={"Authorization": f"Bearer {token}"}
        )
        assert response.status_code == 401


class TestTenantListing:
    @pytest.mark.asyncio
    async def test_tenant_admin_cannot_list(self, client, registered):
        response = await client.get("/api/tenant", headers=registered["headers"])
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_platform_admin_lists_all_tenants(self, client, registered, session_factory, make_registration_body):
        await client.post("/api/tenant/register", json=make_registration_body(subdomain="cliente2", email="c@d.com"))
        async with session_factory() as session:
            await session.execute(
                update(PlatformAdmin).where(PlatformAdmin.email == "a@b.com").values(role="platform_admin")
            )
            await session.commit()

        response = await client.get("/api/tenant", headers=registered["headers"])

        assert response.status_code == 200
        assert [t["tenant_key"] for t in response.json()] == ["cliente1", "cliente2"]

        page = await client.get("/api/tenant?skip=1&limit=1", headers=registered["headers"])
        assert [t["tenant_key"] for t in page.json()] == ["cliente2"]


class TestEnvironmentRoutes:
    @pytest.mark.asyncio
    async def test_environment_lifecycle(self, client, registered):
        tenant_id = registered["tenant"]["id"]
        headers = registered["headers"]

        created = await client.post(
            f"/api/tenant/{tenant_id}/environments",
            json={"name": "Homologação", "rest_base_url": "erp-hml:8051", "modules": {"gestao_rh": False}},
            headers=headers,
        )
        assert created.status_code == 201
        environment = created.json()
        assert environment["modules"]["gestao_rh"] is False
        assert environment["modules"]["simpledfe"] is True

        updated = await client.put(
            f"/api/tenant/{tenant_id}/environments/{environment['id']}",
            json={"enabled": False},
            headers=headers,
        )
        assert updated.status_code == 200
        assert updated.json()["enabled"] is False
        assert updated.json()["name"] == "Homologação"

        removed = await client.delete(f"/api/tenant/{tenant_id}/environments/{environment['id']}", headers=headers)
        assert removed.status_code == 200
        assert [env["name"] for env in removed.json()] == ["Produção"]

    @pytest.mark.asyncio
    async def test_unknown_module_key_is_rejected(self, client, registered):
        response = await client.post(
            f"/api/tenant/{registered['tenant']['id']}/environments",
            json={"name": "X", "modules": {"modulo_inexistente": True}},
            headers=registered["headers"],
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_unknown_environment_is_404(self, client, registered):
        tenant_id = registered["tenant"]["id"]
        response = await client.put(
            f"/api/tenant/{tenant_id}/environments/missing", json={"name": "X"}, headers=registered["headers"]
        )

        assert response.status_code == 404
        assert response.json()["error"]["error_code"] == "RESOURCE_ENVIRONMENT_NOT_FOUND"

        current = await client.get(f"/api/tenant/{tenant_id}", headers=registered["headers"])
        assert [env["name"] for env in current.json()["tenant"]["environments"]] == ["Produção"]

    @pytest.mark.asyncio
    async def test_put_tenant_replaces_environments(self, client, registered):
        tenant_id = registered["tenant"]["id"]
        response = await client.put(
            f"/api/tenant/{tenant_id}",
            json={"company": {"trade_name": "Cliente 1"}, "environments": [{"name": "Único"}]},
            headers=registered["headers"],
        )

        assert response.status_code == 200
        tenant = response.json()["tenant"]
        assert tenant["company"]["trade_name"] == "Cliente 1"
        assert [env["name"] for env in tenant["environments"]] == ["Único"]

    @pytest.mark.asyncio
    async def test_sync_legacy_without_record_is_404(self, client, registered):
        response = await client.post(
            f"/api/tenant/{registered['tenant']['id']}/sync-legacy", headers=registered["headers"]
        )
        assert response.status_code == 404


class TestPublicTenantConfig:
    @pytest.mark.asyncio
    async def test_public_config_lists_enabled_environments(self, client, registered):
        tenant_id = registered["tenant"]["id"]
        await client.post(
            f"/api/tenant/{tenant_id}/environments",
            json={"name": "Desligado", "enabled": False},
            headers=registered["headers"],
        )

        response = await client.get("/api/public/tenant-config/cliente1")

        assert response.status_code == 200
        data = response.json()
        assert data["trade_name"] == "Cliente Um"
        assert [env["name"] for env in data["environments"]] == ["Produção"]
        assert "token_endpoint" not in data["environments"][0]

    @pytest.mark.asyncio
    async def test_public_config_for_resolved_tenant(self, client, registered):
        response = await client.get("/api/public/tenant-config", headers={"X-Tenant": "CLIENTE1"})
        assert response.status_code == 200
        assert response.json()["tenant_key"] == "cliente1"

    @pytest.mark.asyncio
    async def test_unknown_tenant_json_is_404(self, client):
        response = await client.get("/api/public/tenant-config/ninguem")

        assert response.status_code == 404
        assert response.json()["error"]["error_code"] == "RESOURCE_TENANT_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_unknown_tenant_browser_is_redirected(self, client):
        response = await client.get("/api/public/tenant-config/ninguem", headers={"Accept": "text/html"})

        assert response.status_code == 303
        assert response.headers["location"] == "/company-not-found"


class TestHealth:
    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/api/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"
