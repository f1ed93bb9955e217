"""
Tests for tenant resolution
"""

import pytest

from erp_portal.middleware.tenant import _extract_key_from_host, resolve_tenant_key

DOMAIN = "portalrm.simpleit.app.br"


def _resolve(headers=None, query=None, host=None, production=False, fallback="cliente1"):
    return resolve_tenant_key(
        headers=headers or {},
        query_params=query or {},
        hostname=host,
        is_production=production,
        platform_domain=DOMAIN,
        dev_fallback=fallback,
    )


class TestHostExtraction:
    def test_subdomain(self):
        assert _extract_key_from_host("cliente1.portalrm.simpleit.app.br", DOMAIN) == "cliente1"

    def test_port_is_ignored(self):
        assert _extract_key_from_host("cliente1.portalrm.simpleit.app.br:443", DOMAIN) == "cliente1"

    def test_apex_and_foreign_hosts(self):
        assert _extract_key_from_host(DOMAIN, DOMAIN) is None
        assert _extract_key_from_host("cliente1.example.com", DOMAIN) is None


class TestPrecedence:
    @pytest.mark.parametrize("production", [True, False])
    @pytest.mark.parametrize("query", [None, {"tenant": "viaquery"}])
    @pytest.mark.parametrize("host", [None, "viahost.portalrm.simpleit.app.br"])
    def test_header_always_wins(self, production, query, host):
        assert _resolve(headers={"X-Tenant": "ViaHeader"}, query=query, host=host, production=production) == "viaheader"

    def test_query_override_outside_production(self):
        assert _resolve(query={"tenant": " Teste "}, host="viahost.portalrm.simpleit.app.br") == "teste"

    def test_query_ignored_in_production(self):
        resolved = _resolve(query={"tenant": "teste"}, host="viahost.portalrm.simpleit.app.br", production=True)
        assert resolved == "viahost"

    def test_host_ignored_outside_production(self):
        assert _resolve(host="viahost.portalrm.simpleit.app.br") == "cliente1"

    def test_dev_fallback(self):
        assert _resolve() == "cliente1"

    def test_nothing_resolves_in_production(self):
        assert _resolve(host="localhost:8000", production=True) is None

    def test_blank_header_is_ignored(self):
        assert _resolve(headers={"X-Tenant": "   "}, query={"tenant": "teste"}) == "teste"


class TestMiddleware:
    @pytest.mark.asyncio
    async def test_tenant_scoped_route_uses_dev_fallback(self, client, registered):
        response = await client.get("/api/public/tenant-config")

        assert response.status_code == 200
        assert response.json()["tenant_key"] == "cliente1"

    @pytest.mark.asyncio
    async def test_query_override(self, client, registered, make_registration_body):
        await client.post("/api/tenant/register", json=make_registration_body(subdomain="cliente2", email="c@d.com"))

        response = await client.get("/api/public/tenant-config", params={"tenant": "cliente2"})

        assert response.json()["tenant_key"] == "cliente2"

    @pytest.mark.asyncio
    async def test_production_without_signal_requires_tenant(self, client, monkeypatch):
        from erp_portal.config import settings

        monkeypatch.setattr(settings, "environment", "production")

        response = await client.get("/api/public/tenant-config")

        assert response.status_code == 400
        assert response.json()["error"]["error_code"] == "TENANT_REQUIRED"
