"""
Tests for structured logging
"""

import json
import logging

import pytest

from erp_portal.middleware.logging import StructuredFormatter


class TestStructuredFormatter:
    def test_outputs_json_with_request_fields(self):
        record = logging.LogRecord("erp_portal.access", logging.INFO, __file__, 1, "GET /api/proxy - 200", None, None)
        record.request_id = "req-1"
        record.tenant_key = "cliente1"
        record.path = "/api/proxy"
        record.status_code = 200

        data = json.loads(StructuredFormatter().format(record))

        assert data["message"] == "GET /api/proxy - 200"
        assert data["request_id"] == "req-1"
        assert data["tenant_key"] == "cliente1"
        assert data["status_code"] == 200
        assert data["level"] == "INFO"


class TestAccessLog:
    @pytest.mark.asyncio
    async def test_query_string_is_never_logged(self, client, fake_erp, caplog):
        with caplog.at_level(logging.INFO, logger="erp_portal.access"):
            await client.get("/api/proxy", params={"endpoint": "erp.local", "path": "/api/x", "token": "very-secret"})

        access = [record for record in caplog.records if record.name == "erp_portal.access"]
        assert access
        assert all("very-secret" not in record.getMessage() for record in access)
        assert access[-1].path == "/api/proxy"

    @pytest.mark.asyncio
    async def test_request_id_is_returned(self, client):
        response = await client.get("/api/health", headers={"X-Request-ID": "abc-123"})
        assert response.headers["x-request-id"] == "abc-123"
