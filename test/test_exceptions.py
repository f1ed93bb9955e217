"""
Tests for custom exception classes, error handlers and log redaction
"""

from fastapi import status

from erp_portal.exceptions import (
    AuthorizationError,
    CredentialExpiredError,
    DuplicateResourceError,
    EnvironmentNotFoundError,
    ErrorCode,
    PortalError,
    TenantNotFoundError,
    TenantRequiredError,
    TransactionAbortedError,
    UpstreamError,
    ValidationError,
)
from erp_portal.utils.redaction import redact_sensitive


class TestPortalError:
    def test_defaults(self):
        exc = PortalError("Test error")
        assert str(exc) == "Test error"
        assert exc.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert exc.details == {}
        assert exc.error_code == ErrorCode.INTERNAL_ERROR

    def test_error_code_override(self):
        exc = PortalError("x", error_code=ErrorCode.SERVICE_UNAVAILABLE)
        assert exc.error_code == ErrorCode.SERVICE_UNAVAILABLE


class TestSubclasses:
    def test_not_found(self):
        exc = TenantNotFoundError("cliente9")
        assert exc.status_code == 404
        assert exc.message == "Tenant with id 'cliente9' not found"
        assert exc.error_code == ErrorCode.TENANT_NOT_FOUND

    def test_environment_not_found_without_id(self):
        exc = EnvironmentNotFoundError()
        assert exc.message == "Environment not found"

    def test_conflict(self):
        exc = DuplicateResourceError("Tenant", "subdomain", "cliente1")
        assert exc.status_code == 409
        assert exc.details == {"resource_type": "Tenant", "field": "subdomain", "value": "cliente1"}

    def test_validation_names_field(self):
        exc = ValidationError("bad", field="subdomain")
        assert exc.status_code == 400
        assert exc.details["field"] == "subdomain"

    def test_tenant_required(self):
        exc = TenantRequiredError()
        assert exc.status_code == 400
        assert exc.error_code == ErrorCode.TENANT_REQUIRED

    def test_credential_expired(self):
        exc = CredentialExpiredError(tenant_key="cliente1")
        assert exc.status_code == 401
        assert exc.details == {"tenant_key": "cliente1"}

    def test_upstream_keeps_status_and_body(self):
        exc = UpstreamError(418, {"x": 1})
        assert exc.status_code == 418
        assert exc.body == {"x": 1}

    def test_transaction_aborted(self):
        exc = TransactionAbortedError(operation="create_tenant")
        assert exc.status_code == 500
        assert exc.details == {"operation": "create_tenant"}

    def test_authorization(self):
        assert AuthorizationError().status_code == 403


class TestRedaction:
    def test_nested_secrets_are_masked(self):
        payload = {
            "username": "mestre",
            "Password": "totvs",
            "grant": {"refresh_token": "r", "scope": "all"},
            "items": [{"access_token": "a"}, {"name": "x"}],
        }

        assert redact_sensitive(payload) == {
            "username": "mestre",
            "Password": "***",
            "grant": {"refresh_token": "***", "scope": "all"},
            "items": [{"access_token": "***"}, {"name": "x"}],
        }

    def test_original_is_untouched(self):
        payload = {"password": "totvs"}
        redact_sensitive(payload)
        assert payload == {"password": "totvs"}

    def test_scalars_pass_through(self):
        assert redact_sensitive("text") == "text"
        assert redact_sensitive(None) is None
