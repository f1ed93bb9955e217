"""
Custom Exception Classes for the ERP Portal

This module defines custom exceptions for consistent error responses
across tenant administration, the ERP proxy and the credential lifecycle.
"""

from enum import Enum
from typing import Any

from fastapi import status


class ErrorCode(str, Enum):
    """Machine-readable error codes returned in the error envelope."""

    AUTH_FAILED = "AUTH_FAILED"
    AUTH_INVALID_CREDENTIALS = "AUTH_INVALID_CREDENTIALS"
    AUTH_TOKEN_EXPIRED = "AUTH_TOKEN_EXPIRED"
    AUTH_TOKEN_INVALID = "AUTH_TOKEN_INVALID"
    AUTH_PERMISSION_DENIED = "AUTH_PERMISSION_DENIED"
    CREDENTIAL_EXPIRED = "CREDENTIAL_EXPIRED"

    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    TENANT_NOT_FOUND = "RESOURCE_TENANT_NOT_FOUND"
    ENVIRONMENT_NOT_FOUND = "RESOURCE_ENVIRONMENT_NOT_FOUND"
    ADMIN_NOT_FOUND = "RESOURCE_ADMIN_NOT_FOUND"
    LEGACY_CONFIG_NOT_FOUND = "RESOURCE_LEGACY_CONFIG_NOT_FOUND"

    VALIDATION_FAILED = "VALIDATION_FAILED"
    VALIDATION_DUPLICATE_RESOURCE = "VALIDATION_DUPLICATE_RESOURCE"
    TENANT_REQUIRED = "TENANT_REQUIRED"
    INVALID_OPERATION = "INVALID_OPERATION"

    UPSTREAM_ERROR = "UPSTREAM_ERROR"
    TRANSACTION_ABORTED = "TRANSACTION_ABORTED"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


class PortalError(Exception):
    """Base exception class for all portal exceptions"""

    error_code: ErrorCode = ErrorCode.INTERNAL_ERROR

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: dict[str, Any] | None = None,
        error_code: ErrorCode | None = None,
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        if error_code is not None:
            self.error_code = error_code
        super().__init__(self.message)


# ============================================================================
# Authentication & Authorization Exceptions
# ============================================================================


class AuthenticationError(PortalError):
    """Raised when authentication fails"""

    error_code = ErrorCode.AUTH_FAILED

    def __init__(self, message: str = "Authentication failed", details: dict[str, Any] | None = None):
        super().__init__(message=message, status_code=status.HTTP_401_UNAUTHORIZED, details=details or {})


class InvalidCredentialsError(AuthenticationError):
    """Raised when admin login credentials are invalid"""

    error_code = ErrorCode.AUTH_INVALID_CREDENTIALS

    def __init__(self, message: str = "Invalid email or password"):
        super().__init__(message=message)


class TokenExpiredError(AuthenticationError):
    """Raised when a portal JWT has expired"""

    error_code = ErrorCode.AUTH_TOKEN_EXPIRED

    def __init__(self, message: str = "Token has expired"):
        super().__init__(message=message)


class InvalidTokenError(AuthenticationError):
    """Raised when a portal JWT is invalid"""

    error_code = ErrorCode.AUTH_TOKEN_INVALID

    def __init__(self, message: str = "Invalid or malformed token"):
        super().__init__(message=message)


class CredentialExpiredError(AuthenticationError):
    """Raised when an ERP credential is past its expiry and could not be refreshed"""

    error_code = ErrorCode.CREDENTIAL_EXPIRED

    def __init__(self, message: str = "ERP credential expired, authenticate again", tenant_key: str | None = None):
        details = {"tenant_key": tenant_key} if tenant_key else {}
        super().__init__(message=message, details=details)


class AuthorizationError(PortalError):
    """Raised when an admin lacks permission for an action"""

    error_code = ErrorCode.AUTH_PERMISSION_DENIED

    def __init__(self, message: str = "You do not have permission to perform this action"):
        super().__init__(message=message, status_code=status.HTTP_403_FORBIDDEN)


# ============================================================================
# Resource Not Found Exceptions
# ============================================================================


class ResourceNotFoundError(PortalError):
    """Base class for resource not found errors"""

    error_code = ErrorCode.RESOURCE_NOT_FOUND

    def __init__(self, resource_type: str, resource_id: Any | None = None):
        message = f"{resource_type} not found"
        if resource_id is not None:
            message = f"{resource_type} with id '{resource_id}' not found"
        super().__init__(
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource_type": resource_type, "resource_id": resource_id},
        )


class TenantNotFoundError(ResourceNotFoundError):
    """Raised when a tenant lookup by id or key fails"""

    error_code = ErrorCode.TENANT_NOT_FOUND

    def __init__(self, tenant_id: Any | None = None):
        super().__init__(resource_type="Tenant", resource_id=tenant_id)


class EnvironmentNotFoundError(ResourceNotFoundError):
    """Raised when an environment id is unknown within its tenant"""

    error_code = ErrorCode.ENVIRONMENT_NOT_FOUND

    def __init__(self, environment_id: Any | None = None):
        super().__init__(resource_type="Environment", resource_id=environment_id)


class AdminNotFoundError(ResourceNotFoundError):
    """Raised when a tenant has no PlatformAdmin"""

    error_code = ErrorCode.ADMIN_NOT_FOUND

    def __init__(self, tenant_id: Any | None = None):
        super().__init__(resource_type="PlatformAdmin", resource_id=tenant_id)


class LegacyConfigNotFoundError(ResourceNotFoundError):
    """Raised when no legacy configuration record matches the admin email"""

    error_code = ErrorCode.LEGACY_CONFIG_NOT_FOUND

    def __init__(self, email: str | None = None):
        super().__init__(resource_type="LegacyConfigUser", resource_id=email)


# ============================================================================
# Validation & Business Logic Exceptions
# ============================================================================


class ValidationError(PortalError):
    """Raised when input validation fails"""

    error_code = ErrorCode.VALIDATION_FAILED

    def __init__(self, message: str, field: str | None = None, details: dict[str, Any] | None = None):
        error_details = details or {}
        if field:
            error_details["field"] = field
        super().__init__(message=message, status_code=status.HTTP_400_BAD_REQUEST, details=error_details)


class TenantRequiredError(ValidationError):
    """Raised by tenant-scoped operations when no tenant was resolved"""

    error_code = ErrorCode.TENANT_REQUIRED

    def __init__(self):
        super().__init__(message="Tenant could not be resolved for this request", field="X-Tenant")


class DuplicateResourceError(PortalError):
    """Raised when attempting to create a duplicate resource"""

    error_code = ErrorCode.VALIDATION_DUPLICATE_RESOURCE

    def __init__(self, resource_type: str, field: str, value: Any):
        super().__init__(
            message=f"{resource_type} with {field} '{value}' already exists",
            status_code=status.HTTP_409_CONFLICT,
            details={"resource_type": resource_type, "field": field, "value": value},
        )


class InvalidOperationError(PortalError):
    """Raised when an operation is invalid in the current context"""

    error_code = ErrorCode.INVALID_OPERATION

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message=message, status_code=status.HTTP_400_BAD_REQUEST, details=details or {})


# ============================================================================
# Upstream, Database & Service Exceptions
# ============================================================================


class UpstreamError(PortalError):
    """
    Raised when the ERP answered with a non-2xx status.

    The upstream status and body are relayed to the caller unmodified.
    """

    error_code = ErrorCode.UPSTREAM_ERROR

    def __init__(self, status_code: int, body: Any):
        self.body = body
        super().__init__(message=f"Upstream responded with status {status_code}", status_code=status_code)


class TransactionAbortedError(PortalError):
    """Raised when a multi-record write fails and is rolled back as a whole"""

    error_code = ErrorCode.TRANSACTION_ABORTED

    def __init__(self, message: str = "The operation was aborted and no changes were saved", operation: str | None = None):
        details = {"operation": operation} if operation else {}
        super().__init__(message=message, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, details=details)


class ServiceError(PortalError):
    """Raised when a service layer operation fails"""

    def __init__(self, message: str, service: str | None = None):
        details = {"service": service} if service else {}
        super().__init__(message=message, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, details=details)
