"""
Role and Status Constants

Enumerations for platform admin roles and tenant lifecycle status.
"""

from enum import Enum


class AdminRole(str, Enum):
    """Roles a PlatformAdmin can hold."""

    PLATFORM_ADMIN = "platform_admin"
    TENANT_ADMIN = "tenant_admin"
    SUPPORT = "support"


class TenantStatus(str, Enum):
    active = "active"
    inactive = "inactive"
    trial = "trial"
    blocked = "blocked"
    cancelled = "cancelled"


# Role given to the admin created alongside a self-registered tenant
DEFAULT_ADMIN_ROLE = AdminRole.TENANT_ADMIN

# Roles allowed to manage any tenant, not only their own
CROSS_TENANT_ROLES = frozenset({AdminRole.PLATFORM_ADMIN, AdminRole.SUPPORT})
