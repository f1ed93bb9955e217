"""Constants package for the ERP portal."""

from .auth import ACCESS_TOKEN_EXPIRE_MINUTES, ALGORITHM, SECRET_KEY
from .modules import CANONICAL_MODULES, MOVEMENT_CATEGORIES
from .roles import DEFAULT_ADMIN_ROLE, AdminRole, TenantStatus

__all__ = [
    # Role / status constants
    "AdminRole",
    "DEFAULT_ADMIN_ROLE",
    "TenantStatus",
    # Environment constants
    "CANONICAL_MODULES",
    "MOVEMENT_CATEGORIES",
    # Auth constants
    "SECRET_KEY",
    "ALGORITHM",
    "ACCESS_TOKEN_EXPIRE_MINUTES",
]
