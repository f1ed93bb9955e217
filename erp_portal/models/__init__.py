from .tenant import Tenant
from .platform_admin import PlatformAdmin
from .legacy_config import LegacyConfigUser

__all__ = ["Tenant", "PlatformAdmin", "LegacyConfigUser"]
