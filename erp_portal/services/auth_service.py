import logging

from sqlalchemy.ext.asyncio import AsyncSession

from erp_portal.auth import create_access_token, verify_password
from erp_portal.exceptions import AuthorizationError, InvalidCredentialsError, TenantNotFoundError
from erp_portal.models.platform_admin import PlatformAdmin
from erp_portal.models.tenant import Tenant
from erp_portal.services import tenant_directory

logger = logging.getLogger(__name__)


async def authenticate_admin(email: str, password: str, db: AsyncSession) -> tuple[PlatformAdmin, Tenant]:
    admin = await tenant_directory.find_admin_by_email(email, db)
    if admin is None or not verify_password(password, admin.password_hash):
        logger.info("Admin login rejected")
        raise InvalidCredentialsError()

    tenant = await tenant_directory.find_by_id(admin.tenant_id, db)
    if tenant is None:
        raise TenantNotFoundError(admin.tenant_id)
    if tenant.access_blocked:
        logger.warning(f"Login attempt on blocked tenant {tenant.tenant_key}")
        raise AuthorizationError(tenant.access_blocked_reason or "Access to this company is blocked")
    return admin, tenant


def issue_admin_token(admin: PlatformAdmin) -> str:
    return create_access_token({"sub": admin.email, "tenant_id": admin.tenant_id, "role": admin.role})
