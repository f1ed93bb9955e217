"""
Public tenant configuration, read by the login screen before anyone is
authenticated. Only enabled environments are listed, without connection
internals beyond the web service address.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from erp_portal.database import get_db
from erp_portal.exceptions import TenantNotFoundError
from erp_portal.middleware.tenant import require_tenant_key
from erp_portal.schemas.tenant import PublicTenantConfig
from erp_portal.services import tenant_directory

router = APIRouter(prefix="/api/public", tags=["Public"])
logger = logging.getLogger(__name__)


async def _public_config(tenant_key: str, db: AsyncSession) -> PublicTenantConfig:
    tenant = await tenant_directory.find_by_key(tenant_key, db)
    if tenant is None:
        raise TenantNotFoundError(tenant_key)
    return PublicTenantConfig.from_tenant(tenant)


@router.get("/tenant-config", response_model=PublicTenantConfig)
async def current_tenant_config(
    tenant_key: str = Depends(require_tenant_key),
    db: AsyncSession = Depends(get_db),
) -> PublicTenantConfig:
    """Configuration of the tenant resolved from the request."""
    return await _public_config(tenant_key, db)


@router.get("/tenant-config/{tenant_key}", response_model=PublicTenantConfig)
async def tenant_config(
    tenant_key: str,
    db: AsyncSession = Depends(get_db),
) -> PublicTenantConfig:
    return await _public_config(tenant_key, db)
