"""
Tenant Directory

Async lookups and inserts for Tenant and PlatformAdmin records.
All functions accept an injected AsyncSession and never commit: callers
own the transaction (see erp_portal.database.unit_of_work).

Uniqueness of tenant keys, tenant hosts and admin emails is enforced by
the database constraints; an insert that trips one is reported as
DuplicateResourceError, so two racing registrations end with one success
and one conflict.
"""

import logging

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from erp_portal.exceptions import DuplicateResourceError
from erp_portal.models.legacy_config import LegacyConfigUser
from erp_portal.models.platform_admin import PlatformAdmin
from erp_portal.models.tenant import Tenant

logger = logging.getLogger(__name__)


async def find_by_id(tenant_id: int, db: AsyncSession) -> Tenant | None:
    """Return a Tenant by primary key, or None if not found."""
    result = await db.execute(select(Tenant).where(Tenant.id == tenant_id))
    return result.scalars().first()


async def find_by_key(tenant_key: str, db: AsyncSession) -> Tenant | None:
    """Return a Tenant by its (lowercase) key, or None if not found."""
    result = await db.execute(select(Tenant).where(Tenant.tenant_key == tenant_key.strip().lower()))
    return result.scalars().first()


async def find_by_host(tenant_host: str, db: AsyncSession) -> Tenant | None:
    result = await db.execute(select(Tenant).where(Tenant.tenant_host == tenant_host.strip().lower()))
    return result.scalars().first()


async def find_by_key_or_host(tenant_key: str, tenant_host: str, db: AsyncSession) -> Tenant | None:
    result = await db.execute(
        select(Tenant).where(or_(Tenant.tenant_key == tenant_key, Tenant.tenant_host == tenant_host))
    )
    return result.scalars().first()


async def list_tenants(db: AsyncSession, skip: int = 0, limit: int = 20) -> list[Tenant]:
    """Return a page of tenants ordered by id."""
    result = await db.execute(select(Tenant).order_by(Tenant.id).offset(skip).limit(limit))
    return list(result.scalars().all())


async def create(tenant: Tenant, db: AsyncSession) -> Tenant:
    """Insert a tenant inside the caller's transaction and assign its id."""
    db.add(tenant)
    try:
        await db.flush()
    except IntegrityError as e:
        logger.info("Tenant insert rejected by unique constraint: key=%s", tenant.tenant_key)
        raise DuplicateResourceError("Tenant", "subdomain", tenant.tenant_key) from e
    logger.info("Tenant staged: id=%d key=%s", tenant.id, tenant.tenant_key)
    return tenant


async def find_admin_by_tenant(tenant_id: int, db: AsyncSession) -> PlatformAdmin | None:
    result = await db.execute(
        select(PlatformAdmin).where(PlatformAdmin.tenant_id == tenant_id).order_by(PlatformAdmin.id)
    )
    return result.scalars().first()


async def find_admin_by_email(email: str, db: AsyncSession) -> PlatformAdmin | None:
    result = await db.execute(select(PlatformAdmin).where(PlatformAdmin.email == email.strip().lower()))
    return result.scalars().first()


async def create_admin(admin: PlatformAdmin, db: AsyncSession) -> PlatformAdmin:
    """Insert an admin inside the caller's transaction."""
    db.add(admin)
    try:
        await db.flush()
    except IntegrityError as e:
        logger.info("Admin insert rejected by unique constraint")
        raise DuplicateResourceError("PlatformAdmin", "email", admin.email) from e
    return admin


async def find_legacy_config_by_email(email: str, db: AsyncSession) -> LegacyConfigUser | None:
    result = await db.execute(
        select(LegacyConfigUser)
        .where(func.lower(LegacyConfigUser.email) == email.strip().lower())
        .order_by(LegacyConfigUser.id)
    )
    return result.scalars().first()
