"""
Tenant Administration Routes

POST   /api/tenant/register                          → self-service signup (tenant + admin)
GET    /api/tenant/check-subdomain/{subdomain}       → subdomain availability
POST   /api/tenant/login                             → admin login, returns a portal token
GET    /api/tenant                                   → list tenants (platform roles only)
GET    /api/tenant/{id}                              → tenant with its admin
PUT    /api/tenant/{id}                              → partial update (company, environments, admin)
POST   /api/tenant/{id}/environments                 → add an environment
PUT    /api/tenant/{id}/environments/{env_id}        → update one environment
DELETE /api/tenant/{id}/environments/{env_id}        → remove one environment
POST   /api/tenant/{id}/sync-legacy                  → import environments from the legacy config

Routes taking a tenant id require the admin bearer token; tenant admins
only reach their own tenant.
"""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from erp_portal.auth import ensure_tenant_access, get_current_admin, require_platform_admin
from erp_portal.database import get_db
from erp_portal.models.platform_admin import PlatformAdmin
from erp_portal.schemas.tenant import (
    AdminLogin,
    AdminLoginResponse,
    AdminResponse,
    Environment,
    EnvironmentCreate,
    EnvironmentUpdate,
    RegistrationResponse,
    SubdomainAvailability,
    SyncResult,
    TenantDetailResponse,
    TenantRegister,
    TenantResponse,
    TenantUpdate,
)
from erp_portal.services import tenant_directory, tenant_service
from erp_portal.services.auth_service import authenticate_admin, issue_admin_token
from erp_portal.utils.subdomain import is_valid_subdomain

router = APIRouter(prefix="/api/tenant", tags=["Tenants"])
logger = logging.getLogger(__name__)


# ── Dependency ─────────────────────────────────────────────────────────────────


async def get_managed_tenant_id(
    tenant_id: int,
    admin: PlatformAdmin = Depends(get_current_admin),
) -> int:
    """Path tenant id, once the calling admin is allowed to manage it."""
    ensure_tenant_access(admin, tenant_id)
    return tenant_id


# ── Public routes ──────────────────────────────────────────────────────────────


@router.post("/register", response_model=RegistrationResponse, status_code=status.HTTP_201_CREATED)
async def register_tenant(
    payload: TenantRegister,
    db: AsyncSession = Depends(get_db),
) -> RegistrationResponse:
    """Create a trial tenant together with its first admin."""
    tenant, admin = await tenant_service.create_tenant(payload, db)
    return RegistrationResponse(tenant=TenantResponse.from_tenant(tenant), admin=AdminResponse.from_admin(admin))


@router.get("/check-subdomain/{subdomain}", response_model=SubdomainAvailability)
async def check_subdomain(
    subdomain: str,
    db: AsyncSession = Depends(get_db),
) -> SubdomainAvailability:
    key = subdomain.strip().lower()
    available = is_valid_subdomain(key) and await tenant_service.check_subdomain_availability(key, db)
    return SubdomainAvailability(subdomain=key, available=available)


@router.post("/login", response_model=AdminLoginResponse)
async def login_admin(
    payload: AdminLogin,
    db: AsyncSession = Depends(get_db),
) -> AdminLoginResponse:
    admin, tenant = await authenticate_admin(payload.email, payload.password, db)
    logger.info(f"Admin {admin.id} logged in to tenant {tenant.tenant_key}")
    return AdminLoginResponse(
        access_token=issue_admin_token(admin),
        admin=AdminResponse.from_admin(admin),
        tenant=TenantResponse.from_tenant(tenant),
    )


# ── Admin routes ───────────────────────────────────────────────────────────────


@router.get("", response_model=list[TenantResponse])
async def list_tenants(
    skip: int = 0,
    limit: int = 20,
    db: AsyncSession = Depends(get_db),
    _admin: PlatformAdmin = Depends(require_platform_admin),
) -> list[TenantResponse]:
    """List tenants, paginated (platform_admin and support only)."""
    tenants = await tenant_directory.list_tenants(db, skip=skip, limit=limit)
    return [TenantResponse.from_tenant(t) for t in tenants]


@router.get("/{tenant_id}", response_model=TenantDetailResponse)
async def get_tenant(
    tenant_id: int = Depends(get_managed_tenant_id),
    db: AsyncSession = Depends(get_db),
) -> TenantDetailResponse:
    tenant, admin = await tenant_service.get_tenant_with_admin(tenant_id, db)
    return TenantDetailResponse(
        tenant=TenantResponse.from_tenant(tenant),
        admin=AdminResponse.from_admin(admin) if admin else None,
    )


@router.put("/{tenant_id}", response_model=TenantDetailResponse)
async def update_tenant(
    payload: TenantUpdate,
    tenant_id: int = Depends(get_managed_tenant_id),
    db: AsyncSession = Depends(get_db),
) -> TenantDetailResponse:
    """Partial update; a supplied environments list replaces the current one."""
    tenant, admin = await tenant_service.update_tenant(tenant_id, payload, db)
    return TenantDetailResponse(
        tenant=TenantResponse.from_tenant(tenant),
        admin=AdminResponse.from_admin(admin) if admin else None,
    )


@router.post("/{tenant_id}/environments", response_model=Environment, status_code=status.HTTP_201_CREATED)
async def add_environment(
    payload: EnvironmentCreate,
    tenant_id: int = Depends(get_managed_tenant_id),
    db: AsyncSession = Depends(get_db),
) -> Environment:
    return await tenant_service.add_environment(tenant_id, payload, db)


@router.put("/{tenant_id}/environments/{environment_id}", response_model=Environment)
async def update_environment(
    environment_id: str,
    payload: EnvironmentUpdate,
    tenant_id: int = Depends(get_managed_tenant_id),
    db: AsyncSession = Depends(get_db),
) -> Environment:
    return await tenant_service.update_environment(tenant_id, environment_id, payload, db)


@router.delete("/{tenant_id}/environments/{environment_id}", response_model=list[Environment])
async def remove_environment(
    environment_id: str,
    tenant_id: int = Depends(get_managed_tenant_id),
    db: AsyncSession = Depends(get_db),
) -> list[Environment]:
    """Remove one environment and return the ones left."""
    return await tenant_service.remove_environment(tenant_id, environment_id, db)


@router.post("/{tenant_id}/sync-legacy", response_model=SyncResult)
async def sync_legacy(
    tenant_id: int = Depends(get_managed_tenant_id),
    db: AsyncSession = Depends(get_db),
) -> SyncResult:
    imported, environments = await tenant_service.sync_legacy_config(tenant_id, db)
    message = f"{imported} environment(s) imported" if imported else "No new environments to import"
    return SyncResult(imported=imported, message=message, environments=environments)
