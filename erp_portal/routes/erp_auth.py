"""
ERP token exchange.

POST /api/auth/login        → password grant against <endpoint>/api/connect/token
POST /api/auth/refresh      → refresh grant against the same URL
POST /api/erp/auth/login    → password grant for the resolved tenant's environment
POST /api/erp/auth/refresh  → refresh grant for the resolved tenant's environment

The raw routes take `endpoint` plus the grant fields, which are forwarded
untouched, and relay the ERP's answer with its own status code. The
tenant-scoped routes read the host and any token endpoint override from the
tenant's environment and answer with the issued credential.
"""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from erp_portal.database import get_db
from erp_portal.exceptions import UpstreamError, ValidationError
from erp_portal.middleware.tenant import require_tenant_key
from erp_portal.schemas.credential import ErpLogin, ErpRefresh, StoredCredential, TokenGrant
from erp_portal.services.erp_session import ErpSession, load_active_tenant
from erp_portal.services.proxy_gateway import ProxyGateway, build_token_url, get_proxy_gateway

router = APIRouter(prefix="/api/auth", tags=["ERP Auth"])
tenant_router = APIRouter(prefix="/api/erp/auth", tags=["ERP Auth"])
logger = logging.getLogger(__name__)


async def _exchange(grant: TokenGrant, gateway: ProxyGateway, grant_name: str) -> JSONResponse:
    if not grant.endpoint or not grant.endpoint.strip():
        raise ValidationError("endpoint is required", field="endpoint")

    response = await gateway.post_grant(build_token_url(grant.endpoint), grant.grant_fields())
    if not response.ok:
        logger.info(f"ERP {grant_name} grant refused with status {response.status_code}")
        raise UpstreamError(response.status_code, response.body)
    return JSONResponse(status_code=response.status_code, content=response.body)


@router.post("/login")
async def erp_login(
    grant: TokenGrant,
    gateway: ProxyGateway = Depends(get_proxy_gateway),
) -> JSONResponse:
    return await _exchange(grant, gateway, "password")


@router.post("/refresh")
async def erp_refresh(
    grant: TokenGrant,
    gateway: ProxyGateway = Depends(get_proxy_gateway),
) -> JSONResponse:
    return await _exchange(grant, gateway, "refresh")


async def _open_session(
    tenant_key: str, environment_id: str | None, db: AsyncSession, gateway: ProxyGateway
) -> ErpSession:
    tenant = await load_active_tenant(tenant_key, db)
    return ErpSession.open(tenant, gateway, environment_id)


@tenant_router.post("/login", response_model=StoredCredential)
async def tenant_erp_login(
    payload: ErpLogin,
    tenant_key: str = Depends(require_tenant_key),
    db: AsyncSession = Depends(get_db),
    gateway: ProxyGateway = Depends(get_proxy_gateway),
) -> StoredCredential:
    """Sign in to the tenant's ERP; a refused grant is relayed unchanged."""
    session = await _open_session(tenant_key, payload.environment_id, db, gateway)
    return await session.login(payload.username, payload.password, servicealias=payload.servicealias)


@tenant_router.post("/refresh", response_model=StoredCredential)
async def tenant_erp_refresh(
    payload: ErpRefresh,
    tenant_key: str = Depends(require_tenant_key),
    db: AsyncSession = Depends(get_db),
    gateway: ProxyGateway = Depends(get_proxy_gateway),
) -> StoredCredential:
    """Renew a credential; any refusal answers 401 so the client signs in again."""
    session = await _open_session(tenant_key, payload.environment_id, db, gateway)
    return await session.renew(payload.refresh_token)
