"""
Tenant Resolution Middleware

Resolves the current tenant key from, in order:
  1. X-Tenant request header          (authenticated portal sessions)
  2. ?tenant= query parameter         (outside production only)
  3. Subdomain of the request host    (production only, e.g. cliente1.portalrm.simpleit.app.br)
  4. settings.dev_tenant_fallback     (outside production only)

Sets request.state.tenant_key for downstream handlers. The middleware never
rejects a request: public routes (register, login, health) run without a
tenant, and tenant-scoped routes enforce presence via `require_tenant_key`.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from erp_portal.config import settings
from erp_portal.exceptions import TenantRequiredError

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from starlette.responses import Response

logger = logging.getLogger(__name__)

TENANT_HEADER = "X-Tenant"
TENANT_QUERY_PARAM = "tenant"


def _extract_key_from_host(host: str, platform_domain: str) -> str | None:
    """
    Extract the tenant key from a subdomain of the platform domain.

    Examples:
        host="cliente1.portalrm.simpleit.app.br" → "cliente1"
        host="portalrm.simpleit.app.br"          → None
        host="a.b.portalrm.simpleit.app.br"      → "a"
    """
    # Strip port if present
    host = host.split(":")[0].lower()
    if host != platform_domain and host.endswith("." + platform_domain):
        return host[: -(len(platform_domain) + 1)].split(".")[0] or None
    return None


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip().lower()
    return value or None


def resolve_tenant_key(
    headers: Mapping[str, str],
    query_params: Mapping[str, str],
    hostname: str | None,
    is_production: bool,
    platform_domain: str,
    dev_fallback: str | None,
) -> str | None:
    """Apply the tenant signal precedence; returns None when nothing matched."""
    tenant_key = _clean(headers.get(TENANT_HEADER))
    header_set = tenant_key is not None

    if tenant_key is None and not is_production:
        tenant_key = _clean(query_params.get(TENANT_QUERY_PARAM))

    if tenant_key is None and is_production and not header_set and hostname:
        tenant_key = _extract_key_from_host(hostname, platform_domain)

    if tenant_key is None and not is_production:
        tenant_key = _clean(dev_fallback)

    return tenant_key


class TenantMiddleware(BaseHTTPMiddleware):
    """
    Resolve the current tenant key and attach it to request.state.

    Attributes set on request.state:
        tenant_key (str | None): resolved tenant key, lowercase
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        tenant_key = resolve_tenant_key(
            headers=request.headers,
            query_params=request.query_params,
            hostname=request.headers.get("host", ""),
            is_production=settings.is_production,
            platform_domain=settings.platform_domain,
            dev_fallback=settings.dev_tenant_fallback,
        )
        request.state.tenant_key = tenant_key
        if tenant_key:
            logger.debug("TenantMiddleware: resolved tenant_key=%s", tenant_key)

        return await call_next(request)


def get_tenant_key(request: Request) -> str | None:
    """FastAPI dependency returning the resolved tenant key, or None."""
    return getattr(request.state, "tenant_key", None)


def require_tenant_key(request: Request) -> str:
    """FastAPI dependency for tenant-scoped routes; fails when no tenant resolved."""
    tenant_key = get_tenant_key(request)
    if not tenant_key:
        raise TenantRequiredError()
    return tenant_key
