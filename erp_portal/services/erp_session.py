"""
ERP call context.

An ErpSession carries everything a call to the ERP needs: the tenant, the
selected environment, the credential manager and the gateway. It is built
explicitly and passed to whoever talks to the ERP.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from erp_portal.exceptions import (
    AuthorizationError,
    EnvironmentNotFoundError,
    InvalidOperationError,
    TenantNotFoundError,
)
from erp_portal.models.tenant import Tenant
from erp_portal.schemas.credential import StoredCredential
from erp_portal.schemas.erp import ErpPayload
from erp_portal.schemas.tenant import Environment
from erp_portal.services import tenant_directory
from erp_portal.services.credential_service import CredentialManager, CredentialStore
from erp_portal.services.proxy_gateway import GatewayResponse, ProxyGateway, normalize_shape

logger = logging.getLogger(__name__)


async def load_active_tenant(tenant_key: str, db: AsyncSession) -> Tenant:
    """The tenant behind a resolved key, refusing blocked tenants."""
    tenant = await tenant_directory.find_by_key(tenant_key, db)
    if tenant is None:
        raise TenantNotFoundError(tenant_key)
    if tenant.access_blocked:
        raise AuthorizationError(tenant.access_blocked_reason or "Access to this company is blocked")
    return tenant


def select_environment(tenant: Tenant, environment_id: Optional[str] = None) -> Environment:
    """
    Pick the environment for a call: the requested one, or the first enabled one.

    Raises:
        EnvironmentNotFoundError: the id is unknown, or the tenant has no enabled environment
        InvalidOperationError: the requested environment is disabled
    """
    environments = [Environment.model_validate(doc) for doc in tenant.environments or []]
    if environment_id:
        for environment in environments:
            if environment.id == environment_id:
                if not environment.enabled:
                    raise InvalidOperationError(f"Environment '{environment.name}' is disabled")
                return environment
        raise EnvironmentNotFoundError(environment_id)

    for environment in environments:
        if environment.enabled:
            return environment
    raise EnvironmentNotFoundError()


@dataclass
class ErpSession:
    tenant_key: str
    environment: Environment
    credentials: CredentialManager
    gateway: ProxyGateway

    @classmethod
    def open(
        cls,
        tenant: Tenant,
        gateway: ProxyGateway,
        environment_id: Optional[str] = None,
        store: Optional[CredentialStore] = None,
    ) -> "ErpSession":
        environment = select_environment(tenant, environment_id)
        manager = CredentialManager(
            gateway,
            tenant_key=tenant.tenant_key,
            environment_id=environment.id,
            endpoint=environment.rest_base_url or environment.webservice_base_url,
            token_endpoint=environment.token_endpoint,
            store=store,
        )
        return cls(tenant_key=tenant.tenant_key, environment=environment, credentials=manager, gateway=gateway)

    @property
    def endpoint(self) -> str:
        return self.environment.rest_base_url or self.environment.webservice_base_url

    async def login(self, username: str, password: str, **extra_fields: Any) -> StoredCredential:
        """Password grant against the environment's token endpoint."""
        return await self.credentials.issue(username, password, **extra_fields)

    async def renew(self, refresh_token: str) -> StoredCredential:
        """Refresh grant for a refresh token the client kept from an earlier login."""
        self.attach(
            StoredCredential(access_token="", refresh_token=refresh_token, expires_at=datetime.now(timezone.utc))
        )
        return await self.credentials.refresh()

    def attach(self, credential: StoredCredential) -> None:
        """Adopt a credential obtained elsewhere (e.g. sent by the browser)."""
        self.credentials.store(
            credential.model_copy(update={"tenant_key": self.tenant_key, "environment_id": self.environment.id})
        )

    async def get(self, path: str) -> GatewayResponse:
        """GET a path on the environment's ERP host with a credential known to be valid."""
        credential = await self.credentials.ensure_valid()
        return await self.gateway.get(self.endpoint, path, token=credential.access_token)

    async def fetch(self, path: str) -> tuple[GatewayResponse, Optional[ErpPayload]]:
        """Like get(), plus the normalised payload of a successful answer."""
        response = await self.get(path)
        payload: Any = normalize_shape(response.body) if response.ok else None
        return response, payload
