"""
Tenant, environment and admin schemas.

`Environment` is both the API shape and the document stored in the tenant's
`environments` JSON column.
"""

from datetime import datetime
from typing import Literal, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from erp_portal.models.platform_admin import PlatformAdmin
from erp_portal.models.tenant import Tenant

AuthMode = Literal["basic", "bearer"]


def new_environment_id() -> str:
    return uuid4().hex


class EnvironmentModules(BaseModel):
    """Fixed set of ERP module switches; unset switches default to enabled."""

    model_config = ConfigDict(extra="forbid")

    dashboard_principal: bool = True
    simpledfe: bool = True
    gestao_compras: bool = True
    gestao_financeira: bool = True
    gestao_contabil: bool = True
    gestao_fiscal: bool = True
    gestao_rh: bool = True
    assistentes_virtuais: bool = True
    parametros: bool = True


class EnvironmentFields(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field("Novo Ambiente", min_length=1, max_length=100)
    enabled: bool = True

    # Connection
    webservice_base_url: str = ""
    rest_base_url: str = ""
    soap_data_server_url: str = ""
    auth_mode: AuthMode = "bearer"
    token_endpoint: str = ""

    modules: EnvironmentModules = Field(default_factory=EnvironmentModules)

    # Movement codes per document category
    purchase_request_movements: list[str] = Field(default_factory=list)
    purchase_order_movements: list[str] = Field(default_factory=list)
    product_invoice_movements: list[str] = Field(default_factory=list)
    service_invoice_movements: list[str] = Field(default_factory=list)
    other_movements: list[str] = Field(default_factory=list)


class EnvironmentCreate(EnvironmentFields):
    pass


class EnvironmentReplace(EnvironmentFields):
    """Entry of a full environments-list replacement; keeps `id` when given."""

    id: Optional[str] = None


class Environment(EnvironmentFields):
    model_config = ConfigDict(extra="ignore")

    id: str = Field(default_factory=new_environment_id)

    def to_document(self) -> dict:
        return self.model_dump(mode="json")


class EnvironmentUpdate(BaseModel):
    """Partial environment update; only fields that are sent are applied."""

    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    enabled: Optional[bool] = None
    webservice_base_url: Optional[str] = None
    rest_base_url: Optional[str] = None
    soap_data_server_url: Optional[str] = None
    auth_mode: Optional[AuthMode] = None
    token_endpoint: Optional[str] = None
    modules: Optional[EnvironmentModules] = None
    purchase_request_movements: Optional[list[str]] = None
    purchase_order_movements: Optional[list[str]] = None
    product_invoice_movements: Optional[list[str]] = None
    service_invoice_movements: Optional[list[str]] = None
    other_movements: Optional[list[str]] = None


# ── Registration / update payloads ────────────────────────────────────────────


class Company(BaseModel):
    legal_name: str = Field(..., min_length=1, max_length=200)
    trade_name: str = Field(..., min_length=1, max_length=200)
    tax_id: str = Field(..., min_length=1, max_length=20, description="CNPJ")


class CompanyUpdate(BaseModel):
    legal_name: Optional[str] = Field(None, min_length=1, max_length=200)
    trade_name: Optional[str] = Field(None, min_length=1, max_length=200)
    tax_id: Optional[str] = Field(None, min_length=1, max_length=20)


class AdminCreate(BaseModel):
    email: EmailStr
    name: str = Field(..., min_length=1, max_length=200)
    phone: str = ""
    password: str = Field(..., min_length=6, max_length=72)


class AdminUpdate(BaseModel):
    email: Optional[EmailStr] = None
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    phone: Optional[str] = None
    password: Optional[str] = Field(None, min_length=6, max_length=72)


class InitialEnvironment(BaseModel):
    webservice_base_url: str = ""
    auth_mode: AuthMode = "bearer"


class TenantRegister(BaseModel):
    company: Company
    admin: AdminCreate
    subdomain: str = Field(..., min_length=1, max_length=63)
    initial_environment: Optional[InitialEnvironment] = None


class TenantUpdate(BaseModel):
    company: Optional[CompanyUpdate] = None
    environments: Optional[list[EnvironmentReplace]] = None
    admin: Optional[AdminUpdate] = None


class AdminLogin(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


# ── Responses ─────────────────────────────────────────────────────────────────


class AdminResponse(BaseModel):
    id: int
    tenant_id: int
    email: str
    name: str
    phone: str
    role: str

    @classmethod
    def from_admin(cls, admin: PlatformAdmin) -> "AdminResponse":
        return cls(
            id=admin.id,
            tenant_id=admin.tenant_id,
            email=admin.email,
            name=admin.name,
            phone=admin.phone or "",
            role=admin.role,
        )


class TenantResponse(BaseModel):
    id: int
    tenant_key: str
    status: str
    company: Company
    domains: dict
    trial: dict
    access: dict
    environments: list[Environment]
    audit: dict

    @classmethod
    def from_tenant(cls, tenant: Tenant) -> "TenantResponse":
        return cls(
            id=tenant.id,
            tenant_key=tenant.tenant_key,
            status=tenant.status,
            company=Company(legal_name=tenant.legal_name, trade_name=tenant.trade_name, tax_id=tenant.tax_id),
            domains={"tenant_host": tenant.tenant_host},
            trial={
                "started_at": _iso(tenant.trial_started_at),
                "ends_at": _iso(tenant.trial_ends_at),
                "days": tenant.trial_days,
            },
            access={"blocked": tenant.access_blocked, "blocked_reason": tenant.access_blocked_reason},
            environments=[Environment.model_validate(env) for env in tenant.environments or []],
            audit={"created_at": _iso(tenant.created_at), "created_by": tenant.created_by},
        )


class TenantDetailResponse(BaseModel):
    tenant: TenantResponse
    admin: Optional[AdminResponse]


class RegistrationResponse(BaseModel):
    tenant: TenantResponse
    admin: AdminResponse


class SubdomainAvailability(BaseModel):
    subdomain: str
    available: bool


class SyncResult(BaseModel):
    imported: int
    message: str
    environments: list[Environment]


class PublicEnvironment(BaseModel):
    """Environment as exposed before login: no connection internals."""

    id: str
    name: str
    webservice_base_url: str
    auth_mode: AuthMode
    modules: EnvironmentModules


class PublicTenantConfig(BaseModel):
    tenant_key: str
    trade_name: str
    status: str
    environments: list[PublicEnvironment]

    @classmethod
    def from_tenant(cls, tenant: Tenant) -> "PublicTenantConfig":
        environments = [Environment.model_validate(env) for env in tenant.environments or []]
        return cls(
            tenant_key=tenant.tenant_key,
            trade_name=tenant.trade_name,
            status=tenant.status,
            environments=[
                PublicEnvironment(
                    id=env.id,
                    name=env.name,
                    webservice_base_url=env.webservice_base_url,
                    auth_mode=env.auth_mode,
                    modules=env.modules,
                )
                for env in environments
                if env.enabled
            ],
        )


class AdminLoginResponse(BaseModel):
    access_token: str
    token_type: str = "Bearer"
    admin: AdminResponse
    tenant: TenantResponse


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None
