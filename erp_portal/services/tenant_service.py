"""
Tenant Configuration Service

Atomic create/update/delete operations over tenants, their embedded
environments and their platform admin, plus the import of legacy
configuration records.

Every operation that writes runs inside one unit of work: either all of
its writes are committed or none is. Environment edits load the tenant,
change one entry and write the whole environments list back, so two admins
editing different environments of the same tenant at once can overwrite
each other (last write wins).
"""

import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from erp_portal.auth import hash_password
from erp_portal.config import settings
from erp_portal.constants.modules import CANONICAL_MODULES, MOVEMENT_CATEGORIES
from erp_portal.constants.roles import DEFAULT_ADMIN_ROLE, TenantStatus
from erp_portal.database import unit_of_work
from erp_portal.exceptions import (
    AdminNotFoundError,
    DuplicateResourceError,
    EnvironmentNotFoundError,
    InvalidOperationError,
    LegacyConfigNotFoundError,
    TenantNotFoundError,
    ValidationError,
)
from erp_portal.models.platform_admin import PlatformAdmin
from erp_portal.models.tenant import Tenant
from erp_portal.schemas.tenant import (
    Environment,
    EnvironmentCreate,
    EnvironmentModules,
    EnvironmentReplace,
    EnvironmentUpdate,
    TenantRegister,
    TenantUpdate,
)
from erp_portal.services import tenant_directory
from erp_portal.utils.subdomain import is_valid_subdomain, normalize_subdomain, tenant_host_for

logger = logging.getLogger(__name__)


def default_environment(webservice_base_url: str = "", auth_mode: str = "bearer") -> Environment:
    """The single environment every new tenant starts with, all modules enabled."""
    return Environment(
        name=settings.default_environment_name,
        enabled=True,
        webservice_base_url=webservice_base_url,
        auth_mode=auth_mode,
        modules=EnvironmentModules(),
    )


def _clean_subdomain(subdomain: str) -> str:
    key = subdomain.strip().lower()
    if not is_valid_subdomain(key):
        raise ValidationError(
            "Subdomain must be 3-63 lowercase letters, digits or inner hyphens",
            field="subdomain",
            details={"suggestion": normalize_subdomain(subdomain)},
        )
    return key


async def _get_tenant(tenant_id: int, db: AsyncSession) -> Tenant:
    tenant = await tenant_directory.find_by_id(tenant_id, db)
    if tenant is None:
        raise TenantNotFoundError(tenant_id)
    return tenant


async def check_subdomain_availability(subdomain: str, db: AsyncSession) -> bool:
    """True when no tenant uses this key. Read-only."""
    return await tenant_directory.find_by_key(subdomain, db) is None


async def get_tenant_with_admin(tenant_id: int, db: AsyncSession) -> tuple[Tenant, PlatformAdmin | None]:
    tenant = await _get_tenant(tenant_id, db)
    admin = await tenant_directory.find_admin_by_tenant(tenant.id, db)
    return tenant, admin


async def create_tenant(
    payload: TenantRegister,
    db: AsyncSession,
    created_by: str = "self_signup",
) -> tuple[Tenant, PlatformAdmin]:
    """
    Register a tenant together with its admin.

    The tenant starts on a trial of `settings.trial_days` days with one
    default environment. Tenant and admin are written in the same unit of
    work, so a failure on either leaves neither behind.

    Raises:
        ValidationError: subdomain is not a valid DNS label
        DuplicateResourceError: subdomain, host or admin email already taken
    """
    tenant_key = _clean_subdomain(payload.subdomain)
    tenant_host = tenant_host_for(tenant_key, settings.platform_domain)
    email = payload.admin.email.strip().lower()
    initial = payload.initial_environment

    async with unit_of_work(db, "create_tenant"):
        if await tenant_directory.find_by_key_or_host(tenant_key, tenant_host, db) is not None:
            raise DuplicateResourceError("Tenant", "subdomain", tenant_key)
        if await tenant_directory.find_admin_by_email(email, db) is not None:
            raise DuplicateResourceError("PlatformAdmin", "email", email)

        now = datetime.now(timezone.utc)
        environment = default_environment(
            webservice_base_url=initial.webservice_base_url if initial else "",
            auth_mode=initial.auth_mode if initial else "bearer",
        )
        tenant = Tenant(
            tenant_key=tenant_key,
            status=TenantStatus.trial.value,
            legal_name=payload.company.legal_name,
            trade_name=payload.company.trade_name,
            tax_id=payload.company.tax_id,
            tenant_host=tenant_host,
            trial_started_at=now,
            trial_ends_at=now + timedelta(days=settings.trial_days),
            trial_days=settings.trial_days,
            access_blocked=False,
            access_blocked_reason=None,
            environments=[environment.to_document()],
            created_at=now,
            created_by=created_by,
        )
        await tenant_directory.create(tenant, db)

        admin = PlatformAdmin(
            tenant_id=tenant.id,
            email=email,
            name=payload.admin.name,
            phone=payload.admin.phone or "",
            password_hash=hash_password(payload.admin.password),
            role=DEFAULT_ADMIN_ROLE.value,
            created_at=now,
        )
        await tenant_directory.create_admin(admin, db)

    logger.info("Tenant registered: id=%d key=%s", tenant.id, tenant.tenant_key)
    return tenant, admin


def _replace_environments(entries: list[EnvironmentReplace]) -> list[dict]:
    documents = []
    seen: set[str] = set()
    for entry in entries:
        data = entry.model_dump(exclude={"id"})
        environment = Environment(id=entry.id, **data) if entry.id else Environment(**data)
        if environment.id in seen:
            raise ValidationError(f"Duplicate environment id '{environment.id}'", field="environments")
        seen.add(environment.id)
        documents.append(environment.to_document())
    return documents


async def update_tenant(
    tenant_id: int,
    payload: TenantUpdate,
    db: AsyncSession,
) -> tuple[Tenant, PlatformAdmin | None]:
    """
    Apply a partial update as one unit of work.

    - company: only the fields that are sent change
    - environments: the whole list is replaced
    - admin: name/phone/email change, a new password is re-hashed
    """
    async with unit_of_work(db, "update_tenant"):
        tenant = await _get_tenant(tenant_id, db)

        if payload.company is not None:
            for field, value in payload.company.model_dump(exclude_none=True).items():
                setattr(tenant, field, value)

        if payload.environments is not None:
            tenant.environments = _replace_environments(payload.environments)

        admin = await tenant_directory.find_admin_by_tenant(tenant.id, db)
        if payload.admin is not None:
            if admin is None:
                raise AdminNotFoundError(tenant.id)
            changes = payload.admin.model_dump(exclude_none=True)
            if "name" in changes:
                admin.name = changes["name"]
            if "phone" in changes:
                admin.phone = changes["phone"]
            if "email" in changes:
                admin.email = changes["email"].strip().lower()
            if "password" in changes:
                admin.password_hash = hash_password(changes["password"])

        try:
            await db.flush()
        except IntegrityError as e:
            raise DuplicateResourceError("PlatformAdmin", "email", admin.email if admin else None) from e

    logger.info("Tenant updated: id=%d key=%s", tenant.id, tenant.tenant_key)
    return tenant, admin


async def add_environment(tenant_id: int, payload: EnvironmentCreate, db: AsyncSession) -> Environment:
    """Append a new environment to the tenant."""
    async with unit_of_work(db, "add_environment"):
        tenant = await _get_tenant(tenant_id, db)
        environment = Environment(**payload.model_dump())
        tenant.environments = [*(tenant.environments or []), environment.to_document()]

    logger.info("Environment added: tenant=%d env=%s", tenant.id, environment.id)
    return environment


async def update_environment(
    tenant_id: int,
    environment_id: str,
    payload: EnvironmentUpdate,
    db: AsyncSession,
) -> Environment:
    """
    Change one environment in place.

    Raises:
        EnvironmentNotFoundError: no environment with this id; nothing is written
    """
    async with unit_of_work(db, "update_environment"):
        tenant = await _get_tenant(tenant_id, db)
        documents = [dict(doc) for doc in tenant.environments or []]
        index = next((i for i, doc in enumerate(documents) if doc.get("id") == environment_id), None)
        if index is None:
            raise EnvironmentNotFoundError(environment_id)

        current = Environment.model_validate(documents[index])
        changes = payload.model_dump(exclude_unset=True, exclude_none=True)
        updated = Environment.model_validate({**current.model_dump(), **changes, "id": environment_id})
        documents[index] = updated.to_document()
        tenant.environments = documents

    logger.info("Environment updated: tenant=%d env=%s", tenant.id, environment_id)
    return updated


async def remove_environment(tenant_id: int, environment_id: str, db: AsyncSession) -> list[Environment]:
    """Drop one environment; returns the environments that remain."""
    async with unit_of_work(db, "remove_environment"):
        tenant = await _get_tenant(tenant_id, db)
        documents = tenant.environments or []
        remaining = [doc for doc in documents if doc.get("id") != environment_id]
        if len(remaining) == len(documents):
            raise EnvironmentNotFoundError(environment_id)
        tenant.environments = remaining

    logger.info("Environment removed: tenant=%d env=%s", tenant.id, environment_id)
    return [Environment.model_validate(doc) for doc in remaining]


def environment_from_legacy(document: dict) -> Environment:
    """Map one legacy configuration environment onto the tenant environment shape."""
    legacy_modules = document.get("MODULOS") or {}
    modules = {}
    for key, value in legacy_modules.items():
        key = str(key).replace("-", "_")
        if key in CANONICAL_MODULES:
            modules[key] = bool(value)

    return Environment(
        name=document.get("NOMEDOAMBIENTE") or "Novo Ambiente",
        enabled=True,
        webservice_base_url=document.get("URLWS") or "",
        rest_base_url="",
        auth_mode="bearer",
        modules=EnvironmentModules(**modules),
        **{field: [str(code) for code in document.get(key) or []] for field, key in MOVEMENT_CATEGORIES.items()},
    )


async def sync_legacy_config(tenant_id: int, db: AsyncSession) -> tuple[int, list[Environment]]:
    """
    Import environments from the admin's legacy configuration record.

    The record is matched on the admin's email. Environments whose name
    already exists on the tenant are skipped, never overwritten, so running
    the import again against an unchanged record imports nothing. An
    environment renamed on either side between runs is imported again as a
    new entry.

    Returns:
        (number of environments imported, resulting environment list)
    """
    async with unit_of_work(db, "sync_legacy_config"):
        tenant = await _get_tenant(tenant_id, db)

        admin = await tenant_directory.find_admin_by_tenant(tenant.id, db)
        if admin is None:
            raise AdminNotFoundError(tenant.id)

        legacy = await tenant_directory.find_legacy_config_by_email(admin.email, db)
        if legacy is None:
            raise LegacyConfigNotFoundError(admin.email)
        if not legacy.environments:
            raise InvalidOperationError(
                "Legacy configuration has no environments to import",
                details={"legacy_user": legacy.user_code},
            )

        documents = list(tenant.environments or [])
        names = {doc.get("name") for doc in documents}
        imported = 0
        for legacy_env in legacy.environments:
            environment = environment_from_legacy(legacy_env)
            if environment.name in names:
                logger.debug("Legacy environment '%s' already present, skipped", environment.name)
                continue
            documents.append(environment.to_document())
            names.add(environment.name)
            imported += 1

        tenant.environments = documents

    logger.info("Legacy config synced: tenant=%d imported=%d", tenant.id, imported)
    return imported, [Environment.model_validate(doc) for doc in documents]
