"""
Tenant model.

Each Tenant is an isolated customer account bound to a unique subdomain.
Its environments (ERP connection profiles) are embedded as an ordered JSON
list and always written back as a whole, so the unit of concurrency is the
tenant row.
"""

from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, Column, DateTime, Index, Integer, String

from erp_portal.constants.roles import TenantStatus
from erp_portal.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Tenant(Base):
    __tablename__ = "tenants"

    id = Column(Integer, primary_key=True, index=True)
    tenant_key = Column(String(63), nullable=False, unique=True)  # lowercase subdomain, e.g. "cliente1"
    status = Column(String(20), nullable=False, default=TenantStatus.trial.value)

    # company
    legal_name = Column(String(200), nullable=False)
    trade_name = Column(String(200), nullable=False)
    tax_id = Column(String(20), nullable=False)  # CNPJ

    # domains
    tenant_host = Column(String(253), nullable=False, unique=True)  # e.g. "cliente1.portalrm.simpleit.app.br"

    # trial
    trial_started_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    trial_ends_at = Column(DateTime(timezone=True), nullable=False)
    trial_days = Column(Integer, nullable=False, default=7)

    # access
    access_blocked = Column(Boolean, nullable=False, default=False)
    access_blocked_reason = Column(String(500), nullable=True)

    # Ordered list of environment documents (see erp_portal.schemas.tenant.Environment)
    environments = Column(JSON, nullable=False, default=list)

    # audit
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    created_by = Column(String(100), nullable=False, default="self_signup")
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    __table_args__ = (Index("idx_tenant_status", "status"),)
