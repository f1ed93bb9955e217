"""
Legacy configuration user.

Per-customer configuration records from before tenants existed. Their
environments keep the legacy document keys (URLWS, NOMEDOAMBIENTE, MODULOS,
MOVIMENTOS_*) and are only read, by the legacy import.
"""

from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, Integer, String

from erp_portal.database import Base


class LegacyConfigUser(Base):
    __tablename__ = "legacy_config_users"

    id = Column(Integer, primary_key=True, index=True)
    user_code = Column(String(100), nullable=False, unique=True)
    password_hash = Column(String(255), nullable=False)
    client_code = Column(String(50), nullable=True)
    client_name = Column(String(200), nullable=False)
    contact_name = Column(String(200), nullable=False)
    email = Column(String(254), nullable=False, index=True)
    phone = Column(String(30), nullable=False)
    environments = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
