from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String

from erp_portal.constants.roles import DEFAULT_ADMIN_ROLE
from erp_portal.database import Base


class PlatformAdmin(Base):
    __tablename__ = "platform_admins"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    email = Column(String(254), nullable=False, unique=True)
    name = Column(String(200), nullable=False)
    phone = Column(String(30), nullable=False, default="")
    password_hash = Column(String(255), nullable=False)
    role = Column(String(30), nullable=False, default=DEFAULT_ADMIN_ROLE.value)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
