"""Create tenant, platform admin and legacy config tables

Revision ID: a1b2c3d4e5f6
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""

from collections.abc import Sequence
from typing import Union

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "a1b2c3d4e5f6"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "tenants",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tenant_key", sa.String(63), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="trial"),
        sa.Column("legal_name", sa.String(200), nullable=False),
        sa.Column("trade_name", sa.String(200), nullable=False),
        sa.Column("tax_id", sa.String(20), nullable=False),
        sa.Column("tenant_host", sa.String(253), nullable=False),
        sa.Column("trial_started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("trial_ends_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("trial_days", sa.Integer(), nullable=False, server_default="7"),
        sa.Column("access_blocked", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("access_blocked_reason", sa.String(500), nullable=True),
        sa.Column("environments", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_by", sa.String(100), nullable=False, server_default="self_signup"),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tenant_key"),
        sa.UniqueConstraint("tenant_host"),
    )
    op.create_index(op.f("ix_tenants_id"), "tenants", ["id"], unique=False)
    op.create_index("idx_tenant_status", "tenants", ["status"], unique=False)

    op.create_table(
        "platform_admins",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tenant_id", sa.Integer(), nullable=False),
        sa.Column("email", sa.String(254), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("phone", sa.String(30), nullable=False, server_default=""),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("role", sa.String(30), nullable=False, server_default="tenant_admin"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
    )
    op.create_index(op.f("ix_platform_admins_id"), "platform_admins", ["id"], unique=False)
    op.create_index(op.f("ix_platform_admins_tenant_id"), "platform_admins", ["tenant_id"], unique=False)

    op.create_table(
        "legacy_config_users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_code", sa.String(100), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("client_code", sa.String(50), nullable=True),
        sa.Column("client_name", sa.String(200), nullable=False),
        sa.Column("contact_name", sa.String(200), nullable=False),
        sa.Column("email", sa.String(254), nullable=False),
        sa.Column("phone", sa.String(30), nullable=False),
        sa.Column("environments", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_code"),
    )
    op.create_index(op.f("ix_legacy_config_users_id"), "legacy_config_users", ["id"], unique=False)
    op.create_index(op.f("ix_legacy_config_users_email"), "legacy_config_users", ["email"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_legacy_config_users_email"), table_name="legacy_config_users")
    op.drop_index(op.f("ix_legacy_config_users_id"), table_name="legacy_config_users")
    op.drop_table("legacy_config_users")
    op.drop_index(op.f("ix_platform_admins_tenant_id"), table_name="platform_admins")
    op.drop_index(op.f("ix_platform_admins_id"), table_name="platform_admins")
    op.drop_table("platform_admins")
    op.drop_index("idx_tenant_status", table_name="tenants")
    op.drop_index(op.f("ix_tenants_id"), table_name="tenants")
    op.drop_table("tenants")
