"""tenant directory, entitlements and credit ledgers

Revision ID: 0001_tenant_directory
Revises:
Create Date: 2026-10-16
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision = "0001_tenant_directory"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Tenants are addressable by primary key or by the identity provider org id.
    op.create_table(
        "tenants",
        sa.Column("tenant_id", sa.String(), primary_key=True, nullable=False),
        sa.Column("company_name", sa.String(), nullable=False),
        sa.Column("external_org_id", sa.String(), nullable=True, unique=True),
        sa.Column("subdomain", sa.String(), nullable=True, unique=True),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "applications",
        sa.Column("app_id", sa.String(), primary_key=True, nullable=False),
        sa.Column("app_code", sa.String(), nullable=False),
        sa.Column("app_name", sa.String(), nullable=False),
        sa.Column("status", sa.String(), server_default="active", nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_applications_app_code", "applications", ["app_code"], unique=True)

    # One entitlement grant per tenant and application.
    op.create_table(
        "tenant_applications",
        sa.Column("id", sa.String(), primary_key=True, nullable=False),
        sa.Column("tenant_id", sa.String(), sa.ForeignKey("tenants.tenant_id"), nullable=False),
        sa.Column("app_id", sa.String(), sa.ForeignKey("applications.app_id"), nullable=False),
        sa.Column("is_enabled", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column("subscription_tier", sa.String(), nullable=True),
        sa.Column("enabled_modules", postgresql.JSONB(), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("tenant_id", "app_id", name="uq_tenant_applications_tenant_app"),
    )
    op.create_index("ix_tenant_applications_tenant_id", "tenant_applications", ["tenant_id"], unique=False)
    op.create_index("ix_tenant_applications_app_id", "tenant_applications", ["app_id"], unique=False)

    op.create_table(
        "organization_units",
        sa.Column("entity_id", sa.String(), primary_key=True, nullable=False),
        sa.Column("tenant_id", sa.String(), sa.ForeignKey("tenants.tenant_id"), nullable=False),
        sa.Column("entity_name", sa.String(), nullable=False),
        sa.Column(
            "parent_entity_id",
            sa.String(),
            sa.ForeignKey("organization_units.entity_id"),
            nullable=True,
        ),
        sa.Column("entity_level", sa.Integer(), nullable=True),
        sa.Column("currency", sa.String(), nullable=True),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_organization_units_tenant_id", "organization_units", ["tenant_id"], unique=False)
    op.create_index(
        "ix_organization_units_tenant_active",
        "organization_units",
        ["tenant_id", "is_active"],
        unique=False,
    )

    op.create_table(
        "tenant_users",
        sa.Column("user_id", sa.String(), primary_key=True, nullable=False),
        sa.Column("tenant_id", sa.String(), sa.ForeignKey("tenants.tenant_id"), nullable=False),
        sa.Column("external_user_id", sa.String(), nullable=True),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("is_tenant_admin", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_tenant_users_tenant_id", "tenant_users", ["tenant_id"], unique=False)
    op.create_index("ix_tenant_users_tenant_active", "tenant_users", ["tenant_id", "is_active"], unique=False)

    # Permissions hold {app: {module: [operation]}} documents.
    op.create_table(
        "roles",
        sa.Column("role_id", sa.String(), primary_key=True, nullable=False),
        sa.Column("tenant_id", sa.String(), sa.ForeignKey("tenants.tenant_id"), nullable=False),
        sa.Column("role_name", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("permissions", postgresql.JSONB(), nullable=True),
        sa.Column("priority", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("is_system_role", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_roles_tenant_id", "roles", ["tenant_id"], unique=False)

    op.create_table(
        "organization_memberships",
        sa.Column("membership_id", sa.String(), primary_key=True, nullable=False),
        sa.Column("tenant_id", sa.String(), sa.ForeignKey("tenants.tenant_id"), nullable=False),
        sa.Column("user_id", sa.String(), sa.ForeignKey("tenant_users.user_id"), nullable=False),
        sa.Column(
            "entity_id",
            sa.String(),
            sa.ForeignKey("organization_units.entity_id"),
            nullable=False,
        ),
        sa.Column("membership_type", sa.String(), nullable=True),
        sa.Column("membership_status", sa.String(), server_default="active", nullable=False),
        sa.Column("is_primary", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("access_level", sa.String(), nullable=True),
    )
    op.create_index(
        "ix_organization_memberships_tenant_id", "organization_memberships", ["tenant_id"], unique=False
    )
    op.create_index(
        "ix_organization_memberships_user_id", "organization_memberships", ["user_id"], unique=False
    )
    op.create_index(
        "ix_organization_memberships_entity_id", "organization_memberships", ["entity_id"], unique=False
    )
    op.create_index(
        "ix_organization_memberships_tenant_status",
        "organization_memberships",
        ["tenant_id", "membership_status"],
        unique=False,
    )

    op.create_table(
        "user_role_assignments",
        sa.Column("id", sa.String(), primary_key=True, nullable=False),
        sa.Column("user_id", sa.String(), sa.ForeignKey("tenant_users.user_id"), nullable=False),
        sa.Column("role_id", sa.String(), sa.ForeignKey("roles.role_id"), nullable=False),
        sa.Column(
            "entity_id",
            sa.String(),
            sa.ForeignKey("organization_units.entity_id"),
            nullable=True,
        ),
        sa.Column("assigned_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
    )
    op.create_index("ix_user_role_assignments_user_id", "user_role_assignments", ["user_id"], unique=False)
    op.create_index("ix_user_role_assignments_role_id", "user_role_assignments", ["role_id"], unique=False)

    # tenant_id NULL marks a global override.
    op.create_table(
        "credit_configurations",
        sa.Column("config_id", sa.String(), primary_key=True, nullable=False),
        sa.Column("tenant_id", sa.String(), sa.ForeignKey("tenants.tenant_id"), nullable=True),
        sa.Column("operation_code", sa.String(), nullable=False),
        sa.Column("operation_name", sa.String(), nullable=True),
        sa.Column("credit_cost", sa.Numeric(12, 4), nullable=False),
        sa.Column("unit", sa.String(), nullable=True),
        sa.Column("is_global", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index(
        "ix_credit_configurations_operation", "credit_configurations", ["operation_code"], unique=False
    )
    op.create_index(
        "ix_credit_configurations_tenant_active",
        "credit_configurations",
        ["tenant_id", "is_active"],
        unique=False,
    )

    op.create_table(
        "credit_accounts",
        sa.Column("credit_id", sa.String(), primary_key=True, nullable=False),
        sa.Column("tenant_id", sa.String(), sa.ForeignKey("tenants.tenant_id"), nullable=False),
        sa.Column(
            "entity_id",
            sa.String(),
            sa.ForeignKey("organization_units.entity_id"),
            nullable=True,
        ),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.UniqueConstraint("tenant_id", "entity_id", name="uq_credit_accounts_tenant_entity"),
    )
    op.create_index("ix_credit_accounts_tenant_id", "credit_accounts", ["tenant_id"], unique=False)

    # Append-only ledgers; balances are derived by aggregation.
    op.create_table(
        "credit_transactions",
        sa.Column("transaction_id", sa.String(), primary_key=True, nullable=False),
        sa.Column("tenant_id", sa.String(), nullable=False),
        sa.Column("entity_id", sa.String(), nullable=True),
        sa.Column("operation_code", sa.String(), nullable=False),
        sa.Column("amount", sa.Numeric(14, 4), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_credit_transactions_tenant_id", "credit_transactions", ["tenant_id"], unique=False)
    op.create_index(
        "ix_credit_transactions_tenant_entity_op",
        "credit_transactions",
        ["tenant_id", "entity_id", "operation_code"],
        unique=False,
    )

    op.create_table(
        "credit_usage",
        sa.Column("usage_id", sa.String(), primary_key=True, nullable=False),
        sa.Column("tenant_id", sa.String(), nullable=False),
        sa.Column("entity_id", sa.String(), nullable=True),
        sa.Column("operation_code", sa.String(), nullable=False),
        sa.Column("credits_debited", sa.Numeric(14, 4), nullable=False),
        sa.Column("success", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_credit_usage_tenant_id", "credit_usage", ["tenant_id"], unique=False)
    op.create_index(
        "ix_credit_usage_tenant_entity_op",
        "credit_usage",
        ["tenant_id", "entity_id", "operation_code"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_credit_usage_tenant_entity_op", table_name="credit_usage")
    op.drop_index("ix_credit_usage_tenant_id", table_name="credit_usage")
    op.drop_table("credit_usage")
    op.drop_index("ix_credit_transactions_tenant_entity_op", table_name="credit_transactions")
    op.drop_index("ix_credit_transactions_tenant_id", table_name="credit_transactions")
    op.drop_table("credit_transactions")
    op.drop_index("ix_credit_accounts_tenant_id", table_name="credit_accounts")
    op.drop_table("credit_accounts")
    op.drop_index("ix_credit_configurations_tenant_active", table_name="credit_configurations")
    op.drop_index("ix_credit_configurations_operation", table_name="credit_configurations")
    op.drop_table("credit_configurations")
    op.drop_index("ix_user_role_assignments_role_id", table_name="user_role_assignments")
    op.drop_index("ix_user_role_assignments_user_id", table_name="user_role_assignments")
    op.drop_table("user_role_assignments")
    op.drop_index("ix_organization_memberships_tenant_status", table_name="organization_memberships")
    op.drop_index("ix_organization_memberships_entity_id", table_name="organization_memberships")
    op.drop_index("ix_organization_memberships_user_id", table_name="organization_memberships")
    op.drop_index("ix_organization_memberships_tenant_id", table_name="organization_memberships")
    op.drop_table("organization_memberships")
    op.drop_index("ix_roles_tenant_id", table_name="roles")
    op.drop_table("roles")
    op.drop_index("ix_tenant_users_tenant_active", table_name="tenant_users")
    op.drop_index("ix_tenant_users_tenant_id", table_name="tenant_users")
    op.drop_table("tenant_users")
    op.drop_index("ix_organization_units_tenant_active", table_name="organization_units")
    op.drop_index("ix_organization_units_tenant_id", table_name="organization_units")
    op.drop_table("organization_units")
    op.drop_index("ix_tenant_applications_app_id", table_name="tenant_applications")
    op.drop_index("ix_tenant_applications_tenant_id", table_name="tenant_applications")
    op.drop_table("tenant_applications")
    op.drop_index("ix_applications_app_code", table_name="applications")
    op.drop_table("applications")
    op.drop_table("tenants")
