from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class Tenant(Base):
    __tablename__ = "tenants"

    tenant_id: Mapped[str] = mapped_column(String, primary_key=True)
    company_name: Mapped[str] = mapped_column(String)
    # Alias issued by the external identity provider; resolvable in place of tenant_id.
    external_org_id: Mapped[str | None] = mapped_column(String, unique=True, nullable=True)
    subdomain: Mapped[str | None] = mapped_column(String, unique=True, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


class Application(Base):
    __tablename__ = "applications"

    app_id: Mapped[str] = mapped_column(String, primary_key=True)
    app_code: Mapped[str] = mapped_column(String, unique=True, index=True)
    app_name: Mapped[str] = mapped_column(String)
    # "active" | "inactive" | "deprecated"
    status: Mapped[str] = mapped_column(String, default="active", nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class TenantApplication(Base):
    __tablename__ = "tenant_applications"
    __table_args__ = (
        UniqueConstraint("tenant_id", "app_id", name="uq_tenant_applications_tenant_app"),
    )

    # Entitlement grant: a tenant's access to one application.
    id: Mapped[str] = mapped_column(String, primary_key=True)
    tenant_id: Mapped[str] = mapped_column(String, ForeignKey("tenants.tenant_id"), index=True)
    app_id: Mapped[str] = mapped_column(String, ForeignKey("applications.app_id"), index=True)
    is_enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    subscription_tier: Mapped[str | None] = mapped_column(String, nullable=True)
    enabled_modules: Mapped[list[str] | None] = mapped_column(JSONB, nullable=True)
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class OrganizationUnit(Base):
    __tablename__ = "organization_units"
    __table_args__ = (
        Index("ix_organization_units_tenant_active", "tenant_id", "is_active"),
    )

    entity_id: Mapped[str] = mapped_column(String, primary_key=True)
    tenant_id: Mapped[str] = mapped_column(String, ForeignKey("tenants.tenant_id"), index=True)
    entity_name: Mapped[str] = mapped_column(String)
    parent_entity_id: Mapped[str | None] = mapped_column(
        String, ForeignKey("organization_units.entity_id"), nullable=True
    )
    entity_level: Mapped[int | None] = mapped_column(Integer, nullable=True)
    currency: Mapped[str | None] = mapped_column(String, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class TenantUser(Base):
    __tablename__ = "tenant_users"
    __table_args__ = (
        Index("ix_tenant_users_tenant_active", "tenant_id", "is_active"),
    )

    user_id: Mapped[str] = mapped_column(String, primary_key=True)
    tenant_id: Mapped[str] = mapped_column(String, ForeignKey("tenants.tenant_id"), index=True)
    external_user_id: Mapped[str | None] = mapped_column(String, nullable=True)
    email: Mapped[str] = mapped_column(String)
    name: Mapped[str] = mapped_column(String)
    is_tenant_admin: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class Role(Base):
    __tablename__ = "roles"

    role_id: Mapped[str] = mapped_column(String, primary_key=True)
    tenant_id: Mapped[str] = mapped_column(String, ForeignKey("tenants.tenant_id"), index=True)
    role_name: Mapped[str] = mapped_column(String)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Nested {app_code: {module_code: [operation_code]}}; legacy rows hold it as a JSON string.
    permissions: Mapped[Any] = mapped_column(JSONB)
    priority: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    is_system_role: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class OrganizationMembership(Base):
    __tablename__ = "organization_memberships"
    __table_args__ = (
        Index("ix_organization_memberships_tenant_status", "tenant_id", "membership_status"),
    )

    membership_id: Mapped[str] = mapped_column(String, primary_key=True)
    tenant_id: Mapped[str] = mapped_column(String, ForeignKey("tenants.tenant_id"), index=True)
    user_id: Mapped[str] = mapped_column(String, ForeignKey("tenant_users.user_id"), index=True)
    entity_id: Mapped[str] = mapped_column(String, ForeignKey("organization_units.entity_id"), index=True)
    membership_type: Mapped[str | None] = mapped_column(String, nullable=True)
    membership_status: Mapped[str] = mapped_column(String, default="active", nullable=False)
    is_primary: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    access_level: Mapped[str | None] = mapped_column(String, nullable=True)


class UserRoleAssignment(Base):
    __tablename__ = "user_role_assignments"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    user_id: Mapped[str] = mapped_column(String, ForeignKey("tenant_users.user_id"), index=True)
    role_id: Mapped[str] = mapped_column(String, ForeignKey("roles.role_id"), index=True)
    # Optional organization scope for the grant.
    entity_id: Mapped[str | None] = mapped_column(
        String, ForeignKey("organization_units.entity_id"), nullable=True
    )
    assigned_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


class CreditConfiguration(Base):
    __tablename__ = "credit_configurations"
    __table_args__ = (
        Index("ix_credit_configurations_operation", "operation_code"),
        Index("ix_credit_configurations_tenant_active", "tenant_id", "is_active"),
    )

    config_id: Mapped[str] = mapped_column(String, primary_key=True)
    # NULL for global overrides; set for tenant overrides.
    tenant_id: Mapped[str | None] = mapped_column(String, ForeignKey("tenants.tenant_id"), nullable=True)
    operation_code: Mapped[str] = mapped_column(String)
    operation_name: Mapped[str | None] = mapped_column(String, nullable=True)
    credit_cost: Mapped[Decimal] = mapped_column(Numeric(12, 4))
    unit: Mapped[str | None] = mapped_column(String, nullable=True)
    is_global: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


class CreditAccount(Base):
    __tablename__ = "credit_accounts"
    __table_args__ = (
        UniqueConstraint("tenant_id", "entity_id", name="uq_credit_accounts_tenant_entity"),
    )

    # Balances are never stored here; they are derived from the ledger and usage tables.
    credit_id: Mapped[str] = mapped_column(String, primary_key=True)
    tenant_id: Mapped[str] = mapped_column(String, ForeignKey("tenants.tenant_id"), index=True)
    entity_id: Mapped[str | None] = mapped_column(
        String, ForeignKey("organization_units.entity_id"), nullable=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


class CreditTransaction(Base):
    __tablename__ = "credit_transactions"
    __table_args__ = (
        Index("ix_credit_transactions_tenant_entity_op", "tenant_id", "entity_id", "operation_code"),
    )

    transaction_id: Mapped[str] = mapped_column(String, primary_key=True)
    tenant_id: Mapped[str] = mapped_column(String, index=True)
    entity_id: Mapped[str | None] = mapped_column(String, nullable=True)
    operation_code: Mapped[str] = mapped_column(String)
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 4))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class CreditUsage(Base):
    __tablename__ = "credit_usage"
    __table_args__ = (
        Index("ix_credit_usage_tenant_entity_op", "tenant_id", "entity_id", "operation_code"),
    )

    usage_id: Mapped[str] = mapped_column(String, primary_key=True)
    tenant_id: Mapped[str] = mapped_column(String, index=True)
    entity_id: Mapped[str | None] = mapped_column(String, nullable=True)
    operation_code: Mapped[str] = mapped_column(String)
    credits_debited: Mapped[Decimal] = mapped_column(Numeric(14, 4))
    success: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
