"""
SQLAlchemy database models.
Defines the tenant-owned entities a wash job refers to and the job table itself.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from washq.constants import (
    INACTIVE_STATUSES,
    CapacityMode,
    JobStatus,
    MessageStatus,
    TenantStatus,
)

# JSONB on PostgreSQL, plain JSON elsewhere
JSONType = JSON().with_variant(JSONB(), "postgresql")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
        onupdate=utcnow,
    )


class Tenant(TimestampMixin, Base):
    """
    A car-wash business.

    The capacity fields drive admission control: under SINGLE the effective
    limit is one job regardless of max_concurrent_jobs.
    """

    __tablename__ = "tenants"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    whatsapp_number: Mapped[str | None] = mapped_column(String(32), nullable=True)
    capacity_mode: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default=CapacityMode.SINGLE.value,
    )
    max_concurrent_jobs: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    status: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default=TenantStatus.ACTIVE.value,
    )

    __table_args__ = (
        CheckConstraint("max_concurrent_jobs >= 1", name="ck_tenants_max_concurrent_jobs"),
    )

    @property
    def effective_job_limit(self) -> int:
        """Number of jobs the tenant may have in progress at once."""
        if self.capacity_mode == CapacityMode.SINGLE:
            return 1
        return self.max_concurrent_jobs

    def __repr__(self) -> str:
        return f"Tenant(id={self.id}, mode={self.capacity_mode}, max={self.max_concurrent_jobs})"


class Customer(TimestampMixin, Base):
    __tablename__ = "customers"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    tenant_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str] = mapped_column(String(32), nullable=False)
    whatsapp_number: Mapped[str] = mapped_column(String(32), nullable=False)


class Vehicle(TimestampMixin, Base):
    __tablename__ = "vehicles"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    tenant_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True
    )
    customer_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("customers.id", ondelete="CASCADE"), nullable=False, index=True
    )
    plate_number: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    brand: Mapped[str | None] = mapped_column(String(64), nullable=True)
    model: Mapped[str | None] = mapped_column(String(64), nullable=True)
    color: Mapped[str | None] = mapped_column(String(32), nullable=True)


class Service(TimestampMixin, Base):
    """A priced entry in the tenant's service catalog."""

    __tablename__ = "services"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    tenant_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    min_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    max_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_services_price"),
    )


class Job(TimestampMixin, Base):
    """
    A wash job for one vehicle.

    Key constraints:
    - (tenant_id, token_number) is unique; collisions surface as insert conflicts
    - status_history is append-only and its last entry matches status
    - version increases by one on every status change and guards concurrent updates
    - total_price and services are a snapshot taken at creation
    """

    __tablename__ = "jobs"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    tenant_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True
    )
    customer_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("customers.id"), nullable=False, index=True
    )
    vehicle_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("vehicles.id"), nullable=False, index=True
    )
    token_number: Mapped[str] = mapped_column(String(32), nullable=False)

    # Plain string so unmigrated rows from the old flow still load
    status: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default=JobStatus.RECEIVED.value,
        index=True,
    )

    total_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=0)
    services: Mapped[list[dict[str, Any]]] = mapped_column(JSONType, nullable=False, default=list)

    estimated_delivery: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    actual_delivery: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    before_images: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    after_images: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Set for jobs handed to a specific employee
    assigned_to: Mapped[UUID | None] = mapped_column(Uuid, nullable=True, index=True)

    status_history: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONType, nullable=False, default=list
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    __table_args__ = (
        UniqueConstraint("tenant_id", "token_number", name="uq_jobs_tenant_token"),
        # Index for capacity checks
        Index(
            "ix_jobs_tenant_active",
            "tenant_id",
            "status",
            postgresql_where=(
                Column("status").notin_([s.value for s in INACTIVE_STATUSES])
            ),
        ),
        Index("ix_jobs_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"Job(id={self.id}, tenant={self.tenant_id}, "
            f"token={self.token_number}, status={self.status})"
        )


class MessageTemplate(TimestampMixin, Base):
    """Customer message template; tenant_id is null for global templates."""

    __tablename__ = "message_templates"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    tenant_id: Mapped[UUID | None] = mapped_column(
        Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=True, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_global: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class MessageLog(TimestampMixin, Base):
    """One row per outbound customer message attempt."""

    __tablename__ = "message_log"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    tenant_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True
    )
    job_id: Mapped[UUID | None] = mapped_column(Uuid, nullable=True, index=True)
    template_id: Mapped[UUID | None] = mapped_column(Uuid, nullable=True)
    recipient: Mapped[str] = mapped_column(String(32), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=MessageStatus.SENT.value, index=True
    )
    error: Mapped[str | None] = mapped_column(Text, nullable=True)
    sent_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class SubscriptionPlan(TimestampMixin, Base):
    __tablename__ = "subscription_plans"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    validity_days: Mapped[int] = mapped_column(Integer, nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=0)
    features: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)
    is_free_trial: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
