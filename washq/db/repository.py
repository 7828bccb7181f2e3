"""
Repositories for database operations.
Implements the data access patterns the job intake and lifecycle core relies on.
"""

import logging
from collections.abc import Sequence
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from washq.constants import INACTIVE_STATUSES, JobStatus
from washq.db.models import (
    Customer,
    Job,
    MessageLog,
    MessageTemplate,
    Service,
    SubscriptionPlan,
    Tenant,
    Vehicle,
    utcnow,
)
from washq.types.job import InsertOutcome

logger = logging.getLogger(__name__)

_UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class TenantRepository:
    """Read access to tenants."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get(self, tenant_id: UUID) -> Tenant | None:
        return await self._session.get(Tenant, tenant_id)


class CustomerRepository:
    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_for_tenant(self, tenant_id: UUID, customer_id: UUID) -> Customer | None:
        stmt = select(Customer).where(
            and_(Customer.id == customer_id, Customer.tenant_id == tenant_id)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()


class VehicleRepository:
    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_for_customer(
        self,
        tenant_id: UUID,
        customer_id: UUID,
        vehicle_id: UUID,
    ) -> Vehicle | None:
        """
        Get a vehicle only if it belongs to both the tenant and the customer.

        Args:
            tenant_id: The tenant identifier.
            customer_id: The owning customer.
            vehicle_id: The vehicle identifier.

        Returns:
            The Vehicle or None if absent or owned by someone else.
        """
        stmt = select(Vehicle).where(
            and_(
                Vehicle.id == vehicle_id,
                Vehicle.tenant_id == tenant_id,
                Vehicle.customer_id == customer_id,
            )
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()


class ServiceRepository:
    def __init__(self, session: AsyncSession):
        self._session = session

    async def find_active_by_ids(
        self,
        tenant_id: UUID,
        service_ids: Sequence[UUID],
    ) -> Sequence[Service]:
        """
        Resolve service ids to active services owned by the tenant.

        Unknown, foreign and inactive ids are silently left out; callers
        compare the result size with what they asked for.
        """
        if not service_ids:
            return []
        stmt = select(Service).where(
            and_(
                Service.id.in_(list(service_ids)),
                Service.tenant_id == tenant_id,
                Service.is_active.is_(True),
            )
        )
        result = await self._session.execute(stmt)
        return result.scalars().all()


class JobRepository:
    """
    Repository for job database operations.

    Implements atomic operations for:
    - Job insertion guarded by the (tenant_id, token_number) constraint
    - Active job counting for admission control
    - Compare-and-set status transitions
    """

    def __init__(self, session: AsyncSession):
        """
        Initialize the repository with a database session.

        Args:
            session: The async database session.
        """
        self._session = session

    async def find_by_token(self, tenant_id: UUID, token_number: str) -> Job | None:
        """
        Get a job by tenant and token number.

        Args:
            tenant_id: The tenant identifier.
            token_number: The ticket token.

        Returns:
            The Job or None if the token is free.
        """
        stmt = select(Job).where(
            and_(
                Job.tenant_id == tenant_id,
                Job.token_number == token_number,
            )
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def count_active(self, tenant_id: UUID) -> int:
        """
        Count jobs that still occupy a wash slot.

        Anything not completed, delivered or cancelled counts, including rows
        still carrying statuses from the old flow.
        """
        stmt = select(func.count()).select_from(Job).where(
            and_(
                Job.tenant_id == tenant_id,
                Job.status.notin_([s.value for s in INACTIVE_STATUSES]),
            )
        )
        result = await self._session.execute(stmt)
        return result.scalar() or 0

    async def insert_job(self, values: dict[str, Any]) -> InsertOutcome:
        """
        Insert a job unless its token is already taken for the tenant.

        Uses INSERT ... ON CONFLICT DO NOTHING on the tenant token constraint,
        so a collision comes back as a typed outcome instead of an exception.

        Args:
            values: Column values for the new job, including token_number.

        Returns:
            InsertOutcome with the new Job, or conflict=True.
        """
        dialect = self._session.get_bind().dialect.name
        insert = _UPSERT_DIALECTS.get(dialect)
        if insert is None:
            raise RuntimeError(f"Unsupported database dialect: {dialect}")

        stmt = (
            insert(Job)
            .values(**values)
            .on_conflict_do_nothing(index_elements=["tenant_id", "token_number"])
            .returning(Job)
        )

        result = await self._session.execute(stmt)
        job = result.scalar_one_or_none()

        if job is None:
            logger.info(
                "Token already issued for tenant",
                extra={
                    "tenant_id": str(values.get("tenant_id")),
                    "token_number": values.get("token_number"),
                },
            )
            return InsertOutcome(job=None, conflict=True)

        logger.info(
            "Created new job",
            extra={"job_id": str(job.id), "tenant_id": str(job.tenant_id)},
        )
        return InsertOutcome(job=job, conflict=False)

    async def get_job(
        self,
        tenant_id: UUID,
        job_id: UUID,
        assigned_to: UUID | None = None,
    ) -> Job | None:
        """
        Get a job scoped to a tenant.

        Args:
            tenant_id: The tenant identifier.
            job_id: The job UUID.
            assigned_to: When given, only match jobs assigned to this user.

        Returns:
            The Job or None if not found within the scope.
        """
        filters = [Job.id == job_id, Job.tenant_id == tenant_id]
        if assigned_to is not None:
            filters.append(Job.assigned_to == assigned_to)

        stmt = select(Job).where(and_(*filters))
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_jobs(
        self,
        tenant_id: UUID,
        status: JobStatus | None = None,
        search: str | None = None,
        assigned_to: UUID | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[Sequence[Job], int]:
        """
        List jobs for a tenant with optional filtering.

        `search` matches the token number, the customer's name or phone, or
        the vehicle plate, case-insensitively.

        Returns:
            Tuple of (jobs, total_count).
        """
        filters = [Job.tenant_id == tenant_id]
        if status is not None:
            filters.append(Job.status == status.value)
        if assigned_to is not None:
            filters.append(Job.assigned_to == assigned_to)
        if search and search.strip():
            term = f"%{search.strip()}%"
            customer_ids = select(Customer.id).where(
                and_(
                    Customer.tenant_id == tenant_id,
                    or_(Customer.name.ilike(term), Customer.phone.ilike(term)),
                )
            )
            vehicle_ids = select(Vehicle.id).where(
                and_(
                    Vehicle.tenant_id == tenant_id,
                    Vehicle.plate_number.ilike(term),
                )
            )
            filters.append(
                or_(
                    Job.token_number.ilike(term),
                    Job.customer_id.in_(customer_ids),
                    Job.vehicle_id.in_(vehicle_ids),
                )
            )

        base_filter = and_(*filters)

        count_stmt = select(func.count()).select_from(Job).where(base_filter)
        count_result = await self._session.execute(count_stmt)
        total = count_result.scalar() or 0

        stmt = (
            select(Job)
            .where(base_filter)
            .order_by(Job.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        result = await self._session.execute(stmt)
        return result.scalars().all(), total

    async def save_transition(
        self,
        job: Job,
        expected_status: str,
        expected_version: int,
    ) -> bool:
        """
        Persist a status change only if the row is still the one read.

        Two requests racing on the same job both read the same version; only
        the first UPDATE matches, the other sees zero rows. History and images
        are written whole, so the version guard also covers requests that
        re-submit the current status.

        Args:
            job: The job with its new state applied in memory.
            expected_status: Status the transition was validated against.
            expected_version: Version read together with that status.

        Returns:
            True if the row was updated, False if it changed meanwhile.
        """
        stmt = (
            update(Job)
            .where(
                and_(
                    Job.id == job.id,
                    Job.tenant_id == job.tenant_id,
                    Job.status == expected_status,
                    Job.version == expected_version,
                )
            )
            .values(
                status=job.status,
                status_history=list(job.status_history),
                after_images=list(job.after_images),
                actual_delivery=job.actual_delivery,
                version=expected_version + 1,
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )

        with self._session.no_autoflush:
            result = await self._session.execute(stmt)
        if result.rowcount == 0:
            logger.warning(
                "Job status changed concurrently",
                extra={
                    "job_id": str(job.id),
                    "expected_status": expected_status,
                    "expected_version": expected_version,
                },
            )
            return False
        return True

    async def find_by_statuses(self, statuses: Sequence[str]) -> Sequence[Job]:
        """Load every job whose current status is one of `statuses`."""
        stmt = select(Job).where(Job.status.in_(list(statuses)))
        result = await self._session.execute(stmt)
        return result.scalars().all()

    async def get_job_stats(self, tenant_id: UUID) -> dict[str, int]:
        """
        Get job counts by status for a tenant.

        Returns:
            Dictionary of status -> count.
        """
        stmt = (
            select(Job.status, func.count())
            .where(Job.tenant_id == tenant_id)
            .group_by(Job.status)
        )
        result = await self._session.execute(stmt)
        return {status: count for status, count in result.all()}


class MessageTemplateRepository:
    def __init__(self, session: AsyncSession):
        self._session = session

    async def find_active(self, tenant_id: UUID, name: str) -> MessageTemplate | None:
        """
        Find an active template by name, preferring the tenant's own over a global one.
        """
        stmt = select(MessageTemplate).where(
            and_(
                MessageTemplate.name == name,
                MessageTemplate.is_active.is_(True),
                or_(
                    MessageTemplate.tenant_id == tenant_id,
                    MessageTemplate.is_global.is_(True),
                ),
            )
        )
        result = await self._session.execute(stmt)
        templates = result.scalars().all()
        for template in templates:
            if template.tenant_id == tenant_id:
                return template
        return templates[0] if templates else None


class MessageLogRepository:
    def __init__(self, session: AsyncSession):
        self._session = session

    async def record(
        self,
        tenant_id: UUID,
        job_id: UUID | None,
        template_id: UUID | None,
        recipient: str,
        body: str,
        status: str,
        error: str | None = None,
        sent_at: datetime | None = None,
    ) -> MessageLog:
        entry = MessageLog(
            tenant_id=tenant_id,
            job_id=job_id,
            template_id=template_id,
            recipient=recipient,
            body=body,
            status=status,
            error=error,
            sent_at=sent_at,
        )
        self._session.add(entry)
        await self._session.flush()
        return entry


class SubscriptionPlanRepository:
    def __init__(self, session: AsyncSession):
        self._session = session

    async def count(self) -> int:
        stmt = select(func.count()).select_from(SubscriptionPlan)
        result = await self._session.execute(stmt)
        return result.scalar() or 0

    async def create(self, **values: Any) -> SubscriptionPlan:
        plan = SubscriptionPlan(**values)
        self._session.add(plan)
        await self._session.flush()
        return plan
