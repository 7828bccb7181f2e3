"""
Job orchestration.

Composes admission control, ownership checks, token allocation and the status
state machine into the two write operations the API exposes: creating a job
and changing its status. Customer notifications run after the job is
committed and can never fail the operation.
"""

import asyncio
import logging
import random
from collections.abc import Sequence
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4
from zoneinfo import ZoneInfo

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from washq.config import Settings, get_settings
from washq.constants import (
    SPAN_CREATE_JOB,
    SPAN_UPDATE_JOB_STATUS,
    TEMPLATE_JOB_RECEIVED,
    TEMPLATE_STATUS_PREFIX,
    JobStatus,
)
from washq.core.capacity import can_accept_new_job
from washq.core.lifecycle import apply_status_transition, history_entry
from washq.core.tokens import generate_token_number
from washq.db.models import Job, Service, Vehicle
from washq.db.repository import (
    CustomerRepository,
    JobRepository,
    ServiceRepository,
    TenantRepository,
    VehicleRepository,
)
from washq.exceptions import (
    CapacityExceededError,
    DuplicateTokenError,
    InvalidTransitionError,
    JobNotFoundError,
    NotFoundError,
    TokenAllocationExhaustedError,
    ValidationFailure,
)
from washq.notifications.dispatcher import NotificationDispatcher, get_dispatcher
from washq.notifications.service import notify_job_event
from washq.observability.metrics import get_metrics
from washq.observability.tracing import get_tracer
from washq.types.job import CapacityDecision, ServiceSnapshot

logger = logging.getLogger(__name__)


class JobOrchestrator:
    """
    Entry point for wash job operations on behalf of one request.

    The orchestrator owns the transaction of the session it is given: it
    commits once the job is stored and again after logging a notification.
    Sessions must be created with ``expire_on_commit=False``.
    """

    def __init__(
        self,
        session: AsyncSession,
        dispatcher: NotificationDispatcher | None = None,
        settings: Settings | None = None,
    ):
        self._session = session
        self._dispatcher = dispatcher or get_dispatcher()
        self._settings = settings or get_settings()
        self._metrics = get_metrics()

        self._tenants = TenantRepository(session)
        self._customers = CustomerRepository(session)
        self._vehicles = VehicleRepository(session)
        self._services = ServiceRepository(session)
        self._jobs = JobRepository(session)

    async def can_accept_new_job(self, tenant_id: UUID) -> CapacityDecision:
        """Report whether the tenant has a free slot right now."""
        return await can_accept_new_job(self._tenants, self._jobs, tenant_id)

    async def create_job(
        self,
        tenant_id: UUID,
        customer_id: UUID,
        vehicle_id: UUID,
        service_ids: Sequence[UUID],
        before_images: Sequence[str] | None = None,
        *,
        notes: str | None = None,
        estimated_delivery: datetime | str | None = None,
        assigned_to: UUID | None = None,
    ) -> Job:
        """
        Create a wash job in RECEIVED status.

        Args:
            tenant_id: Owning tenant.
            customer_id: Customer bringing the vehicle; must belong to the tenant.
            vehicle_id: Vehicle to wash; must belong to the customer.
            service_ids: Services ordered; all must be active tenant services.
            before_images: Image URLs taken at intake.
            notes: Free-text notes stored on the job.
            estimated_delivery: Explicit future delivery time (datetime or ISO
                string) instead of the one derived from service durations.
            assigned_to: Employee the job is handed to.

        Returns:
            The stored Job.

        Raises:
            CapacityExceededError: The tenant has no free slot.
            NotFoundError: Tenant, customer or vehicle not found in scope.
            ValidationFailure: Unresolvable services or a bad delivery time.
            TokenAllocationExhaustedError: Every insert attempt collided.
        """
        with get_tracer().start_as_current_span(SPAN_CREATE_JOB) as span:
            span.set_attribute("tenant_id", str(tenant_id))

            decision = await self.can_accept_new_job(tenant_id)
            if not decision.can_accept:
                tenant = await self._tenants.get(tenant_id)
                self._metrics.record_capacity_rejection(
                    str(tenant_id), tenant.capacity_mode if tenant else "unknown"
                )
                raise CapacityExceededError(
                    decision.reason or "Capacity reached",
                    active_jobs=decision.active_jobs,
                    limit=decision.limit,
                )

            customer = await self._customers.get_for_tenant(tenant_id, customer_id)
            vehicle = await self._vehicles.get_for_customer(tenant_id, customer_id, vehicle_id)
            if customer is None or vehicle is None:
                raise NotFoundError(
                    "Customer or vehicle not found",
                    details={"customer_id": str(customer_id), "vehicle_id": str(vehicle_id)},
                )

            services = await self._resolve_services(tenant_id, service_ids)

            now = datetime.now(timezone.utc)
            total_price = sum((service.price for service in services), Decimal("0"))
            eta = self._resolve_eta(services, estimated_delivery, now)

            values: dict[str, Any] = {
                "tenant_id": tenant_id,
                "customer_id": customer_id,
                "vehicle_id": vehicle_id,
                "status": JobStatus.RECEIVED.value,
                "total_price": total_price,
                "services": [
                    ServiceSnapshot(service_id=service.id, price=service.price).to_record()
                    for service in services
                ],
                "estimated_delivery": eta,
                "before_images": list(before_images or []),
                "after_images": [],
                "notes": notes,
                "assigned_to": assigned_to,
                "status_history": [history_entry(JobStatus.RECEIVED, now=now)],
                "created_at": now,
                "updated_at": now,
            }

            job = await self._insert_with_retry(tenant_id, values)
            await self._session.commit()
            span.set_attribute("token_number", job.token_number)

        self._metrics.record_job_created(str(tenant_id))
        logger.info(
            "Job received",
            extra={
                "job_id": str(job.id),
                "tenant_id": str(tenant_id),
                "token_number": job.token_number,
            },
        )

        # Detach so a rolled-back notification cannot expire the returned job
        self._session.expunge(job)
        await self._notify(
            job,
            TEMPLATE_JOB_RECEIVED,
            {
                "estimated_time": self._local_time(eta),
            },
        )
        return job

    async def update_job_status(
        self,
        tenant_id: UUID,
        job_id: UUID,
        status: JobStatus | str,
        notes: str | None = None,
        after_images: Sequence[str] | None = None,
        *,
        assigned_to: UUID | None = None,
    ) -> Job:
        """
        Move a job to a new status.

        Args:
            tenant_id: Owning tenant.
            job_id: The job to update.
            status: Requested status.
            notes: Note for the history entry.
            after_images: Replacement after-wash image URLs.
            assigned_to: For restricted roles, only jobs assigned to this user.

        Returns:
            The updated Job.

        Raises:
            JobNotFoundError: No such job within the caller's scope.
            InvalidTransitionError: The move is illegal, or another request
                changed the status first.
            ValidationFailure: Unknown status or missing after images.
        """
        try:
            requested = JobStatus(status)
        except ValueError:
            raise ValidationFailure(f"Unknown job status: {status}") from None

        with get_tracer().start_as_current_span(SPAN_UPDATE_JOB_STATUS) as span:
            span.set_attribute("tenant_id", str(tenant_id))
            span.set_attribute("job_id", str(job_id))
            span.set_attribute("status", requested.value)

            job = await self._jobs.get_job(tenant_id, job_id, assigned_to=assigned_to)
            if job is None:
                raise JobNotFoundError(job_id)

            previous = job.status
            previous_version = job.version
            apply_status_transition(
                job,
                requested,
                notes=notes,
                after_images=after_images,
                min_after_images=self._settings.delivery_min_after_images,
            )

            if not await self._jobs.save_transition(
                job, expected_status=previous, expected_version=previous_version
            ):
                await self._session.rollback()
                latest = await self._jobs.get_job(tenant_id, job_id)
                current = latest.status if latest is not None else previous
                raise InvalidTransitionError(current, requested.value)

            await self._session.refresh(job)
            await self._session.commit()

        self._metrics.record_status_transition(str(tenant_id), requested.value)
        logger.info(
            "Job status changed",
            extra={
                "job_id": str(job_id),
                "tenant_id": str(tenant_id),
                "from_status": previous,
                "to_status": requested.value,
            },
        )

        self._session.expunge(job)
        await self._notify(
            job,
            f"{TEMPLATE_STATUS_PREFIX}{requested.value}",
            {
                "status": requested.value,
                "total_price": str(job.total_price),
            },
        )
        return job

    async def get_job(
        self,
        tenant_id: UUID,
        job_id: UUID,
        *,
        assigned_to: UUID | None = None,
    ) -> Job:
        job = await self._jobs.get_job(tenant_id, job_id, assigned_to=assigned_to)
        if job is None:
            raise JobNotFoundError(job_id)
        return job

    async def list_jobs(
        self,
        tenant_id: UUID,
        status: JobStatus | None = None,
        search: str | None = None,
        *,
        assigned_to: UUID | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[Sequence[Job], int]:
        return await self._jobs.list_jobs(
            tenant_id,
            status=status,
            search=search,
            assigned_to=assigned_to,
            limit=limit,
            offset=offset,
        )

    async def get_job_stats(self, tenant_id: UUID) -> dict[str, int]:
        """Job counts by status, retired names included as stored."""
        return await self._jobs.get_job_stats(tenant_id)

    async def _resolve_services(
        self,
        tenant_id: UUID,
        service_ids: Sequence[UUID],
    ) -> list[Service]:
        """Resolve every requested service or reject the whole request."""
        if not service_ids:
            raise ValidationFailure("At least one service is required")

        services = await self._services.find_active_by_ids(tenant_id, service_ids)
        if len(services) != len(service_ids):
            raise ValidationFailure(
                "One or more services not found",
                details={"requested": len(service_ids), "resolved": len(services)},
            )

        # Keep the caller's order in the price snapshot
        by_id = {service.id: service for service in services}
        return [by_id[service_id] for service_id in service_ids]

    def _resolve_eta(
        self,
        services: Sequence[Service],
        override: datetime | str | None,
        now: datetime,
    ) -> datetime:
        if override is not None:
            if isinstance(override, str):
                try:
                    override = datetime.fromisoformat(override)
                except ValueError:
                    raise ValidationFailure(
                        "Estimated delivery is not a valid date",
                        details={"estimated_delivery": override},
                    ) from None
            if override.tzinfo is None:
                override = override.replace(tzinfo=timezone.utc)
            if override <= now:
                raise ValidationFailure(
                    "Estimated delivery must be in the future",
                    details={"estimated_delivery": override.isoformat()},
                )
            return override

        durations = [service.max_minutes for service in services if service.max_minutes is not None]
        if not durations:
            return now + timedelta(minutes=self._settings.default_eta_minutes)
        return now + timedelta(minutes=sum(durations))

    def _local_time(self, value: datetime) -> str:
        """Clock time of `value` in the customer-facing timezone."""
        zone = self._settings.notification_timezone
        tz = timezone.utc if zone == "UTC" else ZoneInfo(zone)
        return value.astimezone(tz).strftime("%H:%M")

    async def _insert_with_retry(self, tenant_id: UUID, values: dict[str, Any]) -> Job:
        """
        Allocate a token and insert the job, retrying on token collisions.

        A concurrent request can take the token between the allocator's check
        and the insert; the tenant token constraint turns that into a conflict
        and the whole attempt is repeated with a fresh token.
        """
        max_attempts = self._settings.job_create_max_attempts
        backoff_ms = self._settings.job_create_backoff_max_ms
        collision: DuplicateTokenError | None = None

        for attempt in range(1, max_attempts + 1):
            token_number = await generate_token_number(self._jobs, tenant_id)
            outcome = await self._jobs.insert_job(
                {**values, "id": uuid4(), "token_number": token_number}
            )
            if outcome.inserted:
                return outcome.job

            collision = DuplicateTokenError(tenant_id, token_number)
            self._metrics.record_token_collision(str(tenant_id))
            logger.warning(
                "Token collision on insert",
                extra={
                    "tenant_id": str(tenant_id),
                    "token_number": token_number,
                    "attempt": attempt,
                    "max_attempts": max_attempts,
                },
            )
            if attempt < max_attempts:
                await asyncio.sleep(random.uniform(0, backoff_ms) / 1000)

        raise TokenAllocationExhaustedError(max_attempts) from collision

    async def _notify(self, job: Job, template_name: str, variables: dict[str, Any]) -> None:
        """Send a customer notification; failures are logged and dropped."""
        try:
            customer = await self._customers.get_for_tenant(job.tenant_id, job.customer_id)
            if customer is None:
                return
            vehicle = await self._session.get(Vehicle, job.vehicle_id)
            await notify_job_event(
                self._session,
                self._dispatcher,
                job,
                template_name,
                customer.whatsapp_number,
                {
                    "customer_name": customer.name,
                    "plate_number": vehicle.plate_number if vehicle else "",
                    "token_number": job.token_number,
                    **variables,
                },
            )
            await self._session.commit()
        except Exception:
            logger.exception(
                "Customer notification failed",
                extra={"job_id": str(job.id), "template": template_name},
            )
            self._metrics.record_notification(template=template_name, outcome="error")
            try:
                await self._session.rollback()
            except SQLAlchemyError:
                logger.exception("Rollback after failed notification failed")
