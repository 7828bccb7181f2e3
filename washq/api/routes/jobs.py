"""
Wash job routes.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from washq.api.auth import AdminUser, CurrentUser
from washq.constants import API_V1_PREFIX, INACTIVE_STATUSES, JobStatus
from washq.core.lifecycle import next_status
from washq.core.orchestrator import JobOrchestrator
from washq.db.models import Job
from washq.db import get_async_session
from washq.notifications import get_dispatcher
from washq.types.api import (
    CapacityResponse,
    CreateJobRequest,
    ErrorResponse,
    JobListResponse,
    JobResponse,
    JobStatsResponse,
    UpdateJobStatusRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix=f"{API_V1_PREFIX}/jobs",
    tags=["Jobs"],
    responses={
        404: {"model": ErrorResponse, "description": "Job, tenant, customer or vehicle not found"},
        400: {"model": ErrorResponse, "description": "Invalid services, delivery time or images"},
    },
)


def job_response(job: Job) -> JobResponse:
    response = JobResponse.model_validate(job)
    response.next_status = next_status(job.status)
    return response


def get_orchestrator(
    session: AsyncSession = Depends(get_async_session),
) -> JobOrchestrator:
    """Build a JobOrchestrator for the request's session."""
    return JobOrchestrator(session, dispatcher=get_dispatcher())


@router.post(
    "",
    response_model=JobResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a wash job",
    description="Admit a vehicle, issue a token number and notify the customer.",
    responses={
        429: {"model": ErrorResponse, "description": "Tenant is at capacity"},
        503: {"model": ErrorResponse, "description": "Could not allocate a token number"},
    },
)
async def create_job(
    request: CreateJobRequest,
    current_user: AdminUser,
    orchestrator: JobOrchestrator = Depends(get_orchestrator),
) -> JobResponse:
    """
    Create a new job for the caller's tenant.

    Capacity, ownership and service errors are raised by the orchestrator
    and translated by the registered error handlers.
    """
    job = await orchestrator.create_job(
        current_user.tenant_id,
        request.customer_id,
        request.vehicle_id,
        request.service_ids,
        request.before_images,
        notes=request.notes,
        estimated_delivery=request.estimated_delivery,
        assigned_to=request.assigned_to,
    )
    return job_response(job)


@router.get(
    "/capacity",
    response_model=CapacityResponse,
    summary="Check capacity",
    description="Report whether the tenant can take another job right now.",
)
async def get_capacity(
    current_user: CurrentUser,
    orchestrator: JobOrchestrator = Depends(get_orchestrator),
) -> CapacityResponse:
    decision = await orchestrator.can_accept_new_job(current_user.tenant_id)
    return CapacityResponse(
        can_accept=decision.can_accept,
        active_jobs=decision.active_jobs,
        limit=decision.limit,
        reason=decision.reason,
    )


@router.get(
    "/stats",
    response_model=JobStatsResponse,
    summary="Get job statistics",
    description="Job counts by status for the tenant dashboard.",
)
async def get_job_stats(
    current_user: AdminUser,
    orchestrator: JobOrchestrator = Depends(get_orchestrator),
) -> JobStatsResponse:
    by_status = await orchestrator.get_job_stats(current_user.tenant_id)
    inactive = {s.value for s in INACTIVE_STATUSES}
    return JobStatsResponse(
        by_status=by_status,
        total=sum(by_status.values()),
        in_progress=sum(count for name, count in by_status.items() if name not in inactive),
        pending_deliveries=by_status.get(JobStatus.COMPLETED.value, 0),
    )


@router.get(
    "/{job_id}",
    response_model=JobResponse,
    summary="Get job details",
)
async def get_job(
    job_id: UUID,
    current_user: CurrentUser,
    orchestrator: JobOrchestrator = Depends(get_orchestrator),
) -> JobResponse:
    job = await orchestrator.get_job(
        current_user.tenant_id, job_id, assigned_to=current_user.job_scope
    )
    return job_response(job)


@router.get(
    "",
    response_model=JobListResponse,
    summary="List jobs",
    description="List the tenant's jobs, newest first, with optional status filter and search.",
)
async def list_jobs(
    current_user: CurrentUser,
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=100),
    status: JobStatus | None = Query(default=None),
    search: str | None = Query(default=None, max_length=100),
    orchestrator: JobOrchestrator = Depends(get_orchestrator),
) -> JobListResponse:
    """
    List jobs for the current tenant.

    `search` matches token numbers, customer names and phones, and plates.
    """
    offset = (page - 1) * page_size

    jobs, total = await orchestrator.list_jobs(
        current_user.tenant_id,
        status=status,
        search=search,
        assigned_to=current_user.job_scope,
        limit=page_size,
        offset=offset,
    )

    return JobListResponse(
        jobs=[job_response(job) for job in jobs],
        total=total,
        page=page,
        page_size=page_size,
        has_next=(page * page_size) < total,
    )


@router.patch(
    "/{job_id}/status",
    response_model=JobResponse,
    summary="Change job status",
    description="Advance or cancel a job. Delivery requires after-wash photos.",
    responses={409: {"model": ErrorResponse, "description": "Transition not allowed"}},
)
async def update_job_status(
    job_id: UUID,
    request: UpdateJobStatusRequest,
    current_user: CurrentUser,
    orchestrator: JobOrchestrator = Depends(get_orchestrator),
) -> JobResponse:
    job = await orchestrator.update_job_status(
        current_user.tenant_id,
        job_id,
        request.status,
        notes=request.notes,
        after_images=request.after_images,
        assigned_to=current_user.job_scope,
    )
    return job_response(job)
