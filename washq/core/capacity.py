"""
Admission control for new wash jobs.

The check counts active jobs at read time and holds no lock. Two requests
racing for the last slot may both be admitted; that over-admission is a known
limitation, not something this module corrects.
"""

import logging
from uuid import UUID

from washq.constants import CapacityMode
from washq.db.repository import JobRepository, TenantRepository
from washq.exceptions import TenantNotFoundError
from washq.types.job import CapacityDecision

logger = logging.getLogger(__name__)


async def can_accept_new_job(
    tenants: TenantRepository,
    jobs: JobRepository,
    tenant_id: UUID,
) -> CapacityDecision:
    """
    Decide whether a tenant can take another job right now.

    Args:
        tenants: Tenant lookups.
        jobs: Job lookups used to count active jobs.
        tenant_id: The tenant identifier.

    Returns:
        CapacityDecision; `reason` tells a busy single bay apart from a full fleet.

    Raises:
        TenantNotFoundError: If the tenant does not exist.
    """
    tenant = await tenants.get(tenant_id)
    if tenant is None:
        raise TenantNotFoundError(tenant_id)

    active = await jobs.count_active(tenant_id)
    limit = tenant.effective_job_limit

    if tenant.capacity_mode == CapacityMode.SINGLE:
        if active >= 1:
            return CapacityDecision(
                can_accept=False,
                active_jobs=active,
                limit=limit,
                reason="Another job is already in progress",
            )
    elif active >= limit:
        return CapacityDecision(
            can_accept=False,
            active_jobs=active,
            limit=limit,
            reason=f"Maximum capacity of {limit} jobs reached",
        )

    logger.debug(
        "Capacity available",
        extra={"tenant_id": str(tenant_id), "active_jobs": active, "limit": limit},
    )
    return CapacityDecision(can_accept=True, active_jobs=active, limit=limit)
