"""
Unit tests for admission control.
"""

from uuid import uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from washq.constants import CapacityMode, JobStatus
from washq.core.capacity import can_accept_new_job
from washq.db.models import Job
from washq.db.repository import JobRepository, TenantRepository
from washq.exceptions import TenantNotFoundError


async def add_job(session: AsyncSession, seed, status: str, token: str) -> Job:
    job = Job(
        tenant_id=seed.tenant.id,
        customer_id=seed.customer.id,
        vehicle_id=seed.vehicle.id,
        token_number=token,
        status=status,
        status_history=[{"status": status, "notes": None, "changed_at": "2026-02-08T09:00:00+00:00"}],
    )
    session.add(job)
    await session.commit()
    return job


class TestCapacityGate:
    """Tests for can_accept_new_job."""

    async def check(self, session: AsyncSession, tenant_id):
        return await can_accept_new_job(
            TenantRepository(session), JobRepository(session), tenant_id
        )

    async def test_single_mode_empty_accepts(self, db_session, seed):
        decision = await self.check(db_session, seed.tenant.id)

        assert decision.can_accept is True
        assert decision.active_jobs == 0
        assert decision.limit == 1
        assert decision.reason is None

    async def test_single_mode_busy_rejects(self, db_session, seed):
        await add_job(db_session, seed, JobStatus.WORK_STARTED.value, "20260208-AAAAAA")

        decision = await self.check(db_session, seed.tenant.id)

        assert decision.can_accept is False
        assert decision.reason == "Another job is already in progress"

    async def test_single_mode_ignores_stored_limit(self, db_session, make_seed):
        seed = await make_seed(CapacityMode.SINGLE, max_concurrent_jobs=5)
        await add_job(db_session, seed, JobStatus.RECEIVED.value, "20260208-AAAAAA")

        decision = await self.check(db_session, seed.tenant.id)

        assert decision.can_accept is False
        assert decision.limit == 1

    async def test_multiple_mode_accepts_below_limit(self, db_session, make_seed):
        seed = await make_seed(CapacityMode.MULTIPLE, max_concurrent_jobs=2)
        await add_job(db_session, seed, JobStatus.RECEIVED.value, "20260208-AAAAAA")

        decision = await self.check(db_session, seed.tenant.id)

        assert decision.can_accept is True
        assert decision.active_jobs == 1
        assert decision.limit == 2

    async def test_multiple_mode_rejects_at_limit(self, db_session, make_seed):
        seed = await make_seed(CapacityMode.MULTIPLE, max_concurrent_jobs=2)
        await add_job(db_session, seed, JobStatus.RECEIVED.value, "20260208-AAAAAA")
        await add_job(db_session, seed, JobStatus.WORK_STARTED.value, "20260208-BBBBBB")

        decision = await self.check(db_session, seed.tenant.id)

        assert decision.can_accept is False
        assert decision.reason == "Maximum capacity of 2 jobs reached"

    async def test_finished_jobs_do_not_count(self, db_session, seed):
        await add_job(db_session, seed, JobStatus.COMPLETED.value, "20260208-AAAAAA")
        await add_job(db_session, seed, JobStatus.DELIVERED.value, "20260208-BBBBBB")
        await add_job(db_session, seed, JobStatus.CANCELLED.value, "20260208-CCCCCC")

        decision = await self.check(db_session, seed.tenant.id)

        assert decision.can_accept is True
        assert decision.active_jobs == 0

    async def test_retired_statuses_count_as_active(self, db_session, seed):
        await add_job(db_session, seed, "WASHING", "20260208-AAAAAA")

        decision = await self.check(db_session, seed.tenant.id)

        assert decision.can_accept is False
        assert decision.active_jobs == 1

    async def test_other_tenants_jobs_ignored(self, db_session, seed, make_seed):
        other = await make_seed()
        await add_job(db_session, other, JobStatus.RECEIVED.value, "20260208-AAAAAA")

        decision = await self.check(db_session, seed.tenant.id)

        assert decision.can_accept is True

    async def test_unknown_tenant_raises(self, db_session):
        with pytest.raises(TenantNotFoundError):
            await self.check(db_session, uuid4())
