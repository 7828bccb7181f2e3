"""
One-time migration of job statuses from the old fine-grained flow.

IN_PROGRESS, WASHING and DRYING collapse into WORK_STARTED; READY_TO_DELIVER
(left behind by an earlier migration) becomes DELIVERED. History entries are
rewritten the same way. Running it again finds nothing to do.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from washq.constants import RETIRED_STATUS_MAP
from washq.db.repository import JobRepository

logger = logging.getLogger(__name__)


def migrate_history(history: list[dict]) -> list[dict]:
    """Return `history` with retired status names replaced."""
    migrated = []
    for entry in history or []:
        mapped = RETIRED_STATUS_MAP.get(entry.get("status"))
        migrated.append({**entry, "status": mapped.value} if mapped else dict(entry))
    return migrated


async def migrate_job_statuses(session: AsyncSession) -> int:
    """
    Rewrite jobs still carrying retired statuses.

    The caller commits.

    Returns:
        Number of jobs migrated.
    """
    jobs = await JobRepository(session).find_by_statuses(list(RETIRED_STATUS_MAP))
    if not jobs:
        logger.info("No jobs with old statuses found")
        return 0

    for job in jobs:
        job.status = RETIRED_STATUS_MAP[job.status].value
        job.status_history = migrate_history(job.status_history)
        job.version += 1

    await session.flush()
    logger.info("Migrated job statuses", extra={"migrated": len(jobs)})
    return len(jobs)
