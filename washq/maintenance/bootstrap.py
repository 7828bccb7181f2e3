"""
Deployment-time data bootstrap.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from washq.constants import (
    DEFAULT_PLAN_DESCRIPTION,
    DEFAULT_PLAN_NAME,
    DEFAULT_PLAN_VALIDITY_DAYS,
)
from washq.db.models import SubscriptionPlan
from washq.db.repository import SubscriptionPlanRepository

logger = logging.getLogger(__name__)


async def ensure_default_subscription_plan(session: AsyncSession) -> SubscriptionPlan | None:
    """
    Create the default free plan if no subscription plan exists yet.

    Idempotent: once any plan exists, nothing is written. Called at API
    startup and by ``washq-maintenance bootstrap``; read paths never call it.

    Returns:
        The plan created, or None if plans already existed.
    """
    plans = SubscriptionPlanRepository(session)
    if await plans.count() > 0:
        return None

    plan = await plans.create(
        name=DEFAULT_PLAN_NAME,
        description=DEFAULT_PLAN_DESCRIPTION,
        validity_days=DEFAULT_PLAN_VALIDITY_DAYS,
        features=["Basic access"],
        is_active=True,
        is_free_trial=True,
    )
    logger.info("Created default subscription plan", extra={"plan_id": str(plan.id)})
    return plan
