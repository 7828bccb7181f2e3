"""
Customer notifications for job events.
"""

import logging
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from washq.constants import SPAN_NOTIFY, MessageStatus
from washq.db.models import Job
from washq.db.repository import MessageLogRepository, MessageTemplateRepository
from washq.notifications.dispatcher import NotificationDispatcher
from washq.notifications.templates import format_template
from washq.observability.metrics import get_metrics
from washq.observability.tracing import get_tracer
from washq.types.job import DispatchResult

logger = logging.getLogger(__name__)


async def notify_job_event(
    session: AsyncSession,
    dispatcher: NotificationDispatcher,
    job: Job,
    template_name: str,
    recipient: str,
    variables: Mapping[str, Any],
) -> DispatchResult | None:
    """
    Render the named template for a job and send it to the customer.

    The attempt is written to the message log whatever the outcome. Callers
    own the transaction and decide what a failure means.

    Returns:
        The dispatch result, or None when no active template exists.
    """
    templates = MessageTemplateRepository(session)
    template = await templates.find_active(job.tenant_id, template_name)
    if template is None:
        logger.debug(
            "No active template, skipping notification",
            extra={"template": template_name, "tenant_id": str(job.tenant_id)},
        )
        return None

    message = format_template(template.body, variables)

    with get_tracer().start_as_current_span(SPAN_NOTIFY):
        result = await dispatcher.send(recipient, message, template.id)

    await MessageLogRepository(session).record(
        tenant_id=job.tenant_id,
        job_id=job.id,
        template_id=template.id,
        recipient=recipient,
        body=message,
        status=MessageStatus.SENT if result.success else MessageStatus.FAILED,
        error=result.error,
        sent_at=datetime.now(timezone.utc) if result.success else None,
    )

    get_metrics().record_notification(
        template=template_name,
        outcome="sent" if result.success else "failed",
    )
    return result
