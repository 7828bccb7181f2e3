"""
Notifications module.
Contains template rendering and outbound customer messaging.
"""

from washq.notifications.dispatcher import (
    LoggingDispatcher,
    NotificationDispatcher,
    WhatsAppDispatcher,
    get_dispatcher,
)
from washq.notifications.service import notify_job_event
from washq.notifications.templates import format_template

__all__ = [
    "NotificationDispatcher",
    "LoggingDispatcher",
    "WhatsAppDispatcher",
    "get_dispatcher",
    "notify_job_event",
    "format_template",
]
