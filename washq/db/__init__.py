"""
Database module.
Contains database connection, models, and repository implementations.
"""

from washq.db.connection import (
    AsyncSessionLocal,
    close_db,
    get_async_session,
    get_engine,
    get_session_context,
    init_db,
    make_session_factory,
)
from washq.db.models import (
    Base,
    Customer,
    Job,
    MessageLog,
    MessageTemplate,
    Service,
    SubscriptionPlan,
    Tenant,
    Vehicle,
)

__all__ = [
    "get_async_session",
    "get_session_context",
    "get_engine",
    "init_db",
    "close_db",
    "make_session_factory",
    "AsyncSessionLocal",
    "Base",
    "Tenant",
    "Customer",
    "Vehicle",
    "Service",
    "Job",
    "MessageTemplate",
    "MessageLog",
    "SubscriptionPlan",
]
