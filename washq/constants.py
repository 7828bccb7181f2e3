"""
Application constants.
Centralized location for all constant values used across the application.
"""

from enum import StrEnum


class JobStatus(StrEnum):
    """
    Wash job lifecycle states.

    State transitions:
    - RECEIVED -> WORK_STARTED -> COMPLETED -> DELIVERED (forward only,
      steps may be skipped, staying in place is allowed)
    - any state except DELIVERED/CANCELLED -> CANCELLED
    """

    RECEIVED = "RECEIVED"
    WORK_STARTED = "WORK_STARTED"
    COMPLETED = "COMPLETED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


class CapacityMode(StrEnum):
    """How many cars a tenant handles at once."""

    SINGLE = "SINGLE"
    MULTIPLE = "MULTIPLE"


class TenantStatus(StrEnum):
    ACTIVE = "ACTIVE"
    SUSPENDED = "SUSPENDED"
    INACTIVE = "INACTIVE"


class UserRole(StrEnum):
    """Roles carried in access tokens."""

    TENANT_ADMIN = "TENANT_ADMIN"
    EMPLOYEE = "EMPLOYEE"


class MessageStatus(StrEnum):
    SENT = "SENT"
    FAILED = "FAILED"


# Forward progression used by the transition check
STATUS_ORDER: tuple[JobStatus, ...] = (
    JobStatus.RECEIVED,
    JobStatus.WORK_STARTED,
    JobStatus.COMPLETED,
    JobStatus.DELIVERED,
)

# Jobs in these states do not occupy a wash slot
INACTIVE_STATUSES: frozenset[JobStatus] = frozenset(
    {JobStatus.COMPLETED, JobStatus.DELIVERED, JobStatus.CANCELLED}
)

# Statuses from the earlier fine-grained flow, mapped to their replacement.
# Only the data migration writes these mappings; history may still hold the keys.
RETIRED_STATUS_MAP: dict[str, JobStatus] = {
    "IN_PROGRESS": JobStatus.WORK_STARTED,
    "WASHING": JobStatus.WORK_STARTED,
    "DRYING": JobStatus.WORK_STARTED,
    "READY_TO_DELIVER": JobStatus.DELIVERED,
}

# Token format: YYYYMMDD-XXXXXX, alphabet without 0/O/I/1
TOKEN_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
TOKEN_SUFFIX_LENGTH = 6
TOKEN_FALLBACK_SUFFIX_LENGTH = 4
TOKEN_DATE_FORMAT = "%Y%m%d"

# Template names looked up when notifying customers
TEMPLATE_JOB_RECEIVED = "Job Received"
TEMPLATE_STATUS_PREFIX = "Job "

# Default subscription plan created at bootstrap
DEFAULT_PLAN_NAME = "Free Tier"
DEFAULT_PLAN_DESCRIPTION = "Default free plan for new shops"
DEFAULT_PLAN_VALIDITY_DAYS = 14

# API constants
API_V1_PREFIX = "/v1"

# Metrics names
METRIC_JOBS_CREATED = "washq_jobs_created_total"
METRIC_STATUS_TRANSITIONS = "washq_job_status_transitions_total"
METRIC_TOKEN_COLLISIONS = "washq_token_collisions_total"
METRIC_CAPACITY_REJECTIONS = "washq_capacity_rejections_total"
METRIC_NOTIFICATIONS = "washq_notifications_total"

# Trace span names
SPAN_CREATE_JOB = "create_job"
SPAN_UPDATE_JOB_STATUS = "update_job_status"
SPAN_NOTIFY = "notify_customer"
