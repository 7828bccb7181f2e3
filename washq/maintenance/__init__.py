"""
Maintenance module.
Contains explicit bootstrap and one-time data migration steps.
"""

from washq.maintenance.bootstrap import ensure_default_subscription_plan
from washq.maintenance.statuses import migrate_job_statuses

__all__ = ["ensure_default_subscription_plan", "migrate_job_statuses"]
