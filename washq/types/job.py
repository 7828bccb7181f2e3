"""
Job-related type definitions for internal use.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel

from washq.constants import RETIRED_STATUS_MAP, JobStatus


@dataclass(frozen=True)
class CapacityDecision:
    """
    Outcome of an admission check for a tenant.

    `reason` is only set when the job is refused.
    """

    can_accept: bool
    active_jobs: int
    limit: int
    reason: str | None = None


@dataclass
class InsertOutcome:
    """
    Result of a job insert guarded by the tenant token constraint.

    `conflict` is True when another job already holds the token; `job` is
    None in that case.
    """

    job: Any | None
    conflict: bool

    @property
    def inserted(self) -> bool:
        return self.job is not None and not self.conflict


class ServiceSnapshot(BaseModel):
    """Price of a service as charged when the job was created."""

    service_id: UUID
    price: Decimal

    def to_record(self) -> dict[str, Any]:
        return {"service_id": str(self.service_id), "price": str(self.price)}


class StatusHistoryEntry(BaseModel):
    """
    One entry of a job's status log.

    `status` stays a plain string: entries written before the status flow was
    simplified may carry retired names.
    """

    status: str
    notes: str | None = None
    changed_at: datetime

    @property
    def is_retired_status(self) -> bool:
        return self.status in RETIRED_STATUS_MAP

    @property
    def current_status(self) -> JobStatus | None:
        """The status in today's flow this entry corresponds to, if any."""
        if self.status in RETIRED_STATUS_MAP:
            return RETIRED_STATUS_MAP[self.status]
        try:
            return JobStatus(self.status)
        except ValueError:
            return None

    def to_record(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "notes": self.notes,
            "changed_at": self.changed_at.isoformat(),
        }


@dataclass
class DispatchResult:
    """What the messaging collaborator reports back for one send."""

    success: bool
    message_id: str | None = None
    error: str | None = None
