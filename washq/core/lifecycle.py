"""
Wash job status state machine.

Jobs move forward through RECEIVED, WORK_STARTED, COMPLETED and DELIVERED.
Steps may be skipped and re-submitting the current status is allowed; moving
backwards is not. CANCELLED is reachable until the job is delivered. DELIVERED
and CANCELLED are terminal.

History entries written before the flow was simplified can hold retired
status names. They are readable through `read_history` but never written.
"""

from collections.abc import Sequence
from datetime import datetime, timezone
from typing import Any

from washq.config import get_settings
from washq.constants import STATUS_ORDER, JobStatus
from washq.exceptions import InvalidTransitionError, ValidationFailure
from washq.types.job import StatusHistoryEntry

_ORDER_INDEX = {status.value: index for index, status in enumerate(STATUS_ORDER)}
_TERMINAL = frozenset({JobStatus.DELIVERED.value, JobStatus.CANCELLED.value})


def is_valid_status_transition(current: str, requested: str) -> bool:
    """
    Check whether a job in `current` may move to `requested`.

    Nothing leaves DELIVERED or CANCELLED, not even a repeat of the same
    status. Cancelling is allowed from anything else. Any other move needs
    both names in the forward order, so retired or unknown names are rejected.
    """
    if current in _TERMINAL:
        return False
    if requested == JobStatus.CANCELLED:
        return True

    current_index = _ORDER_INDEX.get(current)
    requested_index = _ORDER_INDEX.get(requested)
    if current_index is None or requested_index is None:
        return False

    return requested_index >= current_index


def next_status(current: str) -> JobStatus | None:
    """The status that normally follows `current`, or None at the end of the flow."""
    index = _ORDER_INDEX.get(current)
    if index is None or index + 1 >= len(STATUS_ORDER):
        return None
    return STATUS_ORDER[index + 1]


def history_entry(
    status: JobStatus,
    notes: str | None = None,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Build a stored history record for `status`."""
    return StatusHistoryEntry(
        status=status.value,
        notes=notes,
        changed_at=now or datetime.now(timezone.utc),
    ).to_record()


def read_history(job: Any) -> list[StatusHistoryEntry]:
    """Parse a job's stored status history, retired names included."""
    return [StatusHistoryEntry.model_validate(entry) for entry in job.status_history or []]


def apply_status_transition(
    job: Any,
    requested: JobStatus,
    notes: str | None = None,
    after_images: Sequence[str] | None = None,
    now: datetime | None = None,
    min_after_images: int | None = None,
) -> Any:
    """
    Move a job to `requested`, recording the change in its history.

    All checks run before anything on the job changes.

    Args:
        job: The job to update in place.
        requested: Target status.
        notes: Optional note stored with the history entry.
        after_images: Replacement list of after-wash image URLs.
        now: Clock override.
        min_after_images: After images required for delivery.

    Returns:
        The same job, updated.

    Raises:
        InvalidTransitionError: If the move is not allowed.
        ValidationFailure: If delivering without enough after images.
    """
    requested = JobStatus(requested)
    current = job.status

    if not is_valid_status_transition(current, requested):
        raise InvalidTransitionError(current, requested.value)

    images = list(after_images) if after_images is not None else list(job.after_images or [])

    if requested == JobStatus.DELIVERED:
        if min_after_images is None:
            min_after_images = get_settings().delivery_min_after_images
        if len(images) < min_after_images:
            raise ValidationFailure(
                f"At least {min_after_images} after images are required before delivery",
                details={"after_images": len(images), "required": min_after_images},
            )

    if now is None:
        now = datetime.now(timezone.utc)

    if after_images is not None:
        job.after_images = images
    job.status = requested.value
    job.status_history = [*(job.status_history or []), history_entry(requested, notes, now)]
    if requested == JobStatus.DELIVERED:
        job.actual_delivery = now

    return job
