"""
Unit tests for the job status state machine.
"""

from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

from washq.constants import JobStatus
from washq.core.lifecycle import (
    apply_status_transition,
    history_entry,
    is_valid_status_transition,
    next_status,
    read_history,
)
from washq.exceptions import InvalidTransitionError, ValidationFailure


def make_job(status: JobStatus | str = JobStatus.RECEIVED, after_images=None):
    status = str(status)
    return SimpleNamespace(
        status=status,
        after_images=list(after_images or []),
        actual_delivery=None,
        status_history=[
            {"status": status, "notes": None, "changed_at": "2026-02-08T09:00:00+00:00"}
        ],
    )


class TestIsValidStatusTransition:
    """Tests for is_valid_status_transition."""

    @pytest.mark.parametrize(
        "current,requested",
        [
            (JobStatus.RECEIVED, JobStatus.WORK_STARTED),
            (JobStatus.WORK_STARTED, JobStatus.COMPLETED),
            (JobStatus.COMPLETED, JobStatus.DELIVERED),
            (JobStatus.RECEIVED, JobStatus.RECEIVED),
            (JobStatus.WORK_STARTED, JobStatus.WORK_STARTED),
        ],
    )
    def test_forward_and_same_status_allowed(self, current, requested):
        assert is_valid_status_transition(current, requested) is True

    def test_forward_jump_allowed(self):
        """Skipping steps forward is permitted."""
        assert is_valid_status_transition(JobStatus.RECEIVED, JobStatus.DELIVERED) is True
        assert is_valid_status_transition(JobStatus.WORK_STARTED, JobStatus.DELIVERED) is True

    @pytest.mark.parametrize(
        "current,requested",
        [
            (JobStatus.COMPLETED, JobStatus.WORK_STARTED),
            (JobStatus.DELIVERED, JobStatus.RECEIVED),
            (JobStatus.WORK_STARTED, JobStatus.RECEIVED),
        ],
    )
    def test_backward_rejected(self, current, requested):
        assert is_valid_status_transition(current, requested) is False

    @pytest.mark.parametrize(
        "current",
        [JobStatus.RECEIVED, JobStatus.WORK_STARTED, JobStatus.COMPLETED],
    )
    def test_cancel_allowed_before_delivery(self, current):
        assert is_valid_status_transition(current, JobStatus.CANCELLED) is True

    def test_cancel_rejected_after_delivery_or_cancel(self):
        assert is_valid_status_transition(JobStatus.DELIVERED, JobStatus.CANCELLED) is False
        assert is_valid_status_transition(JobStatus.CANCELLED, JobStatus.CANCELLED) is False

    def test_cancelled_is_terminal(self):
        for requested in JobStatus:
            assert is_valid_status_transition(JobStatus.CANCELLED, requested) is False

    def test_delivered_is_terminal(self):
        for requested in JobStatus:
            assert is_valid_status_transition(JobStatus.DELIVERED, requested) is False

    def test_retired_and_unknown_names_rejected(self):
        assert is_valid_status_transition(JobStatus.RECEIVED, "WASHING") is False
        assert is_valid_status_transition("DRYING", JobStatus.COMPLETED) is False
        assert is_valid_status_transition(JobStatus.RECEIVED, "PARKED") is False


class TestApplyStatusTransition:
    """Tests for apply_status_transition."""

    def test_advances_status_and_appends_history(self):
        job = make_job()
        now = datetime(2026, 2, 8, 10, 0, tzinfo=timezone.utc)

        apply_status_transition(job, JobStatus.WORK_STARTED, notes="Bay 2", now=now)

        assert job.status == JobStatus.WORK_STARTED
        assert len(job.status_history) == 2
        assert job.status_history[-1] == {
            "status": "WORK_STARTED",
            "notes": "Bay 2",
            "changed_at": now.isoformat(),
        }
        assert job.actual_delivery is None

    def test_invalid_transition_raises_without_mutation(self):
        job = make_job(JobStatus.COMPLETED)

        with pytest.raises(InvalidTransitionError) as exc_info:
            apply_status_transition(job, JobStatus.WORK_STARTED)

        assert exc_info.value.current == "COMPLETED"
        assert exc_info.value.requested == "WORK_STARTED"
        assert job.status == JobStatus.COMPLETED
        assert len(job.status_history) == 1

    def test_delivery_requires_after_images(self):
        job = make_job(JobStatus.COMPLETED, after_images=["a.jpg"])

        with pytest.raises(ValidationFailure):
            apply_status_transition(job, JobStatus.DELIVERED, min_after_images=2)

        assert job.status == JobStatus.COMPLETED
        assert job.after_images == ["a.jpg"]
        assert len(job.status_history) == 1
        assert job.actual_delivery is None

    def test_delivery_with_new_images_sets_actual_delivery(self):
        job = make_job(JobStatus.COMPLETED)
        now = datetime(2026, 2, 8, 12, 30, tzinfo=timezone.utc)

        apply_status_transition(
            job,
            JobStatus.DELIVERED,
            after_images=["a.jpg", "b.jpg"],
            now=now,
            min_after_images=2,
        )

        assert job.status == JobStatus.DELIVERED
        assert job.after_images == ["a.jpg", "b.jpg"]
        assert job.actual_delivery == now

    def test_redelivery_keeps_first_delivery_time(self):
        job = make_job(JobStatus.COMPLETED)
        delivered_at = datetime(2026, 2, 8, 12, 30, tzinfo=timezone.utc)
        apply_status_transition(
            job,
            JobStatus.DELIVERED,
            after_images=["a.jpg", "b.jpg"],
            now=delivered_at,
            min_after_images=2,
        )

        with pytest.raises(InvalidTransitionError):
            apply_status_transition(
                job,
                JobStatus.DELIVERED,
                now=datetime(2026, 2, 8, 13, 0, tzinfo=timezone.utc),
                min_after_images=2,
            )

        assert job.actual_delivery == delivered_at
        assert [entry["status"] for entry in job.status_history] == ["COMPLETED", "DELIVERED"]

    def test_delivery_uses_existing_images_when_none_given(self):
        job = make_job(JobStatus.COMPLETED, after_images=["a.jpg", "b.jpg"])

        apply_status_transition(job, JobStatus.DELIVERED, min_after_images=2)

        assert job.status == JobStatus.DELIVERED
        assert job.after_images == ["a.jpg", "b.jpg"]

    def test_new_image_list_replaces_existing(self):
        """A supplied list is checked on its own, not merged with stored images."""
        job = make_job(JobStatus.COMPLETED, after_images=["a.jpg", "b.jpg"])

        with pytest.raises(ValidationFailure):
            apply_status_transition(
                job, JobStatus.DELIVERED, after_images=["c.jpg"], min_after_images=2
            )

        assert job.after_images == ["a.jpg", "b.jpg"]

    def test_history_last_entry_matches_status(self):
        job = make_job()
        for status in (JobStatus.WORK_STARTED, JobStatus.COMPLETED, JobStatus.CANCELLED):
            apply_status_transition(job, status)
            assert job.status_history[-1]["status"] == job.status

        assert [entry["status"] for entry in job.status_history] == [
            "RECEIVED",
            "WORK_STARTED",
            "COMPLETED",
            "CANCELLED",
        ]


class TestHistory:
    """Tests for history helpers."""

    def test_history_entry_record(self):
        now = datetime(2026, 2, 8, 9, 0, tzinfo=timezone.utc)
        entry = history_entry(JobStatus.RECEIVED, now=now)

        assert entry == {"status": "RECEIVED", "notes": None, "changed_at": now.isoformat()}

    def test_read_history_tolerates_retired_statuses(self):
        job = make_job()
        job.status_history.append(
            {"status": "WASHING", "notes": None, "changed_at": "2026-02-08T09:30:00+00:00"}
        )

        entries = read_history(job)

        assert [entry.status for entry in entries] == ["RECEIVED", "WASHING"]
        assert entries[1].is_retired_status is True
        assert entries[1].current_status == JobStatus.WORK_STARTED
        assert entries[0].current_status == JobStatus.RECEIVED


class TestNextStatus:
    def test_follows_forward_order(self):
        assert next_status(JobStatus.RECEIVED) == JobStatus.WORK_STARTED
        assert next_status(JobStatus.WORK_STARTED) == JobStatus.COMPLETED
        assert next_status(JobStatus.COMPLETED) == JobStatus.DELIVERED

    def test_end_of_flow(self):
        assert next_status(JobStatus.DELIVERED) is None
        assert next_status(JobStatus.CANCELLED) is None
        assert next_status("WASHING") is None
