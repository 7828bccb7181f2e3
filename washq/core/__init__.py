"""
Core module.
Contains admission control, token allocation, the job status state machine
and the orchestrator composing them.
"""

from washq.core.capacity import can_accept_new_job
from washq.core.lifecycle import (
    apply_status_transition,
    is_valid_status_transition,
    next_status,
    read_history,
)
from washq.core.orchestrator import JobOrchestrator
from washq.core.tokens import generate_token_number

__all__ = [
    "can_accept_new_job",
    "generate_token_number",
    "is_valid_status_transition",
    "apply_status_transition",
    "next_status",
    "read_history",
    "JobOrchestrator",
]
