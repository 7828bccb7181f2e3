"""
Type definitions for WashQ.
Contains input/output type definitions for all functions, grouped by module.
"""

from washq.types.api import (
    AuthRequest,
    CapacityResponse,
    CreateJobRequest,
    ErrorResponse,
    HealthResponse,
    JobListResponse,
    JobStatsResponse,
    JobResponse,
    TokenResponse,
    UpdateJobStatusRequest,
)
from washq.types.job import (
    CapacityDecision,
    DispatchResult,
    InsertOutcome,
    ServiceSnapshot,
    StatusHistoryEntry,
)

__all__ = [
    # API types
    "CreateJobRequest",
    "UpdateJobStatusRequest",
    "JobResponse",
    "JobListResponse",
    "JobStatsResponse",
    "CapacityResponse",
    "AuthRequest",
    "TokenResponse",
    "HealthResponse",
    "ErrorResponse",
    # Job types
    "CapacityDecision",
    "InsertOutcome",
    "ServiceSnapshot",
    "StatusHistoryEntry",
    "DispatchResult",
]
