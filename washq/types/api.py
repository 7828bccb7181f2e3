"""
API request and response type definitions.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from washq.constants import JobStatus, UserRole
from washq.types.job import StatusHistoryEntry


class CreateJobRequest(BaseModel):
    """Request body for creating a new wash job."""

    customer_id: UUID
    vehicle_id: UUID
    service_ids: list[UUID] = Field(..., min_length=1, description="Services to perform")
    before_images: list[str] = Field(default_factory=list, description="Intake photo URLs")
    notes: str | None = None
    estimated_delivery: datetime | None = Field(
        default=None, description="Explicit delivery time instead of the service-based estimate"
    )
    assigned_to: UUID | None = Field(default=None, description="Employee handling the job")


class UpdateJobStatusRequest(BaseModel):
    """Request body for a status change."""

    status: JobStatus
    notes: str | None = None
    after_images: list[str] | None = Field(
        default=None, description="Replaces the job's after-wash photo URLs"
    )


class ServiceLine(BaseModel):
    service_id: UUID
    price: Decimal


class JobResponse(BaseModel):
    """Full job details response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    tenant_id: UUID
    customer_id: UUID
    vehicle_id: UUID
    token_number: str
    status: str
    total_price: Decimal
    services: list[ServiceLine]
    estimated_delivery: datetime | None
    actual_delivery: datetime | None
    before_images: list[str]
    after_images: list[str]
    notes: str | None
    assigned_to: UUID | None
    status_history: list[StatusHistoryEntry]
    created_at: datetime
    updated_at: datetime
    next_status: JobStatus | None = Field(
        default=None, description="Status that normally follows the current one"
    )


class JobListResponse(BaseModel):
    """Paginated list of jobs."""

    jobs: list[JobResponse]
    total: int
    page: int
    page_size: int
    has_next: bool


class CapacityResponse(BaseModel):
    can_accept: bool
    active_jobs: int
    limit: int
    reason: str | None = None


class JobStatsResponse(BaseModel):
    """Job counts for the tenant dashboard."""

    by_status: dict[str, int] = Field(default_factory=dict, description="Job count per status")
    total: int
    in_progress: int = Field(..., description="Jobs still occupying a wash slot")
    pending_deliveries: int = Field(..., description="Completed jobs not yet handed over")


class AuthRequest(BaseModel):
    """Authentication request."""

    api_key: str = Field(..., description="API key for authentication")
    tenant_id: UUID = Field(..., description="Tenant identifier")
    user_id: UUID = Field(..., description="User the token is issued to")
    role: UserRole = Field(default=UserRole.TENANT_ADMIN)


class TokenResponse(BaseModel):
    """JWT token response."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    database: str
    timestamp: datetime


class ErrorResponse(BaseModel):
    """Standard error response."""

    error: str
    message: str
    error_code: str | None = None
    details: dict[str, Any] | None = None
