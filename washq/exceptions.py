"""
Exception classes for the job intake and lifecycle core.

Every error the core raises derives from WashQError so the HTTP layer can
translate it without knowing about storage or messaging details.
"""

from typing import Any


class WashQError(Exception):
    """Base exception for all core errors."""

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for JSON serialization."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "details": self.details,
        }


class NotFoundError(WashQError):
    """Raised when an entity is absent or not owned by the tenant."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, error_code="NOT_FOUND", details=details)


class TenantNotFoundError(NotFoundError):
    def __init__(self, tenant_id: Any):
        super().__init__("Tenant not found", details={"tenant_id": str(tenant_id)})


class JobNotFoundError(NotFoundError):
    def __init__(self, job_id: Any):
        super().__init__("Job not found", details={"job_id": str(job_id)})


class ValidationFailure(WashQError):
    """Raised for malformed input, missing images or unresolved services."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, error_code="VALIDATION_FAILED", details=details)


class CapacityExceededError(WashQError):
    """Raised when the tenant cannot take another job right now."""

    def __init__(self, reason: str, active_jobs: int, limit: int):
        super().__init__(
            reason,
            error_code="CAPACITY_EXCEEDED",
            details={"active_jobs": active_jobs, "limit": limit},
        )
        self.reason = reason


class InvalidTransitionError(WashQError):
    """Raised when a status change is not allowed from the current status."""

    def __init__(self, current: str, requested: str):
        super().__init__(
            f"Invalid status transition from {current} to {requested}",
            error_code="INVALID_TRANSITION",
            details={"current": current, "requested": requested},
        )
        self.current = current
        self.requested = requested


class DuplicateTokenError(WashQError):
    """
    Raised when a token number is already taken for the tenant.

    Recovered by the orchestrator's retry loop; only reaches a caller as the
    cause of TokenAllocationExhaustedError.
    """

    def __init__(self, tenant_id: Any, token_number: str):
        super().__init__(
            f"Token {token_number} already issued",
            error_code="DUPLICATE_TOKEN",
            details={"tenant_id": str(tenant_id), "token_number": token_number},
        )
        self.token_number = token_number


class TokenAllocationExhaustedError(WashQError):
    """Raised when every job insert attempt collided on its token number."""

    def __init__(self, attempts: int):
        super().__init__(
            f"Failed to create job after {attempts} attempts",
            error_code="RETRIES_EXHAUSTED",
            details={"attempts": attempts},
        )
        self.attempts = attempts
