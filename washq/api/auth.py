"""
Authentication and authorization utilities.
"""

from datetime import datetime, timedelta, timezone
from typing import Annotated
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from pydantic import BaseModel, ValidationError

from washq.config import get_settings
from washq.constants import UserRole

# Security scheme
security = HTTPBearer()


class TokenData(BaseModel):
    """Data extracted from JWT token."""

    tenant_id: UUID
    user_id: UUID
    role: UserRole
    exp: datetime


class AuthenticatedUser(BaseModel):
    """Authenticated user context."""

    tenant_id: UUID
    user_id: UUID
    role: UserRole

    @property
    def is_restricted(self) -> bool:
        """Employees only see jobs assigned to them."""
        return self.role == UserRole.EMPLOYEE

    @property
    def job_scope(self) -> UUID | None:
        """The assignee filter to apply to job lookups, if any."""
        return self.user_id if self.is_restricted else None


def create_access_token(
    tenant_id: UUID,
    user_id: UUID,
    role: UserRole = UserRole.TENANT_ADMIN,
    expires_delta: timedelta | None = None,
) -> str:
    """
    Create a JWT access token.

    Args:
        tenant_id: The tenant identifier.
        user_id: The user the token is issued to.
        role: The user's role.
        expires_delta: Optional custom expiration time.

    Returns:
        The encoded JWT token.
    """
    settings = get_settings()

    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.api_access_token_expire_minutes)

    now = datetime.now(timezone.utc)
    to_encode = {
        "tenant_id": str(tenant_id),
        "user_id": str(user_id),
        "role": UserRole(role).value,
        "exp": now + expires_delta,
        "iat": now,
    }

    return jwt.encode(
        to_encode,
        settings.api_secret_key,
        algorithm=settings.api_algorithm,
    )


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def decode_token(token: str) -> TokenData:
    """
    Decode and validate a JWT token.

    Args:
        token: The JWT token to decode.

    Returns:
        TokenData extracted from the token.

    Raises:
        HTTPException: If token is invalid, expired or missing claims.
    """
    settings = get_settings()

    try:
        payload = jwt.decode(
            token,
            settings.api_secret_key,
            algorithms=[settings.api_algorithm],
        )
    except JWTError as e:
        raise _unauthorized(f"Invalid token: {str(e)}")

    if payload.get("tenant_id") is None or payload.get("user_id") is None:
        raise _unauthorized("Invalid token: missing tenant_id or user_id")

    try:
        return TokenData(
            tenant_id=payload["tenant_id"],
            user_id=payload["user_id"],
            role=payload.get("role", UserRole.TENANT_ADMIN),
            exp=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        )
    except (ValidationError, KeyError, TypeError) as e:
        raise _unauthorized(f"Invalid token: {str(e)}")


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
) -> AuthenticatedUser:
    """
    FastAPI dependency to get the current authenticated user.

    Raises:
        HTTPException: If authentication fails.
    """
    token_data = decode_token(credentials.credentials)

    return AuthenticatedUser(
        tenant_id=token_data.tenant_id,
        user_id=token_data.user_id,
        role=token_data.role,
    )


# Type alias for dependency injection
CurrentUser = Annotated[AuthenticatedUser, Depends(get_current_user)]


def require_admin(current_user: CurrentUser) -> AuthenticatedUser:
    """Dependency rejecting restricted roles."""
    if current_user.is_restricted:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied. Insufficient permissions.",
        )
    return current_user


AdminUser = Annotated[AuthenticatedUser, Depends(require_admin)]


def validate_api_key(api_key: str, tenant_id: UUID | str) -> bool:
    """
    Validate an API key for a tenant.

    Key storage lives with tenant administration, outside this service;
    any non-empty key is accepted here.
    """
    return bool(api_key) and bool(tenant_id)
