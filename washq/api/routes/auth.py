"""
Authentication routes.
"""

from fastapi import APIRouter, HTTPException, status

from washq.api.auth import create_access_token, validate_api_key
from washq.config import get_settings
from washq.types.api import AuthRequest, TokenResponse

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post(
    "/token",
    response_model=TokenResponse,
    summary="Get access token",
    description="Exchange an API key for a JWT access token scoped to a tenant user.",
)
async def get_token(request: AuthRequest) -> TokenResponse:
    """
    Get an access token using API key authentication.

    Raises:
        HTTPException: If the API key is rejected.
    """
    if not validate_api_key(request.api_key, request.tenant_id):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key",
        )

    settings = get_settings()
    access_token = create_access_token(
        tenant_id=request.tenant_id,
        user_id=request.user_id,
        role=request.role,
    )

    return TokenResponse(
        access_token=access_token,
        expires_in=settings.api_access_token_expire_minutes * 60,
    )
