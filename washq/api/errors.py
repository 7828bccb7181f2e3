"""
Translation of core errors into HTTP responses.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from washq.exceptions import (
    CapacityExceededError,
    InvalidTransitionError,
    NotFoundError,
    TokenAllocationExhaustedError,
    ValidationFailure,
    WashQError,
)

logger = logging.getLogger(__name__)

# Checked in order, so subclasses come before their bases
ERROR_STATUS_CODES: list[tuple[type[WashQError], int]] = [
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ValidationFailure, status.HTTP_400_BAD_REQUEST),
    (CapacityExceededError, status.HTTP_429_TOO_MANY_REQUESTS),
    (InvalidTransitionError, status.HTTP_409_CONFLICT),
    (TokenAllocationExhaustedError, status.HTTP_503_SERVICE_UNAVAILABLE),
]


def status_code_for(exc: WashQError) -> int:
    for error_type, code in ERROR_STATUS_CODES:
        if isinstance(exc, error_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def washq_error_handler(request: Request, exc: WashQError) -> JSONResponse:
    code = status_code_for(exc)
    if code >= 500:
        logger.error(
            "Request failed",
            extra={"path": request.url.path, "error": exc.message, "error_code": exc.error_code},
        )
    return JSONResponse(status_code=code, content=exc.to_dict())


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(WashQError, washq_error_handler)
