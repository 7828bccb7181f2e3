"""
Liveness, readiness and metrics endpoints.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from washq import __version__
from washq.db import get_async_session
from washq.observability.metrics import get_metrics
from washq.types.api import HealthResponse

router = APIRouter(tags=["Health"])


async def _database_reachable(session: AsyncSession) -> bool:
    try:
        await session.execute(text("SELECT 1"))
    except SQLAlchemyError:
        return False
    return True


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Report service version and database reachability.",
)
async def health_check(
    session: AsyncSession = Depends(get_async_session),
) -> HealthResponse:
    database_ok = await _database_reachable(session)
    return HealthResponse(
        status="healthy" if database_ok else "degraded",
        version=__version__,
        database="healthy" if database_ok else "unhealthy",
        timestamp=datetime.now(timezone.utc),
    )


@router.get("/ready", summary="Readiness probe")
async def readiness_check(
    session: AsyncSession = Depends(get_async_session),
) -> dict:
    """Ready once the database answers."""
    return {"ready": await _database_reachable(session)}


@router.get("/live", summary="Liveness probe")
async def liveness_check() -> dict:
    return {"alive": True}


@router.get("/metrics", summary="Prometheus metrics")
async def metrics() -> Response:
    collector = get_metrics()
    return Response(content=collector.get_metrics(), media_type=collector.get_content_type())
