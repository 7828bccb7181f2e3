"""
FastAPI application factory and server entry point.
"""

import logging
from contextlib import asynccontextmanager
from uuid import uuid4

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from washq import __version__
from washq.api.errors import register_error_handlers
from washq.api.routes import auth_router, health_router, jobs_router
from washq.config import get_settings
from washq.db import close_db, get_engine, get_session_context, init_db
from washq.maintenance.bootstrap import ensure_default_subscription_plan
from washq.observability.logging import bind_context, clear_context, setup_logging
from washq.observability.metrics import setup_metrics
from washq.observability.tracing import (
    instrument_fastapi,
    instrument_sqlalchemy,
    setup_tracing,
)

logger = logging.getLogger(__name__)


async def bind_request_context(request: Request, call_next: RequestResponseEndpoint) -> Response:
    """Tag every log line of a request with its id and path."""
    clear_context()
    bind_context(
        request_id=request.headers.get("X-Request-ID") or uuid4().hex,
        path=request.url.path,
    )
    return await call_next(request)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Wire up observability and the database, then run the default-plan
    bootstrap before serving.
    """
    setup_logging()
    setup_metrics()
    setup_tracing()

    await init_db()
    instrument_sqlalchemy(get_engine().sync_engine)
    async with get_session_context() as session:
        await ensure_default_subscription_plan(session)

    logger.info("Application started", extra={"version": __version__})
    yield

    await close_db()
    logger.info("Application shutdown")


def create_app() -> FastAPI:
    """
    Build the API application.

    Returns:
        FastAPI: Application with routes, error handlers and middleware installed.
    """
    app = FastAPI(
        title="WashQ API",
        description="Car-wash job intake, ticket tokens and wash job lifecycle",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(BaseHTTPMiddleware, dispatch=bind_request_context)

    register_error_handlers(app)
    for router in (health_router, auth_router, jobs_router):
        app.include_router(router)

    instrument_fastapi(app)
    return app


def run() -> None:
    """Serve the API with uvicorn."""
    settings = get_settings()
    uvicorn.run(
        "washq.api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
    )


app = create_app()


if __name__ == "__main__":
    run()
