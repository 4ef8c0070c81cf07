"""
FastAPI application for the RetroPhoto upload sync worker.

Usage:
    uvicorn retrophoto.api.main:app --host 0.0.0.0 --port 8000
"""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError

from retrophoto import __version__
from retrophoto.api.error_handlers import (
    api_exception_handler,
    domain_exception_handler,
    global_exception_handler,
    validation_exception_handler,
)
from retrophoto.api.exceptions import APIException
from retrophoto.api.middleware import correlation_id_middleware
from retrophoto.api.models.responses import success_response
from retrophoto.api.routers import health, push, sync, uploads
from retrophoto.config import load_config
from retrophoto.core.logging_utils import get_logger, setup_json_logging
from retrophoto.di.container import Container
from retrophoto.domain.exceptions.domain_exceptions import DomainException

logger = get_logger(__name__)


def create_app(container: Container | None = None) -> FastAPI:
    """Build the API.

    Args:
        container: Pre-wired container; when omitted one is built from the
            environment at startup.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        active = container
        if active is None:
            config = load_config()
            setup_json_logging(
                config.runtime.log_level,
                use_loguru=config.runtime.log_format == "loguru",
                log_file=config.runtime.log_file,
            )
            active = Container(config)
        app.state.container = active
        await active.startup()
        try:
            yield
        finally:
            await active.shutdown()

    app = FastAPI(
        title="RetroPhoto Upload Sync",
        description="Durable offline upload queue with background sync delivery",
        version=__version__,
        lifespan=lifespan,
    )

    app.middleware("http")(correlation_id_middleware)

    app.include_router(uploads.router, prefix="/v1/uploads", tags=["Uploads"])
    app.include_router(sync.router, prefix="/v1/sync", tags=["Sync"])
    app.include_router(push.router, prefix="/v1/push", tags=["Notifications"])
    app.include_router(health.router, tags=["System"])

    @app.get("/")
    async def root(request: Request):
        """API root endpoint."""
        return success_response(
            {
                "service": "RetroPhoto Upload Sync",
                "version": app.version,
                "health": "/health",
            },
            correlation_id=getattr(request.state, "correlation_id", None),
        )

    app.add_exception_handler(APIException, api_exception_handler)
    app.add_exception_handler(DomainException, domain_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)
    return app


app = create_app()
