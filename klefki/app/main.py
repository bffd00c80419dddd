"""
Main entrypoint for the Klefki key exchange API.

This module assembles the FastAPI application, sets up logging,
registers the error handlers and includes versioned routers.  The
``create_app`` function builds and configures the app, which is then
instantiated at module import time as ``app``, e.g.::

    uvicorn klefki.app.main:app

On startup the database is migrated and, when
``EXCHANGE_TTL_SECONDS`` is positive, a background task starts
deleting abandoned exchanges.
"""

import asyncio
import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .api.v1.router import router as v1_router
from .core.config import settings
from .core.errors import (
    ExchangeError,
    exchange_error_handler,
    http_exception_handler,
    request_validation_exception_handler,
)
from .core.logging_config import setup_logging
from .services.exchange_service import ExchangeService, get_exchange_service
from .services.reaper import reap_forever


def create_app() -> FastAPI:
    """Create and configure a FastAPI application.

    Returns
    -------
    FastAPI
        A configured FastAPI application instance.
    """
    setup_logging(settings.log_level, settings.log_file or None)
    logger = logging.getLogger(__name__)

    app = FastAPI(title=settings.project_name, version=settings.api_version, debug=settings.debug)

    app.include_router(v1_router, prefix="/api/v1")

    app.add_exception_handler(ExchangeError, exchange_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)

    def current_service() -> ExchangeService:
        # Honour dependency overrides so tests and the reaper share a store.
        provider = app.dependency_overrides.get(get_exchange_service, get_exchange_service)
        return provider()

    reaper_task: Optional[asyncio.Task] = None

    @app.on_event("startup")
    async def startup_event() -> None:
        nonlocal reaper_task
        # Creating the service applies pending migrations.
        current_service()
        if settings.exchange_ttl_seconds > 0:
            reaper_task = asyncio.create_task(
                reap_forever(
                    current_service,
                    settings.exchange_ttl_seconds,
                    settings.reap_interval_seconds,
                )
            )
        else:
            logger.info("Exchange expiry disabled")

    @app.on_event("shutdown")
    async def shutdown_event() -> None:
        if reaper_task is not None:
            reaper_task.cancel()
            results = await asyncio.gather(reaper_task, return_exceptions=True)
            for result in results:
                if isinstance(result, Exception):
                    logger.error("Exchange reaper had stopped: %s", result)

    return app


# Create the application instance at import time so that tools such as
# uvicorn can discover it without calling create_app manually.
app = create_app()
