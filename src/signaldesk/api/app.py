"""
FastAPI application factory for the Signal Desk API.
"""

from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from loguru import logger

from signaldesk.api.exceptions import (
    generic_exception_handler,
    signaldesk_exception_handler,
    validation_exception_handler,
)
from signaldesk.api.middleware import LoggingMiddleware
from signaldesk.api.routes import api_router
from signaldesk.config import Settings, get_settings
from signaldesk.errors import SignalDeskError
from signaldesk.storage.database import get_engine

VERSION = "0.1.0"


def create_app(settings: Settings | None = None, http_client: httpx.Client | None = None) -> FastAPI:
    """Build the application.

    ``http_client`` is shared by every outbound dispatch; when omitted one is
    opened for the lifetime of the app.
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Starting Signal Desk API (store: {settings.db_path})")
        get_engine(settings.db_path)
        owned = None
        if app.state.http_client is None:
            owned = httpx.Client(headers={"Accept": "application/json"})
            app.state.http_client = owned
        yield
        if owned is not None:
            owned.close()
            app.state.http_client = None
        logger.info("Shutting down Signal Desk API")

    app = FastAPI(
        title="Signal Desk API",
        description="Signal capture, review and insight publishing backed by webhook workflows",
        version=VERSION,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.http_client = http_client

    app.add_middleware(LoggingMiddleware)

    app.add_exception_handler(SignalDeskError, signaldesk_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    app.include_router(api_router, prefix="/api")

    @app.get("/health")
    def health_check():
        return {"status": "healthy", "version": VERSION}

    return app
