"""
Rainz Forecast API - FastAPI Application Factory

Endpoints live in rainz/api/routes.py. One shared httpx.AsyncClient is
opened for the lifetime of the app and reused by every provider call.
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from rainz import __version__
from rainz.api.middleware import (
    global_exception_handler,
    rainz_exception_handler,
    validation_exception_handler,
)
from rainz.api.routes import router
from rainz.config import Settings, get_settings
from rainz.errors import RainzError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown."""
    logger.info(f"Starting Rainz Forecast API v{__version__}")

    app.state.http_client = httpx.AsyncClient(follow_redirects=True)
    logger.info("HTTP client initialized")

    yield

    await app.state.http_client.aclose()
    app.state.http_client = None
    logger.info("HTTP client closed")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the API.

    Args:
        settings: explicit settings; defaults to the cached environment settings
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="Rainz Forecast API",
        version=__version__,
        lifespan=lifespan,
    )

    # Handlers receive the injected settings, never the environment directly
    app.dependency_overrides[get_settings] = lambda: settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
    )

    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(RainzError, rainz_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)

    app.include_router(router, tags=["Forecast"])
    return app
