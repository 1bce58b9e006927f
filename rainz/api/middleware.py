"""Exception handlers for the Rainz API.

Provides:
- 400 envelope for request validation failures
- RainzError mapping to its status code and public message
- Global exception handler with sanitized responses
"""
import logging

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from rainz.errors import NoForecastDataError, ProviderError, RainzError

logger = logging.getLogger(__name__)

INVALID_INPUT_MESSAGE = "Invalid input parameters"


def _validation_details(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return "; ".join(parts)


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Reject malformed bodies before any provider is called."""
    details = _validation_details(exc)
    logger.warning(f"Invalid request on {request.url.path}: {details}")
    return JSONResponse(
        status_code=400,
        content={"error": INVALID_INPUT_MESSAGE, "details": details},
    )


async def rainz_exception_handler(request: Request, exc: RainzError):
    """Typed core errors answer with their own status and public message."""
    logger.error(f"{type(exc).__name__} on {request.url.path}: {exc}")
    content = {"error": exc.public_message}
    if isinstance(exc, (NoForecastDataError, ProviderError)):
        content["details"] = str(exc)
    return JSONResponse(status_code=exc.status_code, content=content)


async def global_exception_handler(request: Request, exc: Exception):
    """Catch-all exception handler - never leak internal details."""
    logger.exception(f"Unhandled error on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content={"error": RainzError.public_message},
    )
