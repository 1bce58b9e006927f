"""
Typed errors raised by the Rainz forecast core.

Each error carries the HTTP status the API boundary should answer with and a
public message that is safe to show to end users. Provider-specific text and
stack traces stay in the logs.
"""

from typing import Optional


class RainzError(Exception):
    """Base class for all forecast-core errors."""

    status_code = 500
    public_message = "Service temporarily unavailable. Please try again."

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.public_message)


class EmptySourceSetError(RainzError):
    """No weather source is available to aggregate."""

    public_message = "Service temporarily unavailable. Please try again."

    def __init__(self, operation: str = "aggregate"):
        self.operation = operation
        super().__init__(f"{operation} requires at least one weather source")


class NoForecastDataError(RainzError):
    """An ensemble payload has no member runs, no base forecast, or no value in its first hour."""

    public_message = "Failed to fetch ensemble forecast"

    def __init__(self, variable: str):
        self.variable = variable
        super().__init__(f"No ensemble members or base forecast for '{variable}'")


class ProviderError(RainzError):
    """An upstream weather API answered with an error or unusable payload."""

    public_message = "Failed to fetch ensemble forecast"

    def __init__(self, provider: str, detail: str):
        self.provider = provider
        self.detail = detail
        super().__init__(f"{provider}: {detail}")


class RefinementUnavailableError(RainzError):
    """Every LLM backend failed; callers fall back to the raw aggregated source."""

    public_message = "Weather analysis temporarily unavailable"
