"""
Provider fetch guard for Rainz.

Every outbound weather call runs through guarded_fetch(): a per-provider
timeout, optional retries with exponential backoff, and error categorisation
for the logs. A failed provider yields None and is simply left out of the
source list; it never fails the whole request.

Default contract: short timeout, NO automatic retry (stale data is fine,
the user can refresh).
"""

import asyncio
import json
import logging
import random
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Tuple

import httpx

logger = logging.getLogger(__name__)


class ErrorType(Enum):
    """Categories of provider failures."""
    TIMEOUT = "timeout"
    RATE_LIMIT = "rate_limit"
    API_ERROR = "api_error"
    PARSE_ERROR = "parse_error"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class RetryConfig:
    timeout_seconds: float = 8.0
    max_retries: int = 0
    base_delay_seconds: float = 0.5
    max_delay_seconds: float = 3.0
    jitter: bool = True

    # 4xx other than 408/429 will not get better on retry
    non_retryable_status_codes: tuple = (400, 401, 403, 404, 422)


def categorize_error(exception: BaseException) -> Tuple[ErrorType, str]:
    """Map an exception to an ErrorType and a short message for the logs."""
    error_msg = str(exception)[:200]

    if isinstance(exception, (httpx.TimeoutException, asyncio.TimeoutError)):
        return ErrorType.TIMEOUT, f"Timeout: {error_msg or 'no response'}"

    if isinstance(exception, httpx.HTTPStatusError):
        status = exception.response.status_code
        if status in (429, 503):
            return ErrorType.RATE_LIMIT, f"HTTP {status} (rate limited or quota)"
        return ErrorType.API_ERROR, f"HTTP {status}"

    if isinstance(exception, httpx.RequestError):
        return ErrorType.API_ERROR, f"Request error: {error_msg}"

    if isinstance(exception, (json.JSONDecodeError, KeyError, ValueError, TypeError, IndexError)):
        return ErrorType.PARSE_ERROR, f"Parse error: {error_msg}"

    return ErrorType.UNKNOWN, error_msg


def is_retryable(exception: BaseException, config: RetryConfig) -> bool:
    if isinstance(exception, httpx.HTTPStatusError):
        return exception.response.status_code not in config.non_retryable_status_codes
    error_type, _ = categorize_error(exception)
    return error_type in (ErrorType.TIMEOUT, ErrorType.API_ERROR, ErrorType.RATE_LIMIT)


def backoff_delay(attempt: int, config: RetryConfig) -> float:
    """Exponential delay for retry number `attempt` (0-indexed), capped, with up to 25% jitter."""
    delay = min(config.base_delay_seconds * (2 ** attempt), config.max_delay_seconds)
    if config.jitter:
        delay += delay * 0.25 * random.random()
    return delay


async def guarded_fetch(
    provider_name: str,
    fetch_func: Callable[[], Awaitable[Any]],
    config: Optional[RetryConfig] = None,
) -> Optional[Any]:
    """
    Run one provider fetch under a timeout.

    Args:
        provider_name: Name for logging
        fetch_func: Zero-argument coroutine factory
        config: Timeout/retry settings (defaults: 8s, no retry)

    Returns:
        The fetch result, or None if every attempt failed
    """
    config = config or RetryConfig()
    start = time.monotonic()

    for attempt in range(config.max_retries + 1):
        if attempt > 0:
            delay = backoff_delay(attempt - 1, config)
            logger.info(f"[{provider_name}] Retry {attempt}/{config.max_retries} after {delay:.1f}s")
            await asyncio.sleep(delay)

        try:
            result = await asyncio.wait_for(fetch_func(), timeout=config.timeout_seconds)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            error_type, error_msg = categorize_error(e)
            logger.warning(f"[{provider_name}] Attempt {attempt + 1} failed: "
                           f"{error_type.value} - {error_msg}")
            if not is_retryable(e, config):
                break
            continue

        logger.info(f"[{provider_name}] OK ({time.monotonic() - start:.2f}s)")
        return result

    logger.error(f"[{provider_name}] Giving up after {time.monotonic() - start:.2f}s, "
                 f"provider omitted")
    return None
