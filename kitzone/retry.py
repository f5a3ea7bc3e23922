"""Retry helper for the few HTTPS downloads made during provisioning.

Connection problems, timeouts and 5xx responses are retried with
exponential backoff. 4xx responses are returned to the caller untouched.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Tuple, Type

import httpx

log = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES = 3
DEFAULT_BACKOFF_BASE = 1.0  # seconds
DEFAULT_BACKOFF_MAX = 30.0

RETRYABLE_EXCEPTIONS: Tuple[Type[Exception], ...] = (
    httpx.ConnectError,
    httpx.ConnectTimeout,
    httpx.ReadTimeout,
    httpx.WriteTimeout,
    httpx.PoolTimeout,
    httpx.RemoteProtocolError,
)

RETRYABLE_STATUS_CODES = {500, 502, 503, 504, 520, 521, 522, 523, 524}


def retry_request(
    func: Callable[..., httpx.Response],
    *args: Any,
    max_retries: int = DEFAULT_MAX_RETRIES,
    backoff_base: float = DEFAULT_BACKOFF_BASE,
    backoff_max: float = DEFAULT_BACKOFF_MAX,
    sleep: Callable[[float], None] = time.sleep,
    **kwargs: Any,
) -> httpx.Response:
    """Call ``func`` until it returns a non-5xx response or retries run out.

    Usage::

        response = retry_request(client.get, "https://download.docker.com/linux/ubuntu/gpg")
    """
    for attempt in range(max_retries + 1):
        try:
            response = func(*args, **kwargs)
        except RETRYABLE_EXCEPTIONS as exc:
            if attempt >= max_retries:
                raise
            delay = _compute_delay(attempt, backoff_base, backoff_max)
            log.debug(
                "Retrying request (%s, attempt %d/%d, backoff %.1fs)",
                exc.__class__.__name__,
                attempt + 1,
                max_retries,
                delay,
            )
            sleep(delay)
            continue

        if response.status_code in RETRYABLE_STATUS_CODES and attempt < max_retries:
            delay = _compute_delay(attempt, backoff_base, backoff_max)
            log.debug(
                "Retrying request (HTTP %s, attempt %d/%d, backoff %.1fs)",
                response.status_code,
                attempt + 1,
                max_retries,
                delay,
            )
            sleep(delay)
            continue

        return response

    # the final attempt either returns or raises
    raise RuntimeError("Retry logic exhausted")


def _compute_delay(attempt: int, base: float, cap: float) -> float:
    """Exponential backoff: base * 2^attempt, capped at cap."""
    return min(base * (2 ** attempt), cap)
