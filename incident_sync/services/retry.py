"""Retry helpers shared by the HTTP clients"""

import time
from typing import Any, Callable


def should_retry(exc: Exception) -> bool:
    """Retry predicate for transient HTTP failures."""
    rc = getattr(exc, "status_code", None)
    return rc in (429, 500, 502, 503, 504)


def with_retries(fn: Callable[[], Any], *, max_attempts: int = 3, base_delay_s: float = 0.5):
    """Run callable with small exponential backoff on transient errors."""
    attempt = 1
    while True:
        try:
            return fn()
        except Exception as e:
            if attempt >= max_attempts or not should_retry(e):
                raise
            time.sleep(base_delay_s * (2 ** (attempt - 1)))
            attempt += 1
