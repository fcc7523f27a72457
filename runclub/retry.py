from __future__ import annotations

import logging
import time
from typing import Callable, TypeVar

from runclub.errors import StorageError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def with_retry(
    operation: Callable[[], T],
    *,
    attempts: int = 3,
    base_delay: float = 1.0,
    description: str = "storage call",
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """
    Run ``operation`` and retry retryable StorageErrors with exponential backoff.

    The delay before retry ``n`` is ``base_delay * 2 ** (n - 1)``. Errors that
    are not retryable, and the error from the final attempt, are re-raised.
    """
    attempts = max(1, attempts)
    for attempt in range(1, attempts + 1):
        try:
            return operation()
        except StorageError as exc:
            if not exc.retryable or attempt == attempts:
                raise
            delay = base_delay * (2 ** (attempt - 1))
            logger.warning(
                "%s failed on attempt %d/%d (%s); retrying in %.1fs",
                description,
                attempt,
                attempts,
                exc.code,
                delay,
            )
            sleep(delay)
    raise AssertionError("unreachable")
