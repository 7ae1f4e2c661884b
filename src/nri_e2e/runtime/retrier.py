"""Fixed-delay retry for assertion batches.

Telemetry takes a roughly constant time to be ingested, so assertions are
expected to fail at first and converge within the retry window. The delay
is fixed, not exponential.
"""

from __future__ import annotations

import time
from typing import Callable

from ..errors import E2EError, RetriesExhaustedError
from ..shared.logging import get_logger

logger = get_logger(__name__)


def retry(
    max_attempts: int,
    delay: float,
    attempt: Callable[[], list[E2EError]],
    sleep: Callable[[float], None] = time.sleep,
) -> RetriesExhaustedError | None:
    """Run attempt until it returns no errors or attempts run out.

    A batch in which no error is retryable ends the loop at once.

    Args:
        max_attempts: Maximum number of attempts (at least one always happens)
        delay: Seconds to wait between attempts
        attempt: Callable returning the errors of one evaluation
        sleep: Sleep function, injectable for tests

    Returns:
        None on success, otherwise a RetriesExhaustedError holding the
        errors of the last attempt only.
    """
    attempts = max(max_attempts, 1)
    errors: list[E2EError] = []

    for current in range(1, attempts + 1):
        errors = attempt()
        if not errors:
            logger.debug("attempt succeeded", attempt=current, max_attempts=attempts)
            return None

        logger.info(
            "attempt failed",
            attempt=current,
            max_attempts=attempts,
            errors=[str(e) for e in errors],
        )

        if not any(e.retryable for e in errors):
            logger.info("errors are not retryable", attempt=current)
            return RetriesExhaustedError(
                message="assertions failed with non-retryable errors",
                errors=list(errors),
                attempts=current,
            )

        if current < attempts:
            logger.debug("retrying", delay_seconds=delay)
            sleep(delay)

    return RetriesExhaustedError(errors=list(errors), attempts=attempts)
