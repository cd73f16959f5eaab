"""Retry policy for transient store failures.

Only infrastructure errors are retried: deadlocks, lock timeouts and dropped
connections surface from Django as OperationalError / InterfaceError.
Validation, security and business failures propagate on the first attempt.

Each attempt must open its own transaction.atomic() so a failed attempt is
fully rolled back before the next one starts.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, TypeVar

from django.db import InterfaceError, OperationalError
from tenacity import (
    RetryCallState,
    RetryError,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
    wait_random,
)

from scanman.conf import scanman_settings
from scanman.exceptions import TransientStoreError

logger = logging.getLogger(__name__)

T = TypeVar("T")

TRANSIENT_ERRORS = (OperationalError, InterfaceError, TransientStoreError)


def is_transient(exc: BaseException) -> bool:
    """True for errors worth retrying."""
    return isinstance(exc, TRANSIENT_ERRORS)


@dataclass(frozen=True)
class RetryPolicy:
    """Fixed attempt cap, fixed base delay, optional jitter."""

    max_attempts: int = 3
    delay_seconds: float = 0.1
    jitter_seconds: float = 0.0

    @classmethod
    def from_settings(cls) -> "RetryPolicy":
        return cls(
            max_attempts=max(1, scanman_settings.RETRY_MAX_ATTEMPTS),
            delay_seconds=scanman_settings.RETRY_DELAY_SECONDS,
            jitter_seconds=scanman_settings.RETRY_JITTER_SECONDS,
        )

    def _wait(self):
        wait = wait_fixed(self.delay_seconds)
        if self.jitter_seconds:
            wait = wait + wait_random(0, self.jitter_seconds)
        return wait

    def run(self, func: Callable[[], T], *, operation: str = "") -> T:
        """
        Call func, retrying transient failures.

        Raises:
            TransientStoreError: when every attempt failed transiently
            Exception: any non-transient error, unchanged, on first occurrence
        """
        attempts = max(1, self.max_attempts)
        label = operation or "Store operation"

        def log_retry(state: RetryCallState) -> None:
            logger.warning(
                "%s hit transient error (attempt %d/%d): %s",
                label,
                state.attempt_number,
                attempts,
                state.outcome.exception(),
            )

        retrying = Retrying(
            stop=stop_after_attempt(attempts),
            wait=self._wait(),
            retry=retry_if_exception_type(TRANSIENT_ERRORS),
            before_sleep=log_retry,
            sleep=time.sleep,
            reraise=False,
        )
        try:
            return retrying(func)
        except RetryError as exc:
            last = exc.last_attempt
            logger.error(
                "%s failed after %d attempts: %s",
                label,
                last.attempt_number,
                last.exception(),
            )
            raise TransientStoreError(operation=operation, attempts=last.attempt_number) from last.exception()
