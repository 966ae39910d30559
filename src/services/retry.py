"""
Bounded retry for external calls.

retry_call() runs an operation up to max_attempts times, recording each
failure, sleeping with exponential backoff between attempts, and raising
RetryExhaustedError carrying the final error once the cap is reached.
Errors flagged `is_retryable = False` end the loop after their own attempt.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, List, Tuple, Type, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar('T')


@dataclass
class AttemptFailure:
    """One failed attempt: its 1-based number and the error it raised."""
    attempt: int
    error: Exception


class RetryExhaustedError(Exception):
    """Raised when no further attempt will be made."""

    def __init__(self, failures: List[AttemptFailure]):
        self.failures = failures
        super().__init__(str(self.last_error))

    @property
    def last_error(self) -> Exception:
        return self.failures[-1].error

    @property
    def attempts(self) -> int:
        return len(self.failures)


@dataclass
class RetryPolicy:
    """
    Attempt cap and backoff schedule.

    Attributes:
        max_attempts: Total attempts, including the first one
        base_delay: Delay after the first failure, in seconds
        max_delay: Upper bound for any single delay
        retry_on: Exception types that count as a failed attempt
    """
    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 8.0
    retry_on: Tuple[Type[Exception], ...] = field(default=(Exception,))

    def delay_for(self, attempt: int) -> float:
        """Backoff before the attempt following `attempt` (1-based)."""
        if self.base_delay <= 0:
            return 0.0
        return min(self.base_delay * (2 ** (attempt - 1)), self.max_delay)


def is_retryable(error: Exception) -> bool:
    """Errors without an is_retryable flag are treated as transient."""
    return getattr(error, 'is_retryable', True)


def retry_call(
    operation: Callable[[], T],
    policy: RetryPolicy,
    description: str = 'operation',
    sleep: Callable[[float], None] = time.sleep
) -> T:
    """
    Call an operation until it succeeds or the attempt cap is reached.

    Args:
        operation: Zero-argument callable to run
        policy: Attempt cap and backoff schedule
        description: Label used in log lines
        sleep: Sleep function (injectable for tests)

    Returns:
        Whatever the first successful call returned

    Raises:
        RetryExhaustedError: After max_attempts failures, or right after a
                             failure flagged not retryable; exposes every
                             AttemptFailure and the last error
        ValueError: If max_attempts is less than 1

    Example:
        >>> retry_call(lambda: "ok", RetryPolicy(max_attempts=3))
        'ok'
    """
    if policy.max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    failures: List[AttemptFailure] = []
    for attempt in range(1, policy.max_attempts + 1):
        try:
            result = operation()
        except policy.retry_on as e:
            failures.append(AttemptFailure(attempt=attempt, error=e))
            logger.warning(
                f"{description} failed (attempt {attempt}/{policy.max_attempts}): {e}"
            )
            if not is_retryable(e):
                logger.error(f"{description} failed with a permanent error, not retrying")
                raise RetryExhaustedError(failures)
            if attempt < policy.max_attempts:
                delay = policy.delay_for(attempt)
                if delay > 0:
                    logger.info(f"Retrying {description} in {delay:.2f}s")
                    sleep(delay)
            continue

        if failures:
            logger.info(f"{description} succeeded on attempt {attempt}/{policy.max_attempts}")
        return result

    raise RetryExhaustedError(failures)
