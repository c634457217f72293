"""Retry utilities for runtime operations with a fixed (optionally growing) delay"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """How many times to attempt an operation and how long to wait in between.

    attempts counts the first try, so attempts=3 means one try plus two retries.
    With backoff_factor=1.0 the delay stays constant.
    """

    attempts: int = 3
    delay: float = 2.0
    backoff_factor: float = 1.0
    max_delay: float = 60.0

    def delay_before(self, attempt: int) -> float:
        """Delay to wait after the given (1-based) failed attempt."""
        return min(self.delay * (self.backoff_factor ** (attempt - 1)), self.max_delay)


def retry_operation(
    operation: Callable[[], T],
    policy: Optional[RetryPolicy] = None,
    operation_name: str = "operation",
) -> T:
    """Run operation until it succeeds or the policy's attempts are used up

    Args:
        operation: Callable to retry
        policy: Retry policy (default: 3 attempts, 2s fixed delay)
        operation_name: Name for logging purposes

    Returns:
        Result of the first successful call

    Raises:
        The last exception raised by operation once all attempts failed
    """
    policy = policy or RetryPolicy()
    last_error = None

    for attempt in range(1, policy.attempts + 1):
        try:
            result = operation()
            if attempt > 1:
                logger.info(f"{operation_name} succeeded on attempt {attempt}")
            return result
        except Exception as e:
            last_error = e

            if attempt >= policy.attempts:
                logger.error(f"{operation_name} failed after {policy.attempts} attempts: {e}")
                break

            delay = policy.delay_before(attempt)
            logger.warning(
                f"{operation_name} attempt {attempt}/{policy.attempts} failed, retrying in {delay:.1f}s..."
            )
            time.sleep(delay)

    raise last_error
