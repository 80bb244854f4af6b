"""
Retry policy and the single driver that applies it.

A policy says how many attempts to make, how long to wait between them and
which errors are worth retrying. ``run_with_retry`` is the only place that
loops; tiers of the response chain just pick a policy.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional, TypeVar

from procurement_agent.exceptions import ProviderError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def retry_provider_errors(error: BaseException) -> bool:
    return isinstance(error, ProviderError)


def retry_any_error(error: BaseException) -> bool:
    return isinstance(error, Exception)


@dataclass(frozen=True)
class RetryPolicy:
    """How to retry a failing call."""

    max_attempts: int = 1
    backoff: float = 0.0
    backoff_multiplier: float = 2.0
    max_backoff: float = 10.0
    should_retry: Callable[[BaseException], bool] = field(default=retry_provider_errors)

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

    def delay_for(self, attempt: int) -> float:
        """Delay after the given 0-based attempt."""
        if self.backoff <= 0:
            return 0.0
        return min(self.backoff * (self.backoff_multiplier ** attempt), self.max_backoff)


async def run_with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    on_failure: Optional[Callable[[BaseException], bool]] = None,
    name: str = "call",
) -> T:
    """
    Run an async operation under a retry policy.

    Args:
        operation: Zero-argument factory returning a fresh awaitable per attempt
        policy: Attempts, backoff and the retryable-error classifier
        on_failure: Called with each retryable error; returning False stops
            further attempts (e.g. no credential left to rotate to)
        name: Label used in log messages

    Returns:
        The operation's result

    Raises:
        The last error once attempts are exhausted, or immediately for errors
        the policy does not retry
    """
    last_error: Optional[BaseException] = None

    for attempt in range(policy.max_attempts):
        try:
            return await operation()
        except Exception as e:
            if not policy.should_retry(e):
                raise
            last_error = e
            logger.warning(
                f"{name} failed (attempt {attempt + 1}/{policy.max_attempts}): "
                f"{type(e).__name__}: {e}"
            )

            if on_failure is not None and not on_failure(e):
                break
            if attempt == policy.max_attempts - 1:
                break

            delay = policy.delay_for(attempt)
            if delay:
                await asyncio.sleep(delay)

    raise last_error
