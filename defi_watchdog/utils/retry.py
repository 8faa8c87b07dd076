"""Opt-in bounded retry for transient provider failures (429 / 5xx)."""

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Tuple, Type

from defi_watchdog.errors import RateLimitError, ServiceUnavailableError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryConfig:
    """
    How many extra attempts a provider call gets, and how long to wait.

    ``max_retries=0`` means a single attempt. Waits grow as
    ``base_delay * exponential_base ** attempt`` up to ``max_delay``; a
    server supplied ``retry_after`` replaces the computed wait.
    """

    max_retries: int = 0
    base_delay: float = 1.0
    max_delay: float = 30.0
    exponential_base: float = 2.0
    jitter: bool = True
    retryable_exceptions: Tuple[Type[Exception], ...] = (RateLimitError, ServiceUnavailableError)

    def __post_init__(self):
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {self.max_retries}")

    @property
    def attempts(self) -> int:
        return self.max_retries + 1

    def calculate_delay(self, attempt: int, retry_after: Optional[float] = None) -> float:
        """Seconds to sleep before retry number ``attempt`` (0-indexed)."""
        if retry_after is None:
            delay = self.base_delay * self.exponential_base ** attempt
        else:
            delay = retry_after
        delay = min(delay, self.max_delay)

        if not self.jitter:
            return delay
        # +/- 25%, never below 100ms
        return max(0.1, delay * random.uniform(0.75, 1.25))


async def retry_async(
    func: Callable[..., Awaitable[Any]],
    *args,
    config: Optional[RetryConfig] = None,
    **kwargs
) -> Any:
    """
    Await ``func(*args, **kwargs)``, retrying retryable upstream errors.

    Non-retryable exceptions propagate on the first attempt. When the
    attempts run out the last retryable error is re-raised unchanged.
    """
    config = config or DEFAULT_RETRY_CONFIG

    attempt = 0
    while True:
        try:
            return await func(*args, **kwargs)
        except config.retryable_exceptions as e:
            if attempt + 1 >= config.attempts:
                if config.max_retries:
                    logger.error(f"Giving up after {config.attempts} attempts: {e}")
                raise
            delay = config.calculate_delay(attempt, getattr(e, "retry_after", None))
            logger.warning(f"Attempt {attempt + 1}/{config.attempts} failed: {e}; retrying in {delay:.2f}s")
            await asyncio.sleep(delay)
            attempt += 1


DEFAULT_RETRY_CONFIG = RetryConfig()
