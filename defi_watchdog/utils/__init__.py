"""Utility modules for DeFi Watchdog.

This package contains shared utilities:
- retry: Bounded retry for provider calls
- provider_errors: SDK error conversion for the model provider
"""

from defi_watchdog.utils.retry import (
    DEFAULT_RETRY_CONFIG,
    RetryConfig,
    retry_async,
)
from defi_watchdog.utils.provider_errors import (
    extract_retry_after,
    handle_openai_error,
)

__all__ = [
    # retry
    "DEFAULT_RETRY_CONFIG",
    "RetryConfig",
    "retry_async",
    # provider_errors
    "extract_retry_after",
    "handle_openai_error",
]
