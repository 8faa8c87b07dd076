"""Error conversion for the OpenAI-compatible SDK."""

import logging
from typing import Any, NoReturn, Optional

from defi_watchdog.errors import RateLimitError, ServiceUnavailableError, UpstreamError

logger = logging.getLogger(__name__)


def extract_retry_after(error: Any) -> Optional[float]:
    """
    Extract retry-after value from an error's response headers.

    Args:
        error: Exception with potential response.headers.retry-after

    Returns:
        Float seconds to wait, or None if not available
    """
    response = getattr(error, "response", None)
    headers = getattr(response, "headers", None) if response is not None else None
    if headers:
        retry_after_header = headers.get("retry-after")
        if retry_after_header:
            try:
                return float(retry_after_header)
            except ValueError:
                pass
    return getattr(error, "retry_after", None)


def handle_openai_error(error: Exception, openai_module: Any, provider_name: str = "OpenRouter") -> NoReturn:
    """
    Convert OpenAI SDK errors to the upstream error taxonomy.

    Args:
        error: The caught exception
        openai_module: The openai module (for exception type checking)
        provider_name: Name for logging

    Raises:
        RateLimitError: HTTP 429
        ServiceUnavailableError: HTTP 5xx, connection failures and SDK timeouts
        UpstreamError: Any other non-2xx status
        The original error: For non-SDK errors
    """
    retry_after = extract_retry_after(error)

    if isinstance(error, openai_module.RateLimitError):
        logger.warning(f"{provider_name} rate limit exceeded: {error}")
        raise RateLimitError(
            f"{provider_name} rate limit: {error}", status_code=429, retry_after=retry_after
        ) from error

    if isinstance(error, openai_module.APIConnectionError):
        # APITimeoutError is a subclass
        logger.warning(f"{provider_name} connection/timeout error: {error}")
        raise ServiceUnavailableError(f"{provider_name} service unavailable: {error}") from error

    if isinstance(error, openai_module.APIStatusError):
        status_code = error.status_code
        if status_code >= 500:
            logger.warning(f"{provider_name} service unavailable (status {status_code}): {error}")
            raise ServiceUnavailableError(
                f"{provider_name} service unavailable: {error}",
                status_code=status_code,
                retry_after=retry_after,
            ) from error
        logger.error(f"{provider_name} API status error: {error}")
        raise UpstreamError(f"{provider_name} API error: {error}", status_code=status_code) from error

    if isinstance(error, openai_module.APIError):
        logger.error(f"{provider_name} API error: {error}")
        raise UpstreamError(f"{provider_name} API error: {error}") from error

    raise error
