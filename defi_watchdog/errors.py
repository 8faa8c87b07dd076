"""Exception taxonomy for the analysis pipeline."""

from typing import Any, List, Optional


class WatchdogError(Exception):
    """Base class for all DeFi Watchdog errors."""


class InvalidInputError(WatchdogError, ValueError):
    """Raised when the contract source or name is empty."""


class ModelTimeoutError(WatchdogError, TimeoutError):
    """Raised when a single model call exceeds its timeout."""

    def __init__(self, model_name: str, timeout_seconds: float):
        super().__init__(f"{model_name} timed out after {timeout_seconds}s")
        self.model_name = model_name
        self.timeout_seconds = timeout_seconds


class UpstreamError(WatchdogError):
    """Non-2xx response or malformed envelope from the model provider."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        retry_after: Optional[float] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.retry_after = retry_after

    def __str__(self) -> str:
        if self.status_code is not None:
            return f"[{self.status_code}] {self.message}"
        return self.message


class RateLimitError(UpstreamError):
    """HTTP 429 from the provider."""


class ServiceUnavailableError(UpstreamError):
    """HTTP 5xx or connection failure from the provider."""


class ParseDegradedWarning(UserWarning):
    """A model response could only be parsed by a degraded strategy."""


class AllModelsFailedError(WatchdogError):
    """
    Raised when no model produced a usable result.

    Attributes:
        results: Every ModelInvocationResult of the run (all failures)
    """

    def __init__(self, results: List[Any]):
        self.results = list(results)
        names = ", ".join(r.model.name for r in self.results) or "none"
        super().__init__(f"All AI models failed to analyze the contract ({names})")

    @property
    def errors(self) -> List[dict]:
        """Per-model error details."""
        return [
            {"model": r.model.name, "modelId": r.model.id, "error": r.error}
            for r in self.results
        ]
