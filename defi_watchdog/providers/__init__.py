"""Model caller implementations."""

from defi_watchdog.providers.base import CallOptions, CloudProviderBase, ModelCaller
from defi_watchdog.providers.openrouter_provider import OpenRouterProvider

__all__ = [
    "CallOptions",
    "CloudProviderBase",
    "ModelCaller",
    "OpenRouterProvider",
]
