"""Model caller interface shared by all providers."""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

from defi_watchdog.config import Settings
from defi_watchdog.data_models import ModelDescriptor
from defi_watchdog.errors import ModelTimeoutError
from defi_watchdog.prompt_builder import PromptBuilder
from defi_watchdog.utils.retry import RetryConfig, retry_async

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CallOptions:
    """Per-call generation options."""
    timeout_seconds: float = 120.0
    max_tokens: int = 4000
    temperature: float = 0.1
    top_p: float = 0.9

    @classmethod
    def from_settings(cls, settings: Settings, model: Optional[ModelDescriptor] = None) -> "CallOptions":
        timeout = settings.timeout_seconds
        if model is not None and model.timeout_seconds:
            timeout = model.timeout_seconds
        return cls(
            timeout_seconds=timeout,
            max_tokens=settings.max_tokens,
            temperature=settings.temperature,
            top_p=settings.top_p,
        )


class ModelCaller(ABC):
    """Capability that sends one prompt + contract to one model and returns raw text."""

    @abstractmethod
    async def invoke(
        self,
        model: ModelDescriptor,
        prompt: str,
        contract_source: str,
        options: CallOptions,
    ) -> str:
        """
        Call the model once.

        Raises:
            ModelTimeoutError: The call exceeded options.timeout_seconds
            UpstreamError: Non-2xx response or malformed envelope
        """
        pass

    async def aclose(self) -> None:
        """Release resources bound to the running event loop."""
        pass


class CloudProviderBase(ModelCaller):
    """
    Base class for HTTP chat-completion providers.

    Provides common functionality for:
    - Timeout enforcement
    - Optional bounded retry
    - Message assembly (system preamble + prompt + fenced source)

    Subclasses must implement:
    - _validate_api_key(): Fail fast on missing credentials
    - _create_client(): Build a client for the running event loop
    - _make_generate_request(): Make the actual API call
    """

    provider_name: str = "CloudProvider"

    def __init__(self, settings: Settings, prompt_builder: Optional[PromptBuilder] = None):
        """
        Initialize cloud provider base.

        Args:
            settings: Injected provider settings
            prompt_builder: Builds the system preamble and user message
        """
        self.settings = settings
        self.prompt_builder = prompt_builder or PromptBuilder()
        self.retry_config = RetryConfig(max_retries=settings.max_retries)

    @abstractmethod
    def _validate_api_key(self) -> None:
        """Validate API key is present. Raises ValueError if missing."""
        pass

    @abstractmethod
    def _create_client(self) -> Any:
        """Build a provider client bound to the running event loop."""
        pass

    @abstractmethod
    async def _make_generate_request(
        self,
        model_id: str,
        system_prompt: str,
        user_message: str,
        options: CallOptions,
    ) -> str:
        """
        Make the actual API request for text generation.

        This method should handle all provider-specific API interactions
        and error conversion.

        Returns:
            Generated text content
        """
        pass

    async def invoke(
        self,
        model: ModelDescriptor,
        prompt: str,
        contract_source: str,
        options: CallOptions,
    ) -> str:
        system_prompt = self.prompt_builder.build_system_prompt(model)
        user_message = self.prompt_builder.build_user_message(prompt, contract_source)

        async def _request():
            return await self._make_generate_request(
                model_id=model.id,
                system_prompt=system_prompt,
                user_message=user_message,
                options=options,
            )

        try:
            return await asyncio.wait_for(
                retry_async(_request, config=self.retry_config),
                timeout=options.timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning(f"{self.provider_name} call to {model.id} timed out after {options.timeout_seconds}s")
            raise ModelTimeoutError(model.name, options.timeout_seconds)
