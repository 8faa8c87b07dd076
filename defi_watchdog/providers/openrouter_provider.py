"""OpenRouter provider (OpenAI-compatible chat completions)."""

import asyncio
import logging
import weakref
from typing import Any, Callable, Optional

import openai

from defi_watchdog.config import Settings
from defi_watchdog.errors import UpstreamError
from defi_watchdog.prompt_builder import PromptBuilder
from defi_watchdog.providers.base import CallOptions, CloudProviderBase
from defi_watchdog.utils.provider_errors import handle_openai_error

logger = logging.getLogger(__name__)


class OpenRouterProvider(CloudProviderBase):
    """
    Provider for models served through the OpenRouter API.

    The SDK's connection pool belongs to the event loop it was first used
    on, and the HTTP API runs every request on a fresh loop. So unless a
    client is injected, one ``AsyncOpenAI`` is built per running loop and
    ``aclose()`` closes it before that loop ends.
    """

    provider_name = "OpenRouter"

    def __init__(
        self,
        settings: Settings,
        prompt_builder: Optional[PromptBuilder] = None,
        client: Optional[Any] = None,
        client_factory: Optional[Callable[[], Any]] = None,
    ):
        """
        Initialize OpenRouter provider.

        Args:
            settings: Injected settings carrying api key and base URL
            prompt_builder: Builds the system preamble and user message
            client: Fixed client used on every loop (tests inject a fake)
            client_factory: Builds a client for the running loop; defaults to AsyncOpenAI
        """
        super().__init__(settings, prompt_builder)
        self.openai = openai
        self._fixed_client = client
        self._client_factory = client_factory or self._create_client
        # One client per live event loop; entries vanish with their loop
        self._loop_clients = weakref.WeakKeyDictionary()

        if client is None and client_factory is None:
            self._validate_api_key()

        logger.info(f"Initialized OpenRouter provider: base_url={settings.base_url}")

    def _validate_api_key(self) -> None:
        """Validate API key is present."""
        if not self.settings.api_key:
            raise ValueError("OpenRouter API key required. Set OPENROUTER_API_KEY or pass it in Settings.")

    def _create_client(self) -> openai.AsyncOpenAI:
        return openai.AsyncOpenAI(
            api_key=self.settings.api_key,
            base_url=self.settings.base_url,
            timeout=self.settings.timeout_seconds,
            # Retries are handled by retry_async, bounded by Settings.max_retries
            max_retries=0,
            default_headers={
                "HTTP-Referer": self.settings.referer,
                "X-Title": self.settings.app_title,
            },
        )

    def _client_for_running_loop(self) -> Any:
        if self._fixed_client is not None:
            return self._fixed_client

        loop = asyncio.get_running_loop()
        client = self._loop_clients.get(loop)
        if client is None:
            client = self._client_factory()
            self._loop_clients[loop] = client
        return client

    async def aclose(self) -> None:
        """Close the client built for the running loop, if any."""
        client = self._loop_clients.pop(asyncio.get_running_loop(), None)
        if client is not None:
            await client.close()

    async def _make_generate_request(
        self,
        model_id: str,
        system_prompt: str,
        user_message: str,
        options: CallOptions,
    ) -> str:
        """Make the chat completion request."""
        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_message},
        ]
        client = self._client_for_running_loop()

        try:
            response = await client.chat.completions.create(
                model=model_id,
                messages=messages,
                max_tokens=options.max_tokens,
                temperature=options.temperature,
                top_p=options.top_p,
                # Per-model timeout overrides the client default
                timeout=options.timeout_seconds,
            )
        except Exception as e:
            handle_openai_error(e, self.openai, self.provider_name)

        choices = getattr(response, "choices", None)
        if not choices:
            raise UpstreamError(f"{self.provider_name} response for {model_id} has no choices")
        message = getattr(choices[0], "message", None)
        content = getattr(message, "content", None)
        if not isinstance(content, str):
            raise UpstreamError(f"{self.provider_name} response for {model_id} has no message content")

        usage = getattr(response, "usage", None)
        if usage is not None:
            logger.debug(
                f"OpenRouter API call: model={model_id}, "
                f"prompt_tokens={usage.prompt_tokens}, "
                f"completion_tokens={usage.completion_tokens}, "
                f"total_tokens={usage.total_tokens}"
            )

        return content
