"""Fan-out/fan-in execution of one analysis across several models."""

import asyncio
import logging
import time
from typing import List, Optional, Sequence

from defi_watchdog.config import Settings
from defi_watchdog.data_models import AnalysisRequest, ModelDescriptor, ModelInvocationResult
from defi_watchdog.errors import AllModelsFailedError, ModelTimeoutError
from defi_watchdog.events import EventEmitter
from defi_watchdog.models.response_parser import ResponseParser
from defi_watchdog.prompt_builder import PromptBuilder
from defi_watchdog.providers.base import CallOptions, ModelCaller

logger = logging.getLogger(__name__)


def _describe_error(error: BaseException) -> str:
    message = str(error)
    return message if message else type(error).__name__


class FanOutOrchestrator:
    """
    Runs prompt → call → parse for every model concurrently.

    Each model task catches its own failure, so one model timing out or
    erroring never cancels its siblings. The run waits for every task to
    settle before returning.
    """

    def __init__(
        self,
        caller: ModelCaller,
        settings: Optional[Settings] = None,
        prompt_builder: Optional[PromptBuilder] = None,
        parser: Optional[ResponseParser] = None,
        semaphore: Optional[asyncio.Semaphore] = None,
    ):
        self.caller = caller
        self.settings = settings or Settings()
        self.prompt_builder = prompt_builder or PromptBuilder()
        self.parser = parser or ResponseParser()
        self._semaphore = semaphore

    async def run(
        self,
        request: AnalysisRequest,
        models: Sequence[ModelDescriptor],
        emitter: Optional[EventEmitter] = None,
    ) -> List[ModelInvocationResult]:
        """
        Execute all models and collect their results.

        Args:
            request: The contract submission
            models: Models to query, in configuration order
            emitter: Optional progress event emitter

        Returns:
            One result per model, in the order of ``models``

        Raises:
            AllModelsFailedError: If no model succeeded
        """
        semaphore = self._semaphore
        if semaphore is None and self.settings.max_concurrency > 0:
            semaphore = asyncio.Semaphore(self.settings.max_concurrency)

        tasks = [self._run_single_model(request, model, semaphore, emitter) for model in models]
        results = await asyncio.gather(*tasks)

        successes = sum(1 for r in results if r.success)
        logger.info(f"Fan-out finished for {request.contract_name}: {successes}/{len(results)} models succeeded")

        if successes == 0:
            raise AllModelsFailedError(results)
        return list(results)

    async def _run_single_model(
        self,
        request: AnalysisRequest,
        model: ModelDescriptor,
        semaphore: Optional[asyncio.Semaphore],
        emitter: Optional[EventEmitter],
    ) -> ModelInvocationResult:
        """Run a single model with timeout; never raises for model failures."""
        options = CallOptions.from_settings(self.settings, model)
        prompt = self.prompt_builder.build_prompt(
            model,
            request.contract_name,
            mode=request.options.mode,
            custom_prompt=request.options.custom_prompt,
        )

        if emitter:
            emitter.model_started(model.id, model.name, model.focus)
        logger.info(f"Starting {model.name} ({model.id}) for {request.contract_name}")
        started = time.perf_counter()

        try:
            if semaphore is not None:
                async with semaphore:
                    raw_text = await self._invoke(model, prompt, request.contract_source, options)
            else:
                raw_text = await self._invoke(model, prompt, request.contract_source, options)
            # Inside the guard: degraded-parse warnings can be escalated to errors
            parsed = self.parser.parse(raw_text, model.name)
        except Exception as e:
            elapsed_ms = int((time.perf_counter() - started) * 1000)
            error = _describe_error(e)
            logger.warning(f"Model {model.name} failed after {elapsed_ms}ms: {error}")
            if emitter:
                emitter.model_failed(model.id, error, elapsed_ms)
            return ModelInvocationResult(model=model, success=False, elapsed_ms=elapsed_ms, error=error)

        elapsed_ms = int((time.perf_counter() - started) * 1000)
        logger.info(
            f"Model {model.name} completed in {elapsed_ms}ms: "
            f"{len(parsed.findings)} findings via {parsed.parse_method}"
        )
        if emitter:
            emitter.model_completed(model.id, len(parsed.findings), elapsed_ms, parsed.parse_method)

        return ModelInvocationResult(
            model=model,
            success=True,
            elapsed_ms=elapsed_ms,
            raw_text=raw_text,
            parsed=parsed,
        )

    async def _invoke(self, model: ModelDescriptor, prompt: str, contract_source: str, options: CallOptions) -> str:
        # Backstop for callers that do not enforce the timeout themselves
        try:
            return await asyncio.wait_for(
                self.caller.invoke(model, prompt, contract_source, options),
                timeout=options.timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            if isinstance(e, ModelTimeoutError):
                raise
            raise ModelTimeoutError(model.name, options.timeout_seconds)
