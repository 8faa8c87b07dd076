"""Entry point wiring prompt, fan-out, consensus, scoring and reporting."""

import logging
import time
import uuid
from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional, Sequence

from defi_watchdog.config import Settings
from defi_watchdog.config_loader import ConfigLoader
from defi_watchdog.consensus.engine import ConsensusEngine
from defi_watchdog.data_models import (
    AnalysisMode,
    AnalysisOptions,
    AnalysisReport,
    AnalysisRequest,
    ModelDescriptor,
)
from defi_watchdog.errors import AllModelsFailedError, InvalidInputError
from defi_watchdog.events import EventBus, EventEmitter
from defi_watchdog.pipeline.orchestrator import FanOutOrchestrator
from defi_watchdog.providers.base import ModelCaller
from defi_watchdog.reporting.assembler import ReportAssembler
from defi_watchdog.scoring import score

logger = logging.getLogger(__name__)


class ReportSink(ABC):
    """Persistence capability that takes ownership of a finished report."""

    @abstractmethod
    def save(self, report: AnalysisReport) -> str:
        """Store the report and return its identifier."""
        pass


def build_request(
    contract_source: str,
    contract_name: str,
    mode: str = "normal",
    custom_prompt: Optional[str] = None,
) -> AnalysisRequest:
    """
    Validate user input into an AnalysisRequest.

    Raises:
        InvalidInputError: Empty source or name, or unknown mode
    """
    if not isinstance(contract_source, str) or not contract_source.strip():
        raise InvalidInputError("Contract source code is required")
    if not isinstance(contract_name, str) or not contract_name.strip():
        raise InvalidInputError("Contract name is required")
    try:
        analysis_mode = AnalysisMode(mode or AnalysisMode.NORMAL.value)
    except ValueError:
        valid = ", ".join(m.value for m in AnalysisMode)
        raise InvalidInputError(f"Unknown analysis mode '{mode}' (expected one of: {valid})")

    return AnalysisRequest(
        contract_source=contract_source,
        contract_name=contract_name.strip(),
        options=AnalysisOptions(mode=analysis_mode, custom_prompt=custom_prompt or None),
    )


class AnalysisService:
    """Runs complete multi-model analyses."""

    def __init__(
        self,
        caller: ModelCaller,
        settings: Optional[Settings] = None,
        models: Optional[Sequence[ModelDescriptor]] = None,
        sink: Optional[ReportSink] = None,
        event_bus: Optional[EventBus] = None,
        orchestrator: Optional[FanOutOrchestrator] = None,
        consensus_engine: Optional[ConsensusEngine] = None,
        assembler: Optional[ReportAssembler] = None,
    ):
        self.caller = caller
        self.settings = settings or Settings()
        self.models: List[ModelDescriptor] = list(models) if models is not None else ConfigLoader.load_models()
        self.sink = sink
        self.event_bus = event_bus
        self.orchestrator = orchestrator or FanOutOrchestrator(caller, settings=self.settings)
        self.consensus_engine = consensus_engine or ConsensusEngine()
        self.assembler = assembler or ReportAssembler()

    async def run_analysis(
        self,
        contract_source: str,
        contract_name: str,
        mode: str = "normal",
        custom_prompt: Optional[str] = None,
        models: Optional[Sequence[ModelDescriptor]] = None,
    ) -> AnalysisReport:
        """
        Analyse one contract with every configured model.

        Args:
            contract_source: Solidity source code
            contract_name: Contract name used in prompts and the report
            mode: normal, aggressive or focused
            custom_prompt: Replaces the built-in specialized prompts
            models: Overrides the configured model roster for this run

        Returns:
            The complete AnalysisReport (already handed to the sink, if any)

        Raises:
            InvalidInputError: Bad input; no model is called
            AllModelsFailedError: Every model failed; no report is produced
        """
        request = build_request(contract_source, contract_name, mode, custom_prompt)
        roster = list(models) if models is not None else self.models
        if not roster:
            raise InvalidInputError("At least one model must be configured")

        analysis_id = uuid.uuid4().hex
        emitter = EventEmitter(analysis_id, self.event_bus)
        started_at = datetime.utcnow()
        started = time.perf_counter()

        logger.info(
            f"Starting analysis {analysis_id} of {request.contract_name} "
            f"with {len(roster)} models (mode={request.options.mode.value})"
        )
        emitter.analysis_started(request.contract_name, len(roster), request.options.mode.value)

        try:
            results = await self.orchestrator.run(request, roster, emitter=emitter)
        except AllModelsFailedError as e:
            logger.error(f"Analysis {analysis_id} failed: {e}")
            emitter.analysis_failed(str(e))
            raise

        consensus = self.consensus_engine.reconcile(results)
        emitter.consensus_completed(
            consensus.total_findings, consensus.verified_findings, consensus.duplicates_removed
        )

        scores = score(consensus.findings, consensus.gas_optimizations)
        report = self.assembler.assemble(
            consensus,
            scores,
            results,
            request.contract_name,
            models=roster,
            report_id=analysis_id,
            started_at=started_at,
        )

        if self.sink is not None:
            self.sink.save(report)

        duration_ms = int((time.perf_counter() - started) * 1000)
        emitter.analysis_completed(report.report_id, scores.overall, duration_ms)
        logger.info(f"Analysis {analysis_id} completed in {duration_ms}ms")
        return report

    async def aclose(self) -> None:
        """Release the caller's per-loop resources; call before the event loop ends."""
        await self.caller.aclose()


async def run_analysis(
    contract_source: str,
    contract_name: str,
    mode: str = "normal",
    custom_prompt: Optional[str] = None,
    models: Optional[Sequence[ModelDescriptor]] = None,
    caller: Optional[ModelCaller] = None,
    settings: Optional[Settings] = None,
    sink: Optional[ReportSink] = None,
) -> AnalysisReport:
    """One-shot analysis; builds an OpenRouter caller from settings when none is given."""
    settings = settings or Settings.from_env()
    if caller is None:
        from defi_watchdog.providers.openrouter_provider import OpenRouterProvider
        caller = OpenRouterProvider(settings)
    service = AnalysisService(caller, settings=settings, models=models, sink=sink)
    try:
        return await service.run_analysis(contract_source, contract_name, mode, custom_prompt)
    finally:
        await service.aclose()
