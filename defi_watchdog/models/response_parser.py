"""Cascade dispatcher turning raw model text into findings."""

import logging
import warnings
from typing import List, Optional, Sequence

from defi_watchdog.data_models import ParserResult
from defi_watchdog.errors import ParseDegradedWarning
from defi_watchdog.models.parser_factory import build_cascade
from defi_watchdog.models.parsers import DiagnosticStrategy, ParseStrategy

logger = logging.getLogger(__name__)


class ResponseParser:
    """
    Tries each parse strategy in order; the first that returns a result wins.

    Never raises: a strategy that blows up is logged and skipped, and the
    diagnostic strategy guarantees at least one finding.
    """

    def __init__(self, strategies: Optional[Sequence[ParseStrategy]] = None):
        self.strategies: List[ParseStrategy] = list(strategies) if strategies else build_cascade()
        self._diagnostic = DiagnosticStrategy()

    def parse(self, raw_text: Optional[str], model_name: str) -> ParserResult:
        text = raw_text if isinstance(raw_text, str) else ("" if raw_text is None else str(raw_text))
        errors: List[str] = []

        for strategy in self.strategies:
            try:
                result = strategy.parse(text, model_name)
            except Exception as e:
                logger.exception(f"Parse strategy {strategy.name} failed on output from {model_name}")
                errors.append(f"{strategy.name}: {e}")
                continue

            if result is None:
                continue

            result.parse_errors = errors + result.parse_errors
            if strategy.degraded:
                self._flag_degraded(result, model_name)
            return result

        result = self._diagnostic.parse(text, model_name)
        result.parse_errors = errors + result.parse_errors
        self._flag_degraded(result, model_name)
        return result

    def _flag_degraded(self, result: ParserResult, model_name: str) -> None:
        result.degraded = True
        message = (
            f"Output from {model_name} parsed with degraded strategy "
            f"{result.parse_method} ({len(result.findings)} findings)"
        )
        logger.warning(message)
        warnings.warn(message, ParseDegradedWarning, stacklevel=3)
