"""Base interface for response parse strategies."""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from defi_watchdog.data_models import ParserResult


class ParseStrategy(ABC):
    """
    Abstract base class for one step of the response parser cascade.

    A strategy either returns a ParserResult (success, cascade stops) or
    None (not applicable, next strategy is tried). Strategies never raise
    for malformed input.
    """

    #: Identifier recorded as ParserResult.parse_method and Finding.source
    name: str = "base"

    #: Degraded strategies mark their output as low-confidence
    degraded: bool = False

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        """
        Initialize strategy with optional configuration.

        Args:
            config: Strategy-specific configuration
        """
        self.config = config or {}

    @abstractmethod
    def parse(self, raw_text: str, model_name: str) -> Optional[ParserResult]:
        """
        Try to turn raw model output into findings.

        Args:
            raw_text: Raw text returned by the model
            model_name: Display name of the model, recorded in reported_by

        Returns:
            ParserResult on success, None if this strategy does not apply
        """
        pass

    def validate_output_size(self, raw_text: str, max_length: int = 100000) -> bool:
        """Reject pathological inputs before running regexes over them."""
        if isinstance(raw_text, str) and len(raw_text) > max_length:
            return False
        return True
