"""Parse strategies for raw model responses."""

from defi_watchdog.models.parsers.base import ParseStrategy
from defi_watchdog.models.parsers.json_schema import DirectJSONStrategy, FencedJSONStrategy
from defi_watchdog.models.parsers.structured_text import StructuredTextStrategy
from defi_watchdog.models.parsers.keyword_fallback import KeywordFallbackStrategy
from defi_watchdog.models.parsers.fallback import DiagnosticStrategy
from defi_watchdog.models.parsers.normalize import (
    normalize_category,
    normalize_confidence,
    normalize_finding,
    normalize_gas_optimization,
    normalize_severity,
)

__all__ = [
    "ParseStrategy",
    "DirectJSONStrategy",
    "FencedJSONStrategy",
    "StructuredTextStrategy",
    "KeywordFallbackStrategy",
    "DiagnosticStrategy",
    "normalize_category",
    "normalize_confidence",
    "normalize_finding",
    "normalize_gas_optimization",
    "normalize_severity",
]
