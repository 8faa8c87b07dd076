"""Factory helpers for creating parse strategies by ID."""

import importlib
import logging
from typing import Dict, List, Optional, Sequence, Type

from defi_watchdog.models.parsers import (
    DiagnosticStrategy,
    DirectJSONStrategy,
    FencedJSONStrategy,
    KeywordFallbackStrategy,
    ParseStrategy,
    StructuredTextStrategy,
)

logger = logging.getLogger(__name__)

# Built-in strategy registry
_STRATEGY_CLASSES: Dict[str, Type[ParseStrategy]] = {
    "direct_json": DirectJSONStrategy,
    "fenced_json": FencedJSONStrategy,
    "structured_text": StructuredTextStrategy,
    "keyword_fallback": KeywordFallbackStrategy,
    "diagnostic": DiagnosticStrategy,
}

DEFAULT_CASCADE = ("direct_json", "fenced_json", "structured_text", "keyword_fallback", "diagnostic")


def _load_from_path(path: str) -> Optional[Type[ParseStrategy]]:
    """Dynamically load a strategy class from a full dotted path."""
    try:
        module_path, class_name = path.rsplit(".", 1)
        module = importlib.import_module(module_path)
    except (ValueError, ImportError) as e:
        logger.warning(f"Could not import parse strategy {path}: {e}")
        return None
    klass = getattr(module, class_name, None)
    if isinstance(klass, type) and issubclass(klass, ParseStrategy):
        return klass
    return None


def get_strategy(strategy_id: str, config: Optional[Dict] = None) -> ParseStrategy:
    """
    Instantiate a strategy for the given ID or dotted class path.

    Raises:
        ValueError: If the ID is unknown
    """
    strategy_cls = _STRATEGY_CLASSES.get(strategy_id) or _load_from_path(strategy_id)
    if not strategy_cls:
        raise ValueError(f"Unknown parse strategy: {strategy_id}")
    return strategy_cls(config or {})


def build_cascade(strategy_ids: Sequence[str] = DEFAULT_CASCADE, config: Optional[Dict] = None) -> List[ParseStrategy]:
    """
    Build an ordered strategy list.

    The diagnostic strategy is appended when missing so the cascade can
    never come up empty.
    """
    strategies = [get_strategy(sid, config) for sid in strategy_ids]
    if not any(isinstance(s, DiagnosticStrategy) for s in strategies):
        strategies.append(DiagnosticStrategy(config or {}))
    return strategies
