"""Single mapping from loosely-typed model output to typed findings.

All "maybe missing" handling for model JSON lives here so that consumers
can rely on every Finding having a severity and a category.
"""

import re
from typing import Any, Dict, Optional

from defi_watchdog.data_models import (
    Category,
    Confidence,
    Finding,
    GasOptimization,
    Severity,
)

DEFAULT_TITLE = "Unnamed Issue"
DEFAULT_DESCRIPTION = "No description provided"
DEFAULT_LOCATION = "Unknown location"
DEFAULT_IMPACT = "Impact not specified"
DEFAULT_RECOMMENDATION = "Review and address this issue"

SEVERITY_ALIASES = {
    "CRITICAL": Severity.CRITICAL,
    "SEVERE": Severity.CRITICAL,
    "HIGH": Severity.HIGH,
    "MAJOR": Severity.HIGH,
    "MEDIUM": Severity.MEDIUM,
    "MODERATE": Severity.MEDIUM,
    "LOW": Severity.LOW,
    "MINOR": Severity.LOW,
    "INFO": Severity.INFO,
    "INFORMATIONAL": Severity.INFO,
    "NOTE": Severity.INFO,
}

# Specific vulnerability classes models put in "category"
CATEGORY_ALIASES = {
    "security": Category.SECURITY,
    "reentrancy": Category.SECURITY,
    "access_control": Category.SECURITY,
    "arithmetic": Category.SECURITY,
    "logic": Category.SECURITY,
    "oracle_manipulation": Category.SECURITY,
    "input_validation": Category.SECURITY,
    "gas": Category.GAS,
    "gas_optimization": Category.GAS,
    "optimization": Category.GAS,
    "efficiency": Category.GAS,
    "quality": Category.QUALITY,
    "code_quality": Category.QUALITY,
    "best_practice": Category.QUALITY,
    "best_practices": Category.QUALITY,
    "style": Category.QUALITY,
    "documentation": Category.QUALITY,
}


def _first(item: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = item.get(key)
        if value not in (None, "", [], {}):
            return value
    return None


def _flatten(value: Any, preferred: tuple = ()) -> Optional[str]:
    """Turn nested dict/list values into a readable string."""
    if value is None:
        return None
    if isinstance(value, str):
        return value.strip() or None
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, list):
        parts = [_flatten(v) for v in value]
        joined = "; ".join(p for p in parts if p)
        return joined or None
    if isinstance(value, dict):
        for key in preferred:
            if value.get(key):
                return _flatten(value[key])
        parts = [f"{k}: {_flatten(v)}" for k, v in value.items() if _flatten(v)]
        return "; ".join(parts) or None
    return str(value)


def normalize_severity(value: Any) -> Severity:
    """Upper-case and map severity; unknown values become INFO."""
    if isinstance(value, Severity):
        return value
    if value is None:
        return Severity.INFO
    key = str(value).strip().upper()
    return SEVERITY_ALIASES.get(key, Severity.INFO)


def normalize_category(value: Any) -> Category:
    """Map free-form categories onto security/gas/quality (default security)."""
    if isinstance(value, Category):
        return value
    if value is None:
        return Category.SECURITY
    key = re.sub(r"[\s\-]+", "_", str(value).strip().lower())
    if key in CATEGORY_ALIASES:
        return CATEGORY_ALIASES[key]
    if "gas" in key:
        return Category.GAS
    if "quality" in key or "practice" in key:
        return Category.QUALITY
    return Category.SECURITY


def normalize_confidence(value: Any, default: Confidence = Confidence.MEDIUM) -> Confidence:
    if isinstance(value, Confidence):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        # Some models report a 0-1 or 0-100 probability
        ratio = value / 100 if value > 1 else value
        if ratio >= 0.8:
            return Confidence.HIGH
        if ratio >= 0.5:
            return Confidence.MEDIUM
        return Confidence.LOW
    if value is None:
        return default
    try:
        return Confidence(str(value).strip().upper())
    except ValueError:
        return default


def normalize_finding(
    item: Dict[str, Any],
    model_name: Optional[str] = None,
    source: str = "json",
    default_confidence: Confidence = Confidence.MEDIUM,
) -> Finding:
    """
    Build a typed Finding from one model-supplied finding object.

    Args:
        item: Raw finding dict (any of the shapes models produce)
        model_name: Reporting model, recorded in reported_by
        source: Parse strategy that produced the item
        default_confidence: Used when the model did not self-report one

    Returns:
        Finding with every field populated
    """
    remediation = item.get("remediation")
    recommendation = _first(item, "recommendation", "fix", "mitigation")
    if recommendation is None and remediation is not None:
        recommendation = remediation

    return Finding(
        severity=normalize_severity(_first(item, "severity", "risk", "level")),
        category=normalize_category(_first(item, "category", "type")),
        title=_flatten(_first(item, "title", "name", "issue")) or DEFAULT_TITLE,
        description=_flatten(_first(item, "description", "message", "details"))
        or DEFAULT_DESCRIPTION,
        location=_flatten(
            _first(item, "location", "function", "lines"),
            preferred=("function", "lines", "pattern"),
        )
        or DEFAULT_LOCATION,
        impact=_flatten(item.get("impact"), preferred=("technical",)) or DEFAULT_IMPACT,
        recommendation=_flatten(recommendation, preferred=("steps",)) or DEFAULT_RECOMMENDATION,
        confidence=normalize_confidence(item.get("confidence"), default_confidence),
        reported_by=[model_name] if model_name else [],
        source=source,
    )


def normalize_gas_optimization(item: Dict[str, Any], model_name: Optional[str] = None) -> GasOptimization:
    """Build a typed GasOptimization from a model-supplied dict."""
    impact = item.get("impact")
    savings = _first(item, "savings", "estimatedSavings")
    if savings is None and isinstance(impact, dict):
        savings = impact.get("gasReduction")

    return GasOptimization(
        title=_flatten(item.get("title")) or "Gas Optimization",
        description=_flatten(item.get("description")) or "No description",
        location=_flatten(item.get("location"), preferred=("function",)) or "Unknown",
        savings=_flatten(savings) or "Unknown savings",
        implementation=_flatten(
            item.get("implementation"), preferred=("optimizedPattern",)
        )
        or "No implementation details",
        reported_by=[model_name] if model_name else [],
    )
