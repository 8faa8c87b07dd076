"""Weighted scores from verified findings."""
import math
from typing import Iterable, Sequence

from defi_watchdog.data_models import Category, Confidence, Finding, GasOptimization, ScoreSet, Severity

SEVERITY_PENALTY = {
    Severity.CRITICAL: 25,
    Severity.HIGH: 15,
    Severity.MEDIUM: 8,
    Severity.LOW: 3,
    Severity.INFO: 0,
}

# Consensus confidence -> penalty multiplier
CONFIDENCE_FACTOR = {
    Confidence.HIGH: 1.2,
    Confidence.MEDIUM: 1.0,
    Confidence.LOW: 0.8,
}

SECURITY_WEIGHT = 0.6
GAS_WEIGHT = 0.25
QUALITY_WEIGHT = 0.15


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _clamp(value: float, low: float = 0, high: float = 100) -> float:
    return max(low, min(high, value))


def security_score(findings: Iterable[Finding]) -> float:
    """100 minus severity penalties scaled by consensus confidence, clamped to 0..100."""
    score = 100.0
    for finding in findings:
        if finding.category != Category.SECURITY:
            continue
        # Findings that skipped consensus count as MEDIUM
        factor = CONFIDENCE_FACTOR[finding.consensus_confidence or Confidence.MEDIUM]
        score -= SEVERITY_PENALTY[finding.severity] * factor
    return _clamp(score)


def _issue_key(title: str, location: str) -> str:
    return "|".join(" ".join((part or "").lower().split()) for part in (title, location))


def gas_issue_count(findings: Sequence[Finding], gas_optimizations: Sequence[GasOptimization] = ()) -> int:
    """
    Gas findings plus gas optimizations that no gas finding already covers.

    Models often report one issue both ways; matching is on normalized
    title and location.
    """
    gas_findings = [f for f in findings if f.category == Category.GAS]
    covered = {_issue_key(f.title, f.location) for f in gas_findings}
    extra = [g for g in gas_optimizations if _issue_key(g.title, g.location) not in covered]
    return len(gas_findings) + len(extra)


def score(findings: Sequence[Finding], gas_optimizations: Sequence[GasOptimization] = ()) -> ScoreSet:
    """
    Compute the ScoreSet for a verified finding list.

    Pure: the same inputs always give the same scores.
    """
    security = security_score(findings)

    gas = max(50, 95 - 3 * gas_issue_count(findings, gas_optimizations))

    quality_count = sum(1 for f in findings if f.category == Category.QUALITY)
    quality = max(60, 90 - 5 * quality_count)

    overall = security * SECURITY_WEIGHT + gas * GAS_WEIGHT + quality * QUALITY_WEIGHT

    return ScoreSet(
        security=_round_half_up(security),
        gas_optimization=gas,
        code_quality=quality,
        overall=int(_clamp(_round_half_up(overall))),
    )
