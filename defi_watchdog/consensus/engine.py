"""Consensus engine for merging findings from multiple models."""
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Sequence, Tuple

from defi_watchdog.data_models import (
    CONFIDENCE_RANK,
    SEVERITY_RANK,
    Confidence,
    Finding,
    GasOptimization,
    ModelInvocationResult,
    Severity,
)

logger = logging.getLogger(__name__)

SEVERE = (Severity.CRITICAL, Severity.HIGH)


@dataclass
class FindingGroup:
    """Findings sharing one fingerprint, with the weight of each reporter."""
    fingerprint: str
    members: List[Tuple[Finding, str, float]] = field(default_factory=list)

    @property
    def reporting_models(self) -> List[str]:
        """Distinct reporting models, first-seen order."""
        seen: List[str] = []
        for _, model_name, _ in self.members:
            if model_name not in seen:
                seen.append(model_name)
        return seen

    @property
    def consensus_count(self) -> int:
        return len(self.reporting_models)

    @property
    def representative(self) -> Finding:
        """Highest confidence × model weight; ties keep the earliest member."""
        best = max(
            self.members,
            key=lambda member: CONFIDENCE_RANK[member[0].confidence] * member[2],
        )
        return best[0]

    @property
    def consensus_confidence(self) -> Confidence:
        count = self.consensus_count
        if count >= 3:
            return Confidence.HIGH
        if count == 2:
            return Confidence.MEDIUM
        if self.representative.severity in SEVERE:
            return Confidence.MEDIUM
        return Confidence.LOW


@dataclass
class ConsensusResult:
    """Verified findings plus transparency counters."""
    findings: List[Finding]
    duplicates_removed: int
    total_findings: int
    gas_optimizations: List[GasOptimization] = field(default_factory=list)

    @property
    def verified_findings(self) -> int:
        return len(self.findings)

    @property
    def consensus_level(self) -> int:
        """Share of raw findings that survived consensus, as a whole percent."""
        return round(self.verified_findings / max(self.total_findings, 1) * 100)

    def by_category(self, category: str) -> List[Finding]:
        return [f for f in self.findings if f.category.value == category]

    def to_dict(self) -> Dict:
        return {
            "totalFindings": self.total_findings,
            "verifiedFindings": self.verified_findings,
            "duplicatesRemoved": self.duplicates_removed,
            "consensusLevel": f"{self.consensus_level}%",
        }


def _normalize_text(value: str) -> str:
    return " ".join((value or "").lower().split())


def fingerprint(finding: Finding) -> str:
    """Coarse dedup key: severity|category|title|location, normalized."""
    return "|".join([
        finding.severity.value.lower(),
        finding.category.value,
        _normalize_text(finding.title),
        _normalize_text(finding.location),
    ])


class ConsensusEngine:
    """Engine for merging findings from multiple models."""

    def reconcile(self, results: Sequence[ModelInvocationResult]) -> ConsensusResult:
        """
        Deduplicate and cross-verify findings from successful results.

        Args:
            results: Model results in configuration order (failures ignored)

        Returns:
            ConsensusResult with surviving findings sorted by severity, then consensus
        """
        valid_results = [r for r in results if r.success and r.parsed is not None]

        groups: Dict[str, FindingGroup] = {}
        total = 0
        for result in valid_results:
            for finding in result.parsed.findings:
                total += 1
                key = fingerprint(finding)
                if key not in groups:
                    groups[key] = FindingGroup(fingerprint=key)
                groups[key].members.append((finding, result.model.name, result.model.weight))

        verified: List[Finding] = []
        duplicates_removed = 0
        for key, group in groups.items():
            duplicates_removed += len(group.members) - 1
            confidence = group.consensus_confidence
            representative = group.representative

            if confidence == Confidence.LOW and representative.severity not in SEVERE:
                logger.debug(f"Dropping low-consensus finding: {key}")
                continue

            verified.append(representative.with_updates(
                reported_by=group.reporting_models,
                consensus_count=group.consensus_count,
                consensus_confidence=confidence,
                fingerprint=key,
            ))

        verified.sort(key=lambda f: (SEVERITY_RANK[f.severity], f.consensus_count), reverse=True)

        gas_optimizations = self._deduplicate_gas_optimizations(valid_results)

        logger.info(
            f"Consensus: {len(verified)} verified of {total} findings "
            f"({duplicates_removed} duplicates removed, {len(gas_optimizations)} gas optimizations)"
        )
        return ConsensusResult(
            findings=verified,
            duplicates_removed=duplicates_removed,
            total_findings=total,
            gas_optimizations=gas_optimizations,
        )

    def _deduplicate_gas_optimizations(self, results: Sequence[ModelInvocationResult]) -> List[GasOptimization]:
        """Deduplicate gas optimizations by title and location, merging reporters."""
        unique: Dict[str, GasOptimization] = {}
        for result in results:
            for optimization in result.parsed.gas_optimizations:
                key = f"{_normalize_text(optimization.title)}|{_normalize_text(optimization.location)}"
                if key not in unique:
                    unique[key] = GasOptimization(
                        title=optimization.title,
                        description=optimization.description,
                        location=optimization.location,
                        savings=optimization.savings,
                        implementation=optimization.implementation,
                        reported_by=[result.model.name],
                    )
                elif result.model.name not in unique[key].reported_by:
                    unique[key].reported_by.append(result.model.name)
        return list(unique.values())
