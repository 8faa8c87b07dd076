"""Build the final AnalysisReport from consensus output and scores."""
import logging
import uuid
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from defi_watchdog.consensus.engine import ConsensusResult
from defi_watchdog.data_models import (
    AnalysisReport,
    Category,
    DeploymentRecommendation,
    ExecutiveSummary,
    Finding,
    GasOptimization,
    ModelDescriptor,
    ModelInvocationResult,
    Recommendation,
    ScoreSet,
    Severity,
)

logger = logging.getLogger(__name__)

MAX_CITED_FINDINGS = 3
MAX_CITED_OPTIMIZATIONS = 5

RISK_CRITICAL = "Critical Risk"
RISK_HIGH = "High Risk"
RISK_MEDIUM = "Medium Risk"
RISK_LOW = "Low Risk"


def _count(findings: Sequence[Finding], severity: Severity) -> int:
    return sum(1 for f in findings if f.severity == severity)


def risk_tier(security_findings: Sequence[Finding], scores: ScoreSet) -> str:
    critical = _count(security_findings, Severity.CRITICAL)
    high = _count(security_findings, Severity.HIGH)
    if critical:
        return RISK_CRITICAL
    if high >= 3 or scores.security < 50:
        return RISK_HIGH
    if high or scores.security < 70:
        return RISK_MEDIUM
    return RISK_LOW


def deployment_recommendation(security_findings: Sequence[Finding]) -> DeploymentRecommendation:
    critical = _count(security_findings, Severity.CRITICAL)
    high = _count(security_findings, Severity.HIGH)
    medium = _count(security_findings, Severity.MEDIUM)
    if critical or high > 2:
        return DeploymentRecommendation.DO_NOT_DEPLOY
    if high or medium > 3:
        return DeploymentRecommendation.REVIEW_REQUIRED
    return DeploymentRecommendation.DEPLOY


def estimate_remediation_time(security_findings: Sequence[Finding]) -> str:
    critical = _count(security_findings, Severity.CRITICAL)
    high = _count(security_findings, Severity.HIGH)
    medium = _count(security_findings, Severity.MEDIUM)
    if critical > 2:
        return "1-2 weeks"
    if critical or high > 3:
        return "3-5 days"
    if high or medium > 5:
        return "1-3 days"
    return "1 day or less"


def business_impact(critical: int, high: int, risk_level: str) -> str:
    if critical:
        return ("Critical vulnerabilities pose immediate threat to funds and operations. "
                "Deployment must be halted until issues are resolved.")
    if high > 2:
        return ("Multiple high-risk issues could significantly impact user trust and platform security. "
                "Immediate attention required.")
    if high:
        return ("High-risk issues identified that should be resolved before production deployment "
                "to maintain security standards.")
    if risk_level == RISK_MEDIUM:
        return ("Moderate security concerns that should be addressed. "
                "Overall security posture is acceptable with improvements.")
    return ("Contract demonstrates good security practices. "
            "Minor issues can be addressed in normal development cycle.")


def analysis_quality(successful: int, total: int, consensus_level: int) -> str:
    """EXCELLENT / GOOD / FAIR / POOR from model success rate and consensus level."""
    success_rate = successful / total if total else 0.0
    quality = (success_rate * 0.6 + (consensus_level / 100) * 0.4) * 100
    if quality >= 90:
        return "EXCELLENT"
    if quality >= 80:
        return "GOOD"
    if quality >= 70:
        return "FAIR"
    return "POOR"


def build_recommendations(findings: Sequence[Finding], gas_optimizations: Sequence[GasOptimization]) -> List[Recommendation]:
    """Prioritized recommendation buckets, each citing its findings."""
    recommendations: List[Recommendation] = []

    critical = [f for f in findings if f.severity == Severity.CRITICAL]
    if critical:
        recommendations.append(Recommendation(
            priority="IMMEDIATE",
            category="SECURITY",
            title="Fix Critical Security Vulnerabilities",
            description=f"{len(critical)} critical vulnerabilities detected that require immediate attention",
            timeframe="Fix within 24 hours",
            business_impact="Deployment blocked - Critical security risk",
            findings=critical[:MAX_CITED_FINDINGS],
        ))

    high = [f for f in findings if f.severity == Severity.HIGH]
    if high:
        recommendations.append(Recommendation(
            priority="HIGH",
            category="SECURITY",
            title="Address High-Risk Issues",
            description=f"{len(high)} high-risk issues should be resolved before production",
            timeframe="Fix within 1 week",
            business_impact="Significant security risk to operations",
            findings=high[:MAX_CITED_FINDINGS],
        ))

    medium = [f for f in findings if f.severity == Severity.MEDIUM]
    if medium:
        recommendations.append(Recommendation(
            priority="MEDIUM",
            category="SECURITY",
            title="Resolve Medium-Risk Issues",
            description=f"{len(medium)} medium-risk issues identified",
            timeframe="Fix within 2 weeks",
            business_impact="Moderate security risk",
            findings=medium[:MAX_CITED_FINDINGS],
        ))

    if gas_optimizations:
        recommendations.append(Recommendation(
            priority="MEDIUM",
            category="OPTIMIZATION",
            title="Implement Gas Optimizations",
            description=f"{len(gas_optimizations)} gas optimization opportunities identified",
            timeframe="Implement before mainnet",
            business_impact="Reduced transaction costs for users",
            optimizations=list(gas_optimizations[:MAX_CITED_OPTIMIZATIONS]),
        ))

    return recommendations


class ReportAssembler:
    """Composes the executive summary, recommendations and metadata."""

    def assemble(
        self,
        consensus: ConsensusResult,
        scores: ScoreSet,
        model_results: Sequence[ModelInvocationResult],
        contract_name: str,
        models: Optional[Sequence[ModelDescriptor]] = None,
        report_id: Optional[str] = None,
        started_at: Optional[datetime] = None,
    ) -> AnalysisReport:
        """
        Build the AnalysisReport.

        Args:
            consensus: Output of the consensus engine
            scores: Output of the scoring engine
            model_results: Every model result, successes and failures
            contract_name: Name of the analysed contract
            models: Configured models; defaults to the models in model_results
            report_id: Identifier to use (random if None)
            started_at: When the run began, for metadata

        Returns:
            The finished report
        """
        configured = list(models) if models is not None else [r.model for r in model_results]
        succeeded_ids = {r.model.id for r in model_results if r.success}
        models_used = [m for m in configured if m.id in succeeded_ids]

        findings_by_category: Dict[str, List[Finding]] = {
            category.value: consensus.by_category(category.value) for category in Category
        }
        security_findings = findings_by_category[Category.SECURITY.value]

        critical = _count(security_findings, Severity.CRITICAL)
        high = _count(security_findings, Severity.HIGH)
        medium = _count(security_findings, Severity.MEDIUM)

        risk_level = risk_tier(security_findings, scores)
        recommendations = build_recommendations(consensus.findings, consensus.gas_optimizations)

        executive_summary = ExecutiveSummary(
            contract_name=contract_name,
            summary=(
                f"Multi-AI security analysis of {contract_name} completed. "
                f"{len(security_findings)} verified security findings identified through "
                f"consensus of {len(models_used)} specialized AI models."
            ),
            overall_score=scores.overall,
            risk_level=risk_level,
            deployment_recommendation=deployment_recommendation(security_findings),
            total_findings=len(security_findings),
            critical_findings=critical,
            high_findings=high,
            medium_findings=medium,
            gas_optimizations=len(consensus.gas_optimizations),
            consensus_level=f"{consensus.consensus_level}%",
            business_impact=business_impact(critical, high, risk_level),
            estimated_remediation_time=estimate_remediation_time(security_findings),
            top_recommendations=[r.title for r in recommendations[:3]],
        )

        total_models = len(model_results)
        successful_models = len(succeeded_ids)
        finished_at = datetime.utcnow()
        metadata = {
            "analysisType": "multi-ai-premium",
            "startedAt": (started_at or finished_at).isoformat(),
            "completedAt": finished_at.isoformat(),
            "totalModels": total_models,
            "successfulModels": successful_models,
            "failedModels": total_models - successful_models,
            "totalFindings": consensus.total_findings,
            "verifiedFindings": consensus.verified_findings,
            "duplicatesRemoved": consensus.duplicates_removed,
            "consensusLevel": f"{consensus.consensus_level}%",
            "analysisQuality": analysis_quality(successful_models, total_models, consensus.consensus_level),
            "verificationNotes": [
                f"Analysis completed with {successful_models}/{total_models} AI models",
                f"Consensus verification removed {consensus.duplicates_removed} duplicate findings",
                f"Overall consensus level: {consensus.consensus_level}%",
                "All findings verified through multi-model agreement or high confidence assessment",
            ],
        }

        report = AnalysisReport(
            report_id=report_id or uuid.uuid4().hex,
            contract_name=contract_name,
            models_used=models_used,
            scores=scores,
            findings=findings_by_category,
            gas_optimizations=list(consensus.gas_optimizations),
            executive_summary=executive_summary,
            recommendations=recommendations,
            model_results=list(model_results),
            metadata=metadata,
            created_at=finished_at,
        )
        logger.info(
            f"Report {report.report_id} for {contract_name}: overall={scores.overall}, "
            f"risk={risk_level}, recommendation={executive_summary.deployment_recommendation.value}"
        )
        return report
