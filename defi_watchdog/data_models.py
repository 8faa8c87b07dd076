"""Data models for DeFi Watchdog contract analysis."""
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class Severity(str, Enum):
    """Severity of a finding."""
    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"
    INFO = "INFO"


class Category(str, Enum):
    """Finding category."""
    SECURITY = "security"
    GAS = "gas"
    QUALITY = "quality"


class Confidence(str, Enum):
    """Confidence level, self-reported by a model or derived by consensus."""
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class FocusArea(str, Enum):
    """Specialization a model is prompted for."""
    CRITICAL_REASONING = "critical-reasoning"
    PATTERN_ANALYSIS = "pattern-analysis"
    DEFI_SECURITY = "defi-security"
    GAS_EFFICIENCY = "gas-efficiency"
    GENERAL = "general"


class AnalysisMode(str, Enum):
    """Prompt mode selected by the user."""
    NORMAL = "normal"
    AGGRESSIVE = "aggressive"
    FOCUSED = "focused"


class DeploymentRecommendation(str, Enum):
    DEPLOY = "DEPLOY"
    REVIEW_REQUIRED = "REVIEW_REQUIRED"
    DO_NOT_DEPLOY = "DO_NOT_DEPLOY"


SEVERITY_RANK = {
    Severity.CRITICAL: 4,
    Severity.HIGH: 3,
    Severity.MEDIUM: 2,
    Severity.LOW: 1,
    Severity.INFO: 0,
}

CONFIDENCE_RANK = {
    Confidence.HIGH: 3,
    Confidence.MEDIUM: 2,
    Confidence.LOW: 1,
}

FOCUS_DESCRIPTIONS = {
    FocusArea.CRITICAL_REASONING: "Advanced reasoning and critical vulnerability detection",
    FocusArea.PATTERN_ANALYSIS: "Comprehensive pattern analysis and large context review",
    FocusArea.DEFI_SECURITY: "DeFi security and smart contract best practices",
    FocusArea.GAS_EFFICIENCY: "Gas optimization and efficiency analysis",
    FocusArea.GENERAL: "General smart contract security analysis",
}


@dataclass(frozen=True)
class ModelDescriptor:
    """Static configuration of one model used as an independent opinion."""
    id: str
    name: str
    focus_area: FocusArea = FocusArea.GENERAL
    weight: float = 1.0
    timeout_seconds: Optional[float] = None

    def __post_init__(self):
        if not self.id:
            raise ValueError("ModelDescriptor.id must not be empty")
        if self.weight <= 0:
            raise ValueError(f"Model weight must be > 0, got {self.weight} for {self.name}")
        # Accept plain strings from config files
        if not isinstance(self.focus_area, FocusArea):
            object.__setattr__(self, "focus_area", FocusArea(self.focus_area))

    @property
    def focus(self) -> str:
        """Human-readable focus description."""
        return FOCUS_DESCRIPTIONS[self.focus_area]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "focusArea": self.focus_area.value,
            "focus": self.focus,
            "weight": self.weight,
        }


@dataclass(frozen=True)
class AnalysisOptions:
    """Per-request analysis options."""
    mode: AnalysisMode = AnalysisMode.NORMAL
    custom_prompt: Optional[str] = None

    def __post_init__(self):
        if not isinstance(self.mode, AnalysisMode):
            object.__setattr__(self, "mode", AnalysisMode(self.mode))


@dataclass(frozen=True)
class AnalysisRequest:
    """One user submission."""
    contract_source: str
    contract_name: str
    options: AnalysisOptions = field(default_factory=AnalysisOptions)


@dataclass
class Finding:
    """A single security, gas or quality observation about a contract."""
    severity: Severity
    category: Category
    title: str
    description: str = ""
    location: str = "Unknown location"
    impact: str = "Impact not specified"
    recommendation: str = "Review and address this issue"
    confidence: Confidence = Confidence.MEDIUM
    reported_by: List[str] = field(default_factory=list)
    source: str = "json"  # parse strategy that produced the finding
    consensus_count: int = 1
    consensus_confidence: Optional[Confidence] = None
    fingerprint: Optional[str] = None

    def with_updates(self, **changes: Any) -> "Finding":
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "severity": self.severity.value,
            "category": self.category.value,
            "title": self.title,
            "description": self.description,
            "location": self.location,
            "impact": self.impact,
            "recommendation": self.recommendation,
            "confidence": self.confidence.value,
            "reportedBy": list(self.reported_by),
            "source": self.source,
            "consensusCount": self.consensus_count,
            "consensusConfidence": (
                self.consensus_confidence.value if self.consensus_confidence else None
            ),
            "fingerprint": self.fingerprint,
        }


@dataclass
class GasOptimization:
    """A gas-saving opportunity reported by a model."""
    title: str
    description: str = "No description"
    location: str = "Unknown"
    savings: str = "Unknown savings"
    implementation: str = "No implementation details"
    reported_by: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "location": self.location,
            "savings": self.savings,
            "implementation": self.implementation,
            "reportedBy": list(self.reported_by),
        }


@dataclass
class ParserResult:
    """Structured output of the response parser for one model."""
    findings: List[Finding] = field(default_factory=list)
    gas_optimizations: List[GasOptimization] = field(default_factory=list)
    security_score: Optional[int] = None
    summary: Optional[str] = None
    parse_method: str = "direct_json"
    degraded: bool = False
    parse_errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "findings": [f.to_dict() for f in self.findings],
            "gasOptimizations": [g.to_dict() for g in self.gas_optimizations],
            "securityScore": self.security_score,
            "summary": self.summary,
            "parseMethod": self.parse_method,
            "degraded": self.degraded,
            "parseErrors": list(self.parse_errors),
        }


@dataclass(frozen=True)
class ModelInvocationResult:
    """Outcome of one model's prompt → call → parse pipeline."""
    model: ModelDescriptor
    success: bool
    elapsed_ms: int
    raw_text: Optional[str] = None
    error: Optional[str] = None
    parsed: Optional[ParserResult] = None
    timestamp: str = field(default_factory=lambda: datetime.utcnow().isoformat())

    def __post_init__(self):
        if self.success and self.raw_text is None:
            raise ValueError("successful result requires raw_text")
        if not self.success and not self.error:
            raise ValueError("failed result requires an error message")

    @property
    def findings(self) -> List[Finding]:
        if not self.success or self.parsed is None:
            return []
        return self.parsed.findings

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary (raw text omitted to keep payloads small)."""
        return {
            "model": self.model.name,
            "modelId": self.model.id,
            "focus": self.model.focus,
            "weight": self.model.weight,
            "success": self.success,
            "error": self.error,
            "elapsedMs": self.elapsed_ms,
            "findingsCount": len(self.findings),
            "parseMethod": self.parsed.parse_method if self.parsed else None,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class ScoreSet:
    """Weighted scores, each an int in 0..100."""
    security: int
    gas_optimization: int
    code_quality: int
    overall: int

    def to_dict(self) -> Dict[str, int]:
        return {
            "security": self.security,
            "gasOptimization": self.gas_optimization,
            "codeQuality": self.code_quality,
            "overall": self.overall,
        }


@dataclass
class Recommendation:
    """Prioritized, actionable recommendation citing its findings."""
    priority: str  # IMMEDIATE | HIGH | MEDIUM
    category: str  # SECURITY | OPTIMIZATION
    title: str
    description: str
    timeframe: str
    business_impact: str
    findings: List[Finding] = field(default_factory=list)
    optimizations: List[GasOptimization] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "priority": self.priority,
            "category": self.category,
            "title": self.title,
            "description": self.description,
            "timeframe": self.timeframe,
            "businessImpact": self.business_impact,
        }
        if self.findings:
            data["findings"] = [f.to_dict() for f in self.findings]
        if self.optimizations:
            data["optimizations"] = [o.to_dict() for o in self.optimizations]
        return data


@dataclass
class ExecutiveSummary:
    contract_name: str
    summary: str
    overall_score: int
    risk_level: str
    deployment_recommendation: DeploymentRecommendation
    total_findings: int
    critical_findings: int
    high_findings: int
    medium_findings: int
    gas_optimizations: int
    consensus_level: str
    business_impact: str
    estimated_remediation_time: str
    top_recommendations: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "contractName": self.contract_name,
            "summary": self.summary,
            "overallScore": self.overall_score,
            "riskLevel": self.risk_level,
            "deploymentRecommendation": self.deployment_recommendation.value,
            "totalFindings": self.total_findings,
            "criticalFindings": self.critical_findings,
            "highFindings": self.high_findings,
            "mediumFindings": self.medium_findings,
            "gasOptimizations": self.gas_optimizations,
            "consensusLevel": self.consensus_level,
            "businessImpact": self.business_impact,
            "estimatedRemediationTime": self.estimated_remediation_time,
            "topRecommendations": list(self.top_recommendations),
        }


@dataclass
class AnalysisReport:
    """Final artifact handed to persistence and the UI."""
    report_id: str
    contract_name: str
    models_used: List[ModelDescriptor]
    scores: ScoreSet
    findings: Dict[str, List[Finding]]
    gas_optimizations: List[GasOptimization]
    executive_summary: ExecutiveSummary
    recommendations: List[Recommendation]
    model_results: List[ModelInvocationResult]
    metadata: Dict[str, Any]
    created_at: datetime = field(default_factory=datetime.utcnow)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the camelCase JSON shape consumed by the UI."""
        return {
            "reportId": self.report_id,
            "type": "multi-ai-premium",
            "contractName": self.contract_name,
            "modelsUsed": [
                {"name": m.name, "focus": m.focus, "weight": m.weight}
                for m in self.models_used
            ],
            "scores": self.scores.to_dict(),
            "findings": {
                "security": [f.to_dict() for f in self.findings.get("security", [])],
                "gas": [f.to_dict() for f in self.findings.get("gas", [])],
                "quality": [f.to_dict() for f in self.findings.get("quality", [])],
                "gasOptimizations": [g.to_dict() for g in self.gas_optimizations],
            },
            "executiveSummary": self.executive_summary.to_dict(),
            "recommendations": [r.to_dict() for r in self.recommendations],
            "modelResults": [r.to_dict() for r in self.model_results],
            "metadata": dict(self.metadata),
            "createdAt": self.created_at.isoformat(),
        }
