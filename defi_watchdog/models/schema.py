"""Pydantic schema for the loosely-typed JSON returned by models."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# Keys models use instead of "findings"
FINDINGS_ALIASES = (
    "findings",
    "keyFindings",
    "vulnerabilities",
    "issues",
    "securityFindings",
    "results",
)

GAS_ALIASES = ("gasOptimizations", "gas_optimizations", "optimizations")

FINDING_KEYS = {"severity", "title", "description", "category", "risk"}


class ModelResponseEnvelope(BaseModel):
    """
    Top-level JSON object a model is instructed to return.

    Extra keys (contractAnalysis, riskAssessment, specialtyInsights, ...)
    are tolerated and ignored.
    """

    model_config = ConfigDict(extra="ignore")

    findings: List[Dict[str, Any]] = Field(default_factory=list)
    gas_optimizations: List[Dict[str, Any]] = Field(default_factory=list)
    security_score: Optional[int] = None
    summary: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _collect_aliases(cls, data: Any) -> Any:
        if isinstance(data, list):
            return {"findings": data}
        if not isinstance(data, dict):
            raise ValueError(f"Expected a JSON object, got {type(data).__name__}")

        findings: Any = None
        for key in FINDINGS_ALIASES:
            if key in data:
                findings = data[key]
                break
        if findings is None and FINDING_KEYS.intersection(data.keys()):
            # A bare finding object
            findings = [data]

        gas: Any = []
        for key in GAS_ALIASES:
            if key in data:
                gas = data[key]
                break

        if findings is None and not gas and "securityScore" not in data:
            raise ValueError("No findings-like field in model response")

        return {
            "findings": _as_dict_list(findings),
            "gas_optimizations": _as_dict_list(gas),
            "security_score": data.get("securityScore"),
            "summary": data.get("summary"),
        }

    @field_validator("security_score", mode="before")
    @classmethod
    def _clamp_score(cls, value: Any) -> Optional[int]:
        if value is None or isinstance(value, bool):
            return None
        try:
            score = float(value)
        except (TypeError, ValueError):
            return None
        return int(max(0, min(100, round(score))))

    @field_validator("summary", mode="before")
    @classmethod
    def _stringify_summary(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        return value if isinstance(value, str) else str(value)


def _as_dict_list(value: Any) -> List[Dict[str, Any]]:
    if value is None:
        return []
    if isinstance(value, dict):
        return [value]
    if not isinstance(value, list):
        return []
    items = []
    for item in value:
        if isinstance(item, dict):
            items.append(item)
        elif isinstance(item, str) and item.strip():
            # Bare sentence; normalize_finding supplies the defaults
            text = item.strip()
            items.append({"title": text, "description": text})
    return items
