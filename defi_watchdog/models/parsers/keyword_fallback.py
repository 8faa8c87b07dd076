"""Keyword-scan fallback for responses with no recognizable structure."""

from typing import Dict, Optional, Tuple

from defi_watchdog.data_models import Category, Confidence, ParserResult, Severity
from defi_watchdog.models.parsers.base import ParseStrategy
from defi_watchdog.models.parsers.normalize import normalize_finding

# keyword -> (severity, category)
KEYWORD_TABLE: Dict[str, Tuple[Severity, Category]] = {
    "reentrancy": (Severity.CRITICAL, Category.SECURITY),
    "overflow": (Severity.HIGH, Category.SECURITY),
    "access control": (Severity.HIGH, Category.SECURITY),
    "owner": (Severity.HIGH, Category.SECURITY),
    "front-running": (Severity.MEDIUM, Category.SECURITY),
    "timestamp": (Severity.MEDIUM, Category.SECURITY),
    "gas": (Severity.MEDIUM, Category.GAS),
    "optimization": (Severity.LOW, Category.GAS),
}


class KeywordFallbackStrategy(ParseStrategy):
    """Synthesize one LOW-confidence finding per matched keyword."""

    name = "keyword_fallback"
    degraded = True

    def __init__(self, config=None, keywords: Optional[Dict[str, Tuple[Severity, Category]]] = None):
        super().__init__(config)
        self.keywords = keywords or KEYWORD_TABLE

    def parse(self, raw_text: str, model_name: str) -> Optional[ParserResult]:
        lowered = raw_text.lower()
        findings = []
        for keyword, (severity, category) in self.keywords.items():
            if keyword not in lowered:
                continue
            item = {
                "severity": severity.value,
                "category": category.value,
                "title": f"{keyword.title()} Issue",
                "description": f"Potential {keyword} issue detected by {model_name}",
                "location": "Text Analysis",
                "recommendation": f"Review and address {keyword} implementation",
            }
            findings.append(
                normalize_finding(
                    item,
                    model_name=model_name,
                    source=self.name,
                    default_confidence=Confidence.LOW,
                )
            )

        if not findings:
            return None
        return ParserResult(findings=findings, parse_method=self.name, degraded=True)
