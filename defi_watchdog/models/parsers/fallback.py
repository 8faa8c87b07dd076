"""Last-resort strategy: describe the unparseable response."""

import logging
from typing import Optional

from defi_watchdog.data_models import Category, Confidence, ParserResult, Severity
from defi_watchdog.models.parsers.base import ParseStrategy
from defi_watchdog.models.parsers.normalize import normalize_finding

logger = logging.getLogger(__name__)

PREVIEW_LENGTH = 200


class DiagnosticStrategy(ParseStrategy):
    """Always succeeds with a single INFO finding."""

    name = "diagnostic"
    degraded = True

    def parse(self, raw_text: str, model_name: str) -> Optional[ParserResult]:
        preview = " ".join(raw_text.split())[:PREVIEW_LENGTH]
        if not preview:
            description = f"{model_name} returned an empty response"
        else:
            description = f"{model_name} returned a response that could not be parsed: {preview}"

        logger.warning(f"No parse strategy matched output from {model_name} ({len(raw_text)} chars)")
        finding = normalize_finding(
            {
                "severity": Severity.INFO.value,
                "category": Category.QUALITY.value,
                "title": "Unparseable Model Response",
                "description": description,
                "location": "Model Output",
                "recommendation": "Re-run the analysis or review the raw model output manually",
            },
            model_name=model_name,
            source=self.name,
            default_confidence=Confidence.LOW,
        )
        return ParserResult(
            findings=[finding],
            parse_method=self.name,
            degraded=True,
            parse_errors=["No parse strategy matched the model output"],
        )
