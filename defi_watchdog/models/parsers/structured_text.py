"""Extract findings from prose responses with severity headers."""

import logging
import re
from typing import Any, Dict, List, Optional

from defi_watchdog.data_models import Confidence, ParserResult
from defi_watchdog.models.parsers.base import ParseStrategy
from defi_watchdog.models.parsers.normalize import (
    normalize_finding,
    normalize_gas_optimization,
)

logger = logging.getLogger(__name__)

# "**HIGH Severity**: Title", "### 2. MEDIUM Severity - Title", ...
HEADER_RE = re.compile(
    r"^[\s#>*\-]*(?:\d+[.)]\s*)?\**\s*(CRITICAL|HIGH|MEDIUM|LOW|INFO)(?:\s+|-)Severity\b\**\s*[:\-]*\s*(.*)$",
    re.IGNORECASE,
)
GAS_HEADER_RE = re.compile(
    r"^[\s#>*\-]*(?:\d+[.)]\s*)?\**\s*Gas Optimizations?\b\**\s*[:\-]*\s*(.*)$",
    re.IGNORECASE,
)
LABEL_RE = re.compile(
    r"^[\s>*\-]*\**\s*(Description|Location|Impact|Recommendation|Remediation|Fix|Category|Savings)"
    r"\s*\**\s*:\s*\**\s*(.*)$",
    re.IGNORECASE,
)
LOCATION_PATTERNS = (
    re.compile(r"in\s+function\s+`?(\w+\(?\)?)", re.IGNORECASE),
    re.compile(r"function\s+`?(\w+\(?\)?)", re.IGNORECASE),
    re.compile(r"`([^`]+)`"),
)

LABEL_FIELDS = {
    "description": "description",
    "location": "location",
    "impact": "impact",
    "recommendation": "recommendation",
    "remediation": "recommendation",
    "fix": "recommendation",
    "category": "category",
    "savings": "savings",
}

MAX_DESCRIPTION = 500


def _clean(value: str) -> str:
    return value.strip().strip("*`").strip(" :-").strip()


class StructuredTextStrategy(ParseStrategy):
    """
    Prose with labelled severity blocks.

    Each "<SEVERITY> Severity" header opens a block that runs until the
    next header. Labelled lines inside the block (Location:, Impact:,
    Recommendation:, ...) fill the matching fields; remaining lines form
    the description.
    """

    name = "structured_text"
    degraded = True

    def parse(self, raw_text: str, model_name: str) -> Optional[ParserResult]:
        blocks = self._split_blocks(raw_text)
        if not blocks:
            return None

        findings = []
        gas_optimizations = []
        for block in blocks:
            item = self._block_to_item(block)
            if block["kind"] == "gas":
                gas_optimizations.append(normalize_gas_optimization(item, model_name=model_name))
            else:
                findings.append(
                    normalize_finding(
                        item,
                        model_name=model_name,
                        source=self.name,
                        default_confidence=Confidence.LOW,
                    )
                )

        if not findings and not gas_optimizations:
            return None

        logger.debug(f"Extracted {len(findings)} findings from prose response of {model_name}")
        return ParserResult(
            findings=findings,
            gas_optimizations=gas_optimizations,
            parse_method=self.name,
            degraded=True,
        )

    def _split_blocks(self, text: str) -> List[Dict[str, Any]]:
        blocks: List[Dict[str, Any]] = []
        current: Optional[Dict[str, Any]] = None

        for line in text.splitlines():
            header = HEADER_RE.match(line)
            gas_header = None if header else GAS_HEADER_RE.match(line)
            if header:
                current = {
                    "kind": "finding",
                    "severity": header.group(1).upper(),
                    "title": _clean(header.group(2)),
                    "lines": [],
                }
                blocks.append(current)
            elif gas_header:
                current = {"kind": "gas", "title": _clean(gas_header.group(1)), "lines": []}
                blocks.append(current)
            elif current is not None:
                current["lines"].append(line)

        return blocks

    def _block_to_item(self, block: Dict[str, Any]) -> Dict[str, Any]:
        item: Dict[str, Any] = {}
        if block.get("severity"):
            item["severity"] = block["severity"]
        prose: List[str] = []

        for line in block["lines"]:
            label = LABEL_RE.match(line)
            if label:
                field_name = LABEL_FIELDS[label.group(1).lower()]
                value = _clean(label.group(2))
                if value and field_name not in item:
                    item[field_name] = value
            elif line.strip():
                prose.append(line.strip())

        title = block["title"]
        if not title and prose:
            title = _clean(prose.pop(0))
        if title:
            item["title"] = title

        if "description" not in item and prose:
            description = " ".join(prose)
            if len(description) > MAX_DESCRIPTION:
                description = description[:MAX_DESCRIPTION].rstrip() + "..."
            item["description"] = description

        if "location" not in item:
            body = "\n".join(block["lines"])
            for pattern in LOCATION_PATTERNS:
                match = pattern.search(body)
                if match:
                    item["location"] = match.group(1)
                    break

        if block["kind"] == "gas" and "recommendation" in item:
            item.setdefault("implementation", item.pop("recommendation"))
        return item
