"""JSON strategies for structured model outputs."""

import json
import logging
import re
from typing import Any, Iterator, List, Optional

from pydantic import ValidationError

from defi_watchdog.data_models import ParserResult
from defi_watchdog.models.parsers.base import ParseStrategy
from defi_watchdog.models.parsers.normalize import (
    normalize_finding,
    normalize_gas_optimization,
)
from defi_watchdog.models.schema import ModelResponseEnvelope

logger = logging.getLogger(__name__)


class _EnvelopeMixin:
    """Shared envelope validation and mapping for the JSON strategies."""

    name: str

    def _validate(self, data: Any) -> Optional[ModelResponseEnvelope]:
        try:
            return ModelResponseEnvelope.model_validate(data)
        except ValidationError as e:
            logger.debug(f"{self.name}: JSON is not a findings envelope: {e.error_count()} errors")
            return None

    def _to_result(self, envelope: ModelResponseEnvelope, model_name: str) -> ParserResult:
        return ParserResult(
            findings=[
                normalize_finding(item, model_name=model_name, source=self.name)
                for item in envelope.findings
            ],
            gas_optimizations=[
                normalize_gas_optimization(item, model_name=model_name)
                for item in envelope.gas_optimizations
            ],
            security_score=envelope.security_score,
            summary=envelope.summary,
            parse_method=self.name,
        )


class DirectJSONStrategy(_EnvelopeMixin, ParseStrategy):
    """The whole response is a JSON document with a findings-like field."""

    name = "direct_json"

    def parse(self, raw_text: str, model_name: str) -> Optional[ParserResult]:
        text = raw_text.strip()
        if not text or text[0] not in "{[":
            return None
        try:
            data = json.loads(text)
        except json.JSONDecodeError:
            return None

        envelope = self._validate(data)
        if envelope is None:
            return None
        return self._to_result(envelope, model_name)


class FencedJSONStrategy(_EnvelopeMixin, ParseStrategy):
    """
    JSON embedded in prose.

    Handles:
    - Fenced code blocks (```json ... ```)
    - Any fenced block that looks like JSON
    - Unclosed fences from truncated output
    - First balanced {...} blob
    - Invalid escapes and raw control characters
    """

    name = "fenced_json"

    def parse(self, raw_text: str, model_name: str) -> Optional[ParserResult]:
        max_len = self.config.get("max_length", 200_000)
        if not self.validate_output_size(raw_text, max_length=max_len):
            logger.warning(f"Output from {model_name} too large for JSON extraction (> {max_len} chars)")
            return None

        for candidate in self._iter_json_candidates(raw_text):
            try:
                data = json.loads(candidate)
            except json.JSONDecodeError:
                continue
            envelope = self._validate(data)
            if envelope is not None:
                return self._to_result(envelope, model_name)
        return None

    def _sanitize_json_string(self, text: str) -> str:
        r"""
        Fix common invalid escape sequences and control characters.

        JSON only supports: \" \\ \/ \b \f \n \r \t \uXXXX
        """
        text = text.replace("\x00", "\\u0000")

        def replace_control_char(match):
            return f"\\u{ord(match.group(0)):04x}"

        text = re.sub(r"[\x01-\x08\x0b\x0c\x0e-\x1f]", replace_control_char, text)

        def fix_invalid_escape(match):
            char = match.group(1)
            if char in 'bfnrtu"\\/':
                return match.group(0)
            return "\\\\" + char

        # Consume escape pairs whole so an escaped backslash never starts a new escape
        return re.sub(r"\\(.)", fix_invalid_escape, text, flags=re.DOTALL)

    def _iter_json_candidates(self, text: str) -> Iterator[str]:
        """Yield JSON-looking substrings, most specific first."""
        text = self._sanitize_json_string(text)

        for match in re.finditer(r"```json\s*([\s\S]*?)```", text, flags=re.IGNORECASE):
            candidate = match.group(1).strip()
            if candidate and candidate[0] in "{[":
                yield candidate

        for match in re.finditer(r"```(?:[a-zA-Z0-9_-]+)?\s*([\s\S]*?)```", text):
            candidate = match.group(1).strip()
            if candidate and candidate[0] in "{[":
                yield candidate

        # Truncated output: opening fence without a closing one
        unclosed_fence = re.search(r"```(?:json|[a-zA-Z0-9_-]+)?\s*([\s\S]+)", text, flags=re.IGNORECASE)
        if unclosed_fence:
            inner = unclosed_fence.group(1).strip().rstrip("`").strip()
            if inner and inner[0] in "{[":
                yield from self._balanced_braces(inner)

        yield from self._balanced_braces(text)

    def _balanced_braces(self, text: str) -> List[str]:
        """Return every balanced {...} blob that decodes, outermost first."""
        blobs: List[str] = []
        start_idx = text.find("{")
        while start_idx != -1:
            depth = 0
            for idx in range(start_idx, len(text)):
                char = text[idx]
                if char == "{":
                    depth += 1
                elif char == "}":
                    depth -= 1
                    if depth == 0:
                        candidate = text[start_idx : idx + 1]
                        try:
                            json.loads(candidate)
                            blobs.append(candidate)
                            # Skip nested objects of an accepted blob
                            start_idx = idx
                        except json.JSONDecodeError:
                            pass
                        break
            start_idx = text.find("{", start_idx + 1)
        return blobs
