#!/usr/bin/env python3
"""Response parser cascade and normalizer tests."""

import json

import pytest

from defi_watchdog.data_models import Category, Confidence, Severity
from defi_watchdog.errors import ParseDegradedWarning
from defi_watchdog.models.parser_factory import build_cascade, get_strategy
from defi_watchdog.models.parsers import (
    DiagnosticStrategy,
    DirectJSONStrategy,
    ParseStrategy,
    normalize_finding,
)
from defi_watchdog.models.response_parser import ResponseParser


PROSE_RESPONSE = """After reviewing the contract I found the following.

**HIGH Severity**: Reentrancy
The withdraw function sends ether before updating the balance.
Location: withdraw()
Recommendation: Apply checks-effects-interactions.

**MEDIUM Severity**: Missing event emission
Location: `setFee`
"""


def _parse(raw_text, model_name="Model A"):
    return ResponseParser().parse(raw_text, model_name)


# ============================================================================
# JSON strategies
# ============================================================================

def test_direct_json_maps_nested_fields():
    """Nested location/remediation objects are flattened into strings."""
    raw = json.dumps({
        "securityScore": 70,
        "findings": [{
            "severity": "high",
            "category": "REENTRANCY",
            "title": "Reentrancy",
            "description": "External call before state update",
            "location": {"function": "withdraw()", "pattern": "call{value:}"},
            "remediation": {"priority": "IMMEDIATE", "steps": ["Use checks-effects-interactions"]},
            "confidence": "HIGH",
        }],
        "gasOptimizations": [{
            "title": "Pack storage",
            "location": "struct User",
            "impact": {"gasReduction": "2100 gas"},
        }],
        "summary": "One serious issue",
    })

    result = _parse(raw)

    assert result.parse_method == "direct_json"
    assert result.degraded is False
    assert result.security_score == 70
    assert result.summary == "One serious issue"

    finding = result.findings[0]
    assert finding.severity == Severity.HIGH
    assert finding.category == Category.SECURITY
    assert finding.location == "withdraw()"
    assert finding.recommendation == "Use checks-effects-interactions"
    assert finding.confidence == Confidence.HIGH
    assert finding.reported_by == ["Model A"]

    assert result.gas_optimizations[0].savings == "2100 gas"


def test_direct_json_empty_findings_is_success():
    """A clean contract is a valid outcome, not a parse failure."""
    result = _parse('{"securityScore": 100, "findings": [], "summary": "No issues"}')

    assert result.parse_method == "direct_json"
    assert result.findings == []
    assert result.security_score == 100


def test_security_score_is_clamped():
    result = _parse('{"securityScore": 140, "findings": []}')
    assert result.security_score == 100


def test_fenced_json_block_in_prose():
    raw = (
        "Here is my analysis:\n"
        "```json\n"
        '{"findings": [{"severity": "MEDIUM", "category": "security", '
        '"title": "Unchecked return value", "location": "payout()"}]}\n'
        "```\n"
        "Let me know if you need more."
    )

    result = _parse(raw)

    assert result.parse_method == "fenced_json"
    assert result.findings[0].title == "Unchecked return value"
    assert result.findings[0].severity == Severity.MEDIUM


def test_unclosed_fence_from_truncated_output():
    raw = '```json\n{"findings": [{"severity": "LOW", "title": "Floating pragma"}]}'

    result = _parse(raw)

    assert result.parse_method == "fenced_json"
    assert result.findings[0].title == "Floating pragma"


def test_invalid_escape_is_sanitized():
    raw = '{"findings": [{"severity": "MEDIUM", "title": "Bad \\escape", "location": "foo()"}]}'

    result = _parse(raw)

    assert result.parse_method == "fenced_json"
    assert result.findings[0].title.startswith("Bad")
    assert result.findings[0].location == "foo()"


def test_escaped_backslash_survives_sanitizing():
    raw = (
        "```json\n"
        '{"findings": [{"severity": "HIGH", "category": "security", '
        '"title": "Path C:\\\\Users leak", "location": "log()"}]}\n'
        "```"
    )

    result = _parse(raw)

    assert result.parse_method == "fenced_json"
    assert result.findings[0].severity == Severity.HIGH
    assert result.findings[0].title == "Path C:\\Users leak"


def test_string_findings_are_kept_with_defaults():
    result = _parse('{"findings": ["Reentrancy in withdraw() lets attacker drain funds", ""]}')

    assert result.parse_method == "direct_json"
    assert len(result.findings) == 1
    finding = result.findings[0]
    assert finding.title == "Reentrancy in withdraw() lets attacker drain funds"
    assert finding.description == finding.title
    assert finding.severity == Severity.INFO
    assert finding.category == Category.SECURITY


def test_json_without_findings_field_is_not_accepted():
    with pytest.warns(ParseDegradedWarning):
        result = _parse('{"foo": 1}')

    assert result.parse_method == "diagnostic"


# ============================================================================
# Degraded strategies
# ============================================================================

def test_structured_text_extracts_labelled_blocks():
    with pytest.warns(ParseDegradedWarning):
        result = _parse(PROSE_RESPONSE, model_name="Model B")

    assert result.parse_method == "structured_text"
    assert result.degraded is True
    assert len(result.findings) == 2

    reentrancy, missing_event = result.findings
    assert reentrancy.severity == Severity.HIGH
    assert reentrancy.title == "Reentrancy"
    assert reentrancy.location == "withdraw()"
    assert reentrancy.description == "The withdraw function sends ether before updating the balance."
    assert reentrancy.recommendation == "Apply checks-effects-interactions."
    assert reentrancy.confidence == Confidence.LOW
    assert reentrancy.source == "structured_text"
    assert reentrancy.reported_by == ["Model B"]

    assert missing_event.severity == Severity.MEDIUM
    assert missing_event.location == "setFee"


def test_keyword_fallback_synthesizes_low_confidence_findings():
    with pytest.warns(ParseDegradedWarning):
        result = _parse("This contract may suffer from reentrancy and has gas issues.")

    assert result.parse_method == "keyword_fallback"
    titles = {f.title: f for f in result.findings}
    assert set(titles) == {"Reentrancy Issue", "Gas Issue"}
    assert titles["Reentrancy Issue"].severity == Severity.CRITICAL
    assert titles["Gas Issue"].category == Category.GAS
    assert all(f.confidence == Confidence.LOW for f in result.findings)
    assert all(f.source == "keyword_fallback" for f in result.findings)


def test_plain_prose_degrades_to_diagnostic():
    """Prose with no JSON, headers or keywords still yields a finding."""
    with pytest.warns(ParseDegradedWarning):
        result = _parse("I cannot help with that request.")

    assert result.parse_method == "diagnostic"
    assert len(result.findings) == 1
    assert result.findings[0].severity == Severity.INFO
    assert "could not be parsed" in result.findings[0].description


@pytest.mark.parametrize("raw", ["", "   ", None])
def test_empty_output_never_raises(raw):
    with pytest.warns(ParseDegradedWarning):
        result = _parse(raw)

    assert len(result.findings) == 1
    assert result.findings[0].title == "Unparseable Model Response"


def test_failing_strategy_is_skipped():
    class Boom(ParseStrategy):
        name = "boom"

        def parse(self, raw_text, model_name):
            raise RuntimeError("boom")

    parser = ResponseParser([Boom(), DirectJSONStrategy()])
    result = parser.parse('{"findings": [{"severity": "LOW", "title": "x"}]}', "Model A")

    assert result.parse_method == "direct_json"
    assert result.parse_errors == ["boom: boom"]


# ============================================================================
# Normalizer
# ============================================================================

def test_normalizer_defaults_missing_fields():
    finding = normalize_finding({"description": "Something odd"})

    assert finding.severity == Severity.INFO
    assert finding.category == Category.SECURITY
    assert finding.title == "Unnamed Issue"
    assert finding.recommendation == "Review and address this issue"
    assert finding.location == "Unknown location"


@pytest.mark.parametrize("category,expected", [
    ("REENTRANCY", Category.SECURITY),
    ("ACCESS_CONTROL", Category.SECURITY),
    ("ARITHMETIC", Category.SECURITY),
    ("LOGIC", Category.SECURITY),
    ("GAS", Category.GAS),
    ("QUALITY", Category.QUALITY),
    ("best practice", Category.QUALITY),
    ("something-new", Category.SECURITY),
])
def test_normalizer_category_mapping(category, expected):
    assert normalize_finding({"title": "t", "category": category}).category == expected


def test_normalizer_severity_aliases():
    assert normalize_finding({"risk": "critical"}).severity == Severity.CRITICAL
    assert normalize_finding({"level": "Moderate"}).severity == Severity.MEDIUM
    assert normalize_finding({"severity": "bogus"}).severity == Severity.INFO


def test_normalizer_numeric_confidence():
    assert normalize_finding({"confidence": 0.95}).confidence == Confidence.HIGH
    assert normalize_finding({"confidence": 60}).confidence == Confidence.MEDIUM
    assert normalize_finding({"confidence": 0.2}).confidence == Confidence.LOW


# ============================================================================
# Strategy factory
# ============================================================================

def test_unknown_strategy_raises():
    with pytest.raises(ValueError):
        get_strategy("does_not_exist")


def test_cascade_always_ends_with_diagnostic():
    cascade = build_cascade(["direct_json"])

    assert [s.name for s in cascade] == ["direct_json", "diagnostic"]
    assert isinstance(cascade[-1], DiagnosticStrategy)
