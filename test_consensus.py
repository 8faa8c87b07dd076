#!/usr/bin/env python3
"""Consensus engine tests: dedup, cross-verification and ordering."""

from defi_watchdog.consensus import ConsensusEngine, fingerprint
from defi_watchdog.data_models import (
    Category,
    Confidence,
    Finding,
    GasOptimization,
    ModelDescriptor,
    ModelInvocationResult,
    ParserResult,
    Severity,
)


def _model(name, weight=1.0):
    return ModelDescriptor(id=f"test/{name.lower().replace(' ', '-')}", name=name, weight=weight)


def _finding(severity, title, location="withdraw()", category=Category.SECURITY,
             confidence=Confidence.MEDIUM, description=""):
    return Finding(
        severity=severity,
        category=category,
        title=title,
        location=location,
        confidence=confidence,
        description=description,
    )


def _ok(model, findings, gas_optimizations=None):
    return ModelInvocationResult(
        model=model,
        success=True,
        elapsed_ms=10,
        raw_text="{}",
        parsed=ParserResult(findings=findings, gas_optimizations=gas_optimizations or []),
    )


def _failed(model):
    return ModelInvocationResult(model=model, success=False, elapsed_ms=10, error="timeout")


# ============================================================================
# Fingerprint
# ============================================================================

def test_fingerprint_ignores_case_and_whitespace():
    a = _finding(Severity.HIGH, "Reentrancy  Attack", location="withdraw()")
    b = _finding(Severity.HIGH, "reentrancy attack", location=" Withdraw() ")

    assert fingerprint(a) == fingerprint(b)
    assert fingerprint(a) == "high|security|reentrancy attack|withdraw()"


def test_fingerprint_separates_severity():
    a = _finding(Severity.HIGH, "Reentrancy")
    b = _finding(Severity.MEDIUM, "Reentrancy")

    assert fingerprint(a) != fingerprint(b)


# ============================================================================
# Reconciliation
# ============================================================================

def test_identical_findings_from_two_models_merge():
    a, b = _model("Model A"), _model("Model B")
    result = ConsensusEngine().reconcile([
        _ok(a, [_finding(Severity.MEDIUM, "Missing event")]),
        _ok(b, [_finding(Severity.MEDIUM, "Missing event")]),
    ])

    assert len(result.findings) == 1
    merged = result.findings[0]
    assert merged.consensus_count == 2
    assert merged.consensus_confidence == Confidence.MEDIUM
    assert merged.reported_by == ["Model A", "Model B"]
    assert result.duplicates_removed == 1
    assert result.total_findings == 2
    assert result.consensus_level == 50


def test_three_models_give_high_consensus():
    models = [_model("Model A"), _model("Model B"), _model("Model C")]
    result = ConsensusEngine().reconcile([
        _ok(m, [_finding(Severity.LOW, "Floating pragma", location="pragma")]) for m in models
    ])

    assert len(result.findings) == 1
    assert result.findings[0].consensus_count == 3
    assert result.findings[0].consensus_confidence == Confidence.HIGH


def test_same_model_twice_counts_once():
    a = _model("Model A")
    result = ConsensusEngine().reconcile([
        _ok(a, [_finding(Severity.HIGH, "Reentrancy"), _finding(Severity.HIGH, "Reentrancy")]),
    ])

    assert result.findings[0].consensus_count == 1
    assert result.duplicates_removed == 1


def test_singleton_severe_finding_is_kept_with_medium_confidence():
    """A lone CRITICAL/HIGH report is never silently dropped."""
    result = ConsensusEngine().reconcile([
        _ok(_model("Model A"), [_finding(Severity.CRITICAL, "Unprotected selfdestruct", location="kill()")]),
        _ok(_model("Model B"), []),
    ])

    assert len(result.findings) == 1
    assert result.findings[0].consensus_confidence == Confidence.MEDIUM
    assert result.findings[0].consensus_count == 1


def test_singleton_minor_finding_is_dropped():
    result = ConsensusEngine().reconcile([
        _ok(_model("Model A"), [
            _finding(Severity.MEDIUM, "Timestamp dependence", location="claim()"),
            _finding(Severity.INFO, "Unparseable Model Response", location="Model Output",
                     category=Category.QUALITY),
        ]),
    ])

    assert result.findings == []
    assert result.total_findings == 2
    assert result.consensus_level == 0


def test_failed_results_contribute_nothing():
    a, b = _model("Model A"), _model("Model B")
    result = ConsensusEngine().reconcile([
        _ok(a, [_finding(Severity.HIGH, "Reentrancy")]),
        _failed(b),
    ])

    assert result.total_findings == 1
    assert result.findings[0].reported_by == ["Model A"]


def test_verified_findings_sorted_by_severity_then_consensus():
    a, b = _model("Model A"), _model("Model B")
    result = ConsensusEngine().reconcile([
        _ok(a, [
            _finding(Severity.MEDIUM, "Unchecked call", location="pay()"),
            _finding(Severity.HIGH, "Oracle manipulation", location="price()"),
            _finding(Severity.HIGH, "Reentrancy"),
        ]),
        _ok(b, [
            _finding(Severity.MEDIUM, "Unchecked call", location="pay()"),
            _finding(Severity.CRITICAL, "Owner can drain funds", location="sweep()"),
            _finding(Severity.HIGH, "Reentrancy"),
        ]),
    ])

    assert [f.title for f in result.findings] == [
        "Owner can drain funds",
        "Reentrancy",
        "Oracle manipulation",
        "Unchecked call",
    ]


def test_representative_prefers_confidence_times_weight():
    heavy, light = _model("Heavy", weight=2.0), _model("Light", weight=1.0)
    result = ConsensusEngine().reconcile([
        _ok(light, [_finding(Severity.HIGH, "Reentrancy", confidence=Confidence.HIGH,
                             description="from light")]),
        _ok(heavy, [_finding(Severity.HIGH, "Reentrancy", confidence=Confidence.MEDIUM,
                             description="from heavy")]),
    ])

    # MEDIUM (2) x 2.0 outranks HIGH (3) x 1.0
    assert result.findings[0].description == "from heavy"
    assert result.findings[0].reported_by == ["Light", "Heavy"]


def test_representative_tie_keeps_first_member():
    a, b = _model("Model A"), _model("Model B")
    result = ConsensusEngine().reconcile([
        _ok(a, [_finding(Severity.HIGH, "Reentrancy", description="first")]),
        _ok(b, [_finding(Severity.HIGH, "Reentrancy", description="second")]),
    ])

    assert result.findings[0].description == "first"


def test_reconcile_is_idempotent_on_merged_output():
    a, b = _model("Model A"), _model("Model B")
    first = ConsensusEngine().reconcile([
        _ok(a, [_finding(Severity.HIGH, "Reentrancy")]),
        _ok(b, [_finding(Severity.HIGH, "Reentrancy")]),
    ])
    again = ConsensusEngine().reconcile([_ok(a, first.findings)])

    assert [f.fingerprint for f in again.findings] == [f.fingerprint for f in first.findings]


def test_gas_optimizations_deduplicated_by_title_and_location():
    a, b = _model("Model A"), _model("Model B")
    pack = GasOptimization(title="Pack storage", location="struct User", savings="2100 gas")
    result = ConsensusEngine().reconcile([
        _ok(a, [], [pack]),
        _ok(b, [], [GasOptimization(title="pack  storage", location="Struct User")]),
    ])

    assert len(result.gas_optimizations) == 1
    assert result.gas_optimizations[0].savings == "2100 gas"
    assert result.gas_optimizations[0].reported_by == ["Model A", "Model B"]
    # Inputs are not mutated
    assert pack.reported_by == []


def test_consensus_result_to_dict():
    result = ConsensusEngine().reconcile([])

    assert result.to_dict() == {
        "totalFindings": 0,
        "verifiedFindings": 0,
        "duplicatesRemoved": 0,
        "consensusLevel": "0%",
    }
