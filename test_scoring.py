#!/usr/bin/env python3
"""Score calculation tests."""

from defi_watchdog.data_models import Category, Confidence, Finding, GasOptimization, Severity
from defi_watchdog.scoring import gas_issue_count, score, security_score


def _finding(severity, category=Category.SECURITY, consensus=Confidence.MEDIUM, title="Issue"):
    return Finding(
        severity=severity,
        category=category,
        title=title,
        consensus_confidence=consensus,
    )


def test_clean_contract_scores():
    scores = score([])

    assert scores.security == 100
    assert scores.gas_optimization == 95
    assert scores.code_quality == 90
    # 60 + 23.75 + 13.5 = 97.25
    assert scores.overall == 97


def test_single_high_finding_worked_example():
    scores = score([_finding(Severity.HIGH)])

    assert scores.security == 85
    assert scores.gas_optimization == 95
    assert scores.code_quality == 90
    # 51 + 23.75 + 13.5 = 88.25
    assert scores.overall == 88


def test_consensus_confidence_scales_penalty():
    assert security_score([_finding(Severity.HIGH, consensus=Confidence.HIGH)]) == 82
    assert security_score([_finding(Severity.HIGH, consensus=Confidence.LOW)]) == 88
    assert security_score([_finding(Severity.HIGH, consensus=None)]) == 85


def test_security_score_clamped_at_zero():
    findings = [_finding(Severity.CRITICAL, consensus=Confidence.HIGH) for _ in range(5)]

    scores = score(findings)

    assert scores.security == 0
    assert 0 <= scores.overall <= 100


def test_non_security_findings_do_not_hit_security():
    findings = [
        _finding(Severity.HIGH, category=Category.GAS),
        _finding(Severity.MEDIUM, category=Category.QUALITY),
    ]

    scores = score(findings)

    assert scores.security == 100
    assert scores.gas_optimization == 92
    assert scores.code_quality == 85


def test_gas_optimizations_count_toward_gas_score():
    optimizations = [GasOptimization(title=f"Opt {i}") for i in range(3)]

    assert score([], optimizations).gas_optimization == 86


def test_gas_issue_reported_both_ways_counts_once():
    finding = Finding(
        severity=Severity.LOW,
        category=Category.GAS,
        title="Cache array length",
        location="loop in distribute()",
        consensus_confidence=Confidence.MEDIUM,
    )
    same = GasOptimization(title="cache  Array length", location="Loop in distribute()")
    other = GasOptimization(title="Pack storage slots", location="struct Position")

    assert gas_issue_count([finding], [same, other]) == 2
    assert score([finding], [same, other]).gas_optimization == 89


def test_gas_and_quality_floors():
    gas = [_finding(Severity.LOW, category=Category.GAS) for _ in range(40)]
    quality = [_finding(Severity.LOW, category=Category.QUALITY) for _ in range(40)]

    scores = score(gas + quality)

    assert scores.gas_optimization == 50
    assert scores.code_quality == 60


def test_adding_a_security_finding_never_raises_score():
    base = [_finding(Severity.MEDIUM)]
    for severity in Severity:
        worse = base + [_finding(severity)]
        assert score(worse).security <= score(base).security
        assert score(worse).overall <= score(base).overall


def test_scoring_is_pure():
    findings = [_finding(Severity.CRITICAL), _finding(Severity.LOW, category=Category.GAS)]

    assert score(findings) == score(list(findings))
