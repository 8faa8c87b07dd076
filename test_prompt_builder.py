#!/usr/bin/env python3
"""Prompt builder tests."""

import json

import pytest

from defi_watchdog.data_models import AnalysisMode, FocusArea, ModelDescriptor
from defi_watchdog.prompt_builder import PromptBuilder

GAS_MODEL = ModelDescriptor(id="w/gas", name="WizardLM 2", focus_area=FocusArea.GAS_EFFICIENCY)
DEFI_MODEL = ModelDescriptor(id="l/defi", name="Llama", focus_area=FocusArea.DEFI_SECURITY)


def test_prompt_names_contract_and_focus():
    prompt = PromptBuilder().build_prompt(GAS_MODEL, "Vault")

    assert "CONTRACT: Vault" in prompt
    assert "Gas optimization and efficiency analysis" in prompt
    assert "GAS OPTIMIZATION FOCUS" in prompt
    assert "DEFI SECURITY FOCUS" not in prompt


def test_prompt_ends_with_schema_and_json_only_instruction():
    prompt = PromptBuilder().build_prompt(DEFI_MODEL, "Vault")

    assert prompt.endswith("JSON only, no prose.")
    assert '"securityScore": 85' in prompt
    assert '"gasOptimizations"' in prompt


def test_output_schema_is_valid_json():
    schema = json.loads(PromptBuilder()._get_output_schema())

    assert set(schema) == {"securityScore", "findings", "gasOptimizations", "summary"}


@pytest.mark.parametrize("mode,marker", [
    (AnalysisMode.AGGRESSIVE, "AGGRESSIVE MODE"),
    ("focused", "FOCUSED MODE"),
])
def test_mode_addenda(mode, marker):
    prompt = PromptBuilder().build_prompt(DEFI_MODEL, "Vault", mode=mode)

    assert marker in prompt


def test_normal_mode_has_no_mode_addendum():
    prompt = PromptBuilder().build_prompt(DEFI_MODEL, "Vault")

    assert "AGGRESSIVE MODE" not in prompt
    assert "FOCUSED MODE" not in prompt


def test_custom_prompt_replaces_builtin_but_keeps_schema():
    prompt = PromptBuilder().build_prompt(
        DEFI_MODEL, "Vault", custom_prompt="Check only the withdraw path."
    )

    assert prompt.startswith("Check only the withdraw path.")
    assert "DEFI SECURITY FOCUS" not in prompt
    assert "CRITICAL: You MUST return valid JSON in this exact format:" in prompt
    assert prompt.endswith("JSON only, no prose.")


def test_blank_custom_prompt_is_ignored():
    prompt = PromptBuilder().build_prompt(DEFI_MODEL, "Vault", custom_prompt="   ")

    assert "DEFI SECURITY FOCUS" in prompt


def test_braces_in_contract_name_survive():
    prompt = PromptBuilder().build_prompt(DEFI_MODEL, "Weird{Name}")

    assert "CONTRACT: Weird{Name}" in prompt


def test_prompts_are_pure():
    builder = PromptBuilder()

    assert builder.build_prompt(GAS_MODEL, "Vault") == builder.build_prompt(GAS_MODEL, "Vault")


def test_user_message_fences_source():
    message = PromptBuilder().build_user_message("Audit", "contract A {}")

    assert message == "Audit\n\n**CONTRACT TO ANALYZE:**\n```solidity\ncontract A {}\n```"


def test_system_prompt_mentions_focus():
    system = PromptBuilder().build_system_prompt(GAS_MODEL)

    assert "Gas optimization and efficiency analysis" in system
    assert system.endswith("Always respond with valid JSON only.")
