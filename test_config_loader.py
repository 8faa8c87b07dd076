#!/usr/bin/env python3
"""Model roster loading and settings tests."""

import pytest

from defi_watchdog.config import Settings
from defi_watchdog.config_loader import ConfigLoader
from defi_watchdog.data_models import FocusArea


def _write(tmp_path, text):
    path = tmp_path / "models.yaml"
    path.write_text(text, encoding="utf-8")
    return path


# ============================================================================
# Model roster
# ============================================================================

def test_bundled_roster_has_four_specialists():
    models = ConfigLoader.load_models()

    assert [m.name for m in models] == ["DeepSeek R1", "Qwen 2.5 72B", "Llama 3.1 70B", "WizardLM 2"]
    assert [m.weight for m in models] == [1.2, 1.1, 1.0, 0.9]
    assert models[3].focus_area == FocusArea.GAS_EFFICIENCY


def test_load_custom_roster_with_env_substitution(tmp_path, monkeypatch):
    monkeypatch.setenv("AUDIT_MODEL", "anthropic/claude-3-haiku")
    path = _write(tmp_path, """
models:
  - id: "${AUDIT_MODEL}"
    name: "Haiku"
    focus_area: defi-security
    weight: 1.5
    timeout_seconds: 45
""")

    models = ConfigLoader.load_models(path)

    assert len(models) == 1
    assert models[0].id == "anthropic/claude-3-haiku"
    assert models[0].focus_area == FocusArea.DEFI_SECURITY
    assert models[0].timeout_seconds == 45.0


def test_missing_env_var_becomes_empty_string(monkeypatch):
    monkeypatch.delenv("NOT_SET_ANYWHERE", raising=False)

    assert ConfigLoader.resolve_env_vars({"a": ["x${NOT_SET_ANYWHERE}y"]}) == {"a": ["xy"]}


def test_focus_area_defaults_to_general(tmp_path):
    path = _write(tmp_path, "models:\n  - id: a/b\n    name: B\n")

    assert ConfigLoader.load_models(path)[0].focus_area == FocusArea.GENERAL


@pytest.mark.parametrize("text", [
    "models: []\n",
    "models:\n  - name: NoId\n",
    "models:\n  - id: a/b\n",
    "models:\n  - id: a/b\n    name: B\n  - id: a/b\n    name: C\n",
    "models:\n  - id: a/b\n    name: B\n    focus_area: vibes\n",
    "models:\n  - id: a/b\n    name: B\n    weight: 0\n",
    "models:\n  - id: a/b\n    name: B\n    weight: heavy\n",
    "- just a list\n",
])
def test_invalid_rosters_rejected(tmp_path, text):
    with pytest.raises(ValueError):
        ConfigLoader.load_models(_write(tmp_path, text))


def test_explicit_missing_path_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        ConfigLoader.load_models(tmp_path / "nope.yaml")


# ============================================================================
# Settings
# ============================================================================

def test_settings_from_env():
    settings = Settings.from_env({
        "OPENROUTER_API_KEY": "sk-test",
        "WATCHDOG_MODEL_TIMEOUT": "30",
        "WATCHDOG_MAX_CONCURRENCY": "2",
        "WATCHDOG_MAX_RETRIES": "1",
    })

    assert settings.api_key == "sk-test"
    assert settings.base_url == "https://openrouter.ai/api/v1"
    assert settings.timeout_seconds == 30.0
    assert settings.max_concurrency == 2
    assert settings.max_retries == 1
    assert settings.max_tokens == 4000
    assert settings.referer == "https://defiwatchdog.com"


def test_settings_defaults_match_provider_contract():
    settings = Settings.from_env({})

    assert settings.api_key == ""
    assert settings.timeout_seconds == 120.0
    assert settings.temperature == 0.1
    assert settings.top_p == 0.9
    assert settings.max_retries == 0


@pytest.mark.parametrize("env", [
    {"WATCHDOG_MODEL_TIMEOUT": "soon"},
    {"WATCHDOG_MODEL_TIMEOUT": "0"},
    {"WATCHDOG_MAX_RETRIES": "-1"},
    {"WATCHDOG_MAX_CONCURRENCY": "lots"},
])
def test_settings_reject_bad_values(env):
    with pytest.raises(ValueError):
        Settings.from_env(env)
