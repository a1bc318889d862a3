from __future__ import annotations

import dataclasses
import json
from pathlib import Path

import pytest

from rehearse.core.config import (
    PLACEHOLDER_SUPABASE_ANON_KEY,
    PLACEHOLDER_SUPABASE_URL,
    AppConfig,
    load_config,
)


def _runtime_file(tmp_path: Path, payload) -> Path:
    path = tmp_path / "runtime.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


def test_environment_values_are_used() -> None:
    config = load_config(
        {
            "SUPABASE_URL": "https://abc.supabase.co",
            "SUPABASE_ANON_KEY": "anon",
            "OPENAI_API_KEY": "sk-test",
            "OPENAI_MODEL": "gpt-4o",
        }
    )

    assert config.supabase_url == "https://abc.supabase.co"
    assert config.supabase_anon_key == "anon"
    assert config.openai_api_key == "sk-test"
    assert config.openai_model == "gpt-4o"
    assert config.supabase_url_source == "environment"
    assert config.openai_configured
    assert not config.is_mock


def test_environment_wins_over_runtime_file(tmp_path: Path) -> None:
    runtime = _runtime_file(
        tmp_path,
        {"supabase": {"url": "https://file.supabase.co", "anonKey": "file-key"}},
    )

    config = load_config({"SUPABASE_URL": "https://env.supabase.co"}, runtime_file=runtime)

    assert config.supabase_url == "https://env.supabase.co"
    assert config.supabase_url_source == "environment"
    assert config.supabase_anon_key == "file-key"
    assert config.supabase_key_source == "runtime-file"


def test_runtime_file_is_read_from_environment_variable(tmp_path: Path) -> None:
    runtime = _runtime_file(
        tmp_path,
        {
            "supabase": {"url": "https://file.supabase.co", "anonKey": "file-key"},
            "openai": {"apiKey": "sk-file"},
        },
    )

    config = load_config({"REHEARSE_RUNTIME_CONFIG": str(runtime)})

    assert config.supabase_url == "https://file.supabase.co"
    assert config.openai_api_key == "sk-file"
    assert config.openai_key_source == "runtime-file"


def test_placeholders_mean_mock_mode() -> None:
    config = load_config({})

    assert config.supabase_url == PLACEHOLDER_SUPABASE_URL
    assert config.supabase_anon_key == PLACEHOLDER_SUPABASE_ANON_KEY
    assert config.supabase_url_source == "placeholder"
    assert config.is_mock
    assert config.missing_variables() == ("SUPABASE_URL", "SUPABASE_ANON_KEY")
    assert config.openai_api_key is None
    assert not config.openai_configured


def test_one_placeholder_is_enough_for_mock_mode() -> None:
    config = load_config({"SUPABASE_URL": "https://abc.supabase.co"})

    assert config.is_mock
    assert config.missing_variables() == ("SUPABASE_ANON_KEY",)


def test_next_public_aliases_are_accepted() -> None:
    config = load_config(
        {
            "NEXT_PUBLIC_SUPABASE_URL": "https://alias.supabase.co",
            "NEXT_PUBLIC_SUPABASE_ANON_KEY": "alias-key",
        }
    )

    assert config.supabase_url == "https://alias.supabase.co"
    assert not config.is_mock


@pytest.mark.parametrize("payload", ["not json", "[1, 2, 3]"])
def test_unreadable_runtime_file_is_ignored(tmp_path: Path, payload: str) -> None:
    path = tmp_path / "runtime.json"
    path.write_text(payload, encoding="utf-8")

    config = load_config({}, runtime_file=path)

    assert config.is_mock


def test_missing_runtime_file_is_ignored(tmp_path: Path) -> None:
    config = load_config({}, runtime_file=tmp_path / "missing.json")

    assert config.is_mock


def test_origins_site_url_and_grace_period() -> None:
    config = load_config(
        {
            "ALLOWED_ORIGINS": "https://app.example.com, http://localhost:3000",
            "AUTH_GRACE_PERIOD_SECONDS": "5",
        }
    )

    assert config.allowed_origins == ("https://app.example.com", "http://localhost:3000")
    assert config.site_url == "https://app.example.com"
    assert config.auth_grace_period == 5.0


def test_invalid_grace_period_falls_back_to_default() -> None:
    config = load_config({"AUTH_GRACE_PERIOD_SECONDS": "soon"})

    assert config.auth_grace_period == 2.0


def test_browser_session_limits() -> None:
    config = load_config({"REHEARSE_SESSION_TTL_SECONDS": "120", "REHEARSE_MAX_SESSIONS": "50"})

    assert config.session_idle_ttl == 120.0
    assert config.max_sessions == 50
    assert load_config({}).session_idle_ttl == 1800.0

def test_config_is_immutable() -> None:
    config = AppConfig(supabase_url="https://abc.supabase.co", supabase_anon_key="anon")

    with pytest.raises(dataclasses.FrozenInstanceError):
        config.supabase_url = "https://other.supabase.co"  # type: ignore[misc]
