"""
Runtime configuration for the RehearseAI backend.

Values are resolved once at startup into an immutable ``AppConfig`` that is
handed to every collaborator. Each value has exactly one resolution order:

1. process environment (``.env`` is loaded into it by python-dotenv first)
2. runtime configuration file named by ``REHEARSE_RUNTIME_CONFIG``
3. hard-coded placeholders

Placeholder backend credentials put the service in "mock" mode, which is
reported separately from a real connection failure.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

from dotenv import load_dotenv


LOGGER = logging.getLogger(__name__)

PLACEHOLDER_SUPABASE_URL = "https://example.supabase.co"
PLACEHOLDER_SUPABASE_ANON_KEY = "dummy-key-for-development"

DEFAULT_OPENAI_MODEL = "gpt-4o-mini"
DEFAULT_ALLOWED_ORIGINS = "http://localhost:5173"
DEFAULT_GRACE_PERIOD_SECONDS = 2.0
DEFAULT_SESSION_COOKIE = "rehearse_session"
DEFAULT_SESSION_IDLE_TTL_SECONDS = 1800.0
DEFAULT_MAX_SESSIONS = 1000

RUNTIME_CONFIG_ENV = "REHEARSE_RUNTIME_CONFIG"

# (environment names, runtime-file path) per backend value
_SUPABASE_URL_KEYS = (("SUPABASE_URL", "NEXT_PUBLIC_SUPABASE_URL"), ("supabase", "url"))
_SUPABASE_KEY_KEYS = (("SUPABASE_ANON_KEY", "NEXT_PUBLIC_SUPABASE_ANON_KEY"), ("supabase", "anonKey"))
_OPENAI_KEY_KEYS = (("OPENAI_API_KEY", "NEXT_PUBLIC_OPENAI_API_KEY"), ("openai", "apiKey"))

SOURCE_ENVIRONMENT = "environment"
SOURCE_RUNTIME_FILE = "runtime-file"
SOURCE_PLACEHOLDER = "placeholder"


@dataclass(frozen=True)
class AppConfig:
    """Immutable configuration value shared by all collaborators."""

    supabase_url: str
    supabase_anon_key: str
    openai_api_key: Optional[str] = None
    openai_model: str = DEFAULT_OPENAI_MODEL
    openai_base_url: Optional[str] = None
    allowed_origins: Tuple[str, ...] = (DEFAULT_ALLOWED_ORIGINS,)
    site_url: str = DEFAULT_ALLOWED_ORIGINS
    auth_grace_period: float = DEFAULT_GRACE_PERIOD_SECONDS
    session_cookie: str = DEFAULT_SESSION_COOKIE
    session_idle_ttl: float = DEFAULT_SESSION_IDLE_TTL_SECONDS
    max_sessions: int = DEFAULT_MAX_SESSIONS
    supabase_url_source: str = SOURCE_ENVIRONMENT
    supabase_key_source: str = SOURCE_ENVIRONMENT
    openai_key_source: Optional[str] = None

    @property
    def is_mock(self) -> bool:
        """True when the backend credentials are missing or placeholders."""
        if not self.supabase_url or not self.supabase_anon_key:
            return True
        return (
            self.supabase_url == PLACEHOLDER_SUPABASE_URL
            or self.supabase_anon_key == PLACEHOLDER_SUPABASE_ANON_KEY
        )

    @property
    def openai_configured(self) -> bool:
        return bool(self.openai_api_key)

    def missing_variables(self) -> Tuple[str, ...]:
        """Names of required variables that did not resolve to real values."""
        missing = []
        if not self.supabase_url or self.supabase_url == PLACEHOLDER_SUPABASE_URL:
            missing.append("SUPABASE_URL")
        if not self.supabase_anon_key or self.supabase_anon_key == PLACEHOLDER_SUPABASE_ANON_KEY:
            missing.append("SUPABASE_ANON_KEY")
        return tuple(missing)


def _read_runtime_file(path: Optional[Path]) -> Dict[str, Any]:
    if path is None:
        return {}
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = json.load(handle)
    except FileNotFoundError:
        LOGGER.warning("Runtime configuration file '%s' does not exist; ignoring it.", path)
        return {}
    except (OSError, json.JSONDecodeError) as exc:
        LOGGER.warning("Runtime configuration file '%s' is unreadable: %s", path, exc)
        return {}
    if not isinstance(data, dict):
        LOGGER.warning("Runtime configuration file '%s' must contain a JSON object.", path)
        return {}
    return data


def _resolve(
    env: Mapping[str, str],
    runtime: Mapping[str, Any],
    keys: Tuple[Tuple[str, ...], Tuple[str, str]],
    placeholder: Optional[str],
) -> Tuple[Optional[str], Optional[str]]:
    env_names, (section, field) = keys
    for name in env_names:
        value = (env.get(name) or "").strip()
        if value:
            return value, SOURCE_ENVIRONMENT

    block = runtime.get(section)
    if isinstance(block, dict):
        value = str(block.get(field) or "").strip()
        if value:
            return value, SOURCE_RUNTIME_FILE

    if placeholder is None:
        return None, None
    return placeholder, SOURCE_PLACEHOLDER


def _parse_float(raw: Optional[str], default: float) -> float:
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        LOGGER.warning("Invalid number '%s' in configuration; using %s.", raw, default)
        return default
    return value if value > 0 else default


def load_config(
    env: Optional[Mapping[str, str]] = None,
    *,
    runtime_file: Optional[Path] = None,
) -> AppConfig:
    """Resolve the application configuration.

    Args:
        env: Mapping to read variables from. Defaults to ``os.environ`` after
            loading a ``.env`` file (existing variables are never overridden).
        runtime_file: Optional JSON file; defaults to ``$REHEARSE_RUNTIME_CONFIG``.

    Returns:
        Frozen ``AppConfig``.
    """
    if env is None:
        load_dotenv(override=False)
        env = os.environ

    if runtime_file is None and env.get(RUNTIME_CONFIG_ENV):
        runtime_file = Path(env[RUNTIME_CONFIG_ENV])
    runtime = _read_runtime_file(runtime_file)

    supabase_url, url_source = _resolve(env, runtime, _SUPABASE_URL_KEYS, PLACEHOLDER_SUPABASE_URL)
    supabase_key, key_source = _resolve(env, runtime, _SUPABASE_KEY_KEYS, PLACEHOLDER_SUPABASE_ANON_KEY)
    openai_key, openai_source = _resolve(env, runtime, _OPENAI_KEY_KEYS, None)

    raw_origins = env.get("ALLOWED_ORIGINS", DEFAULT_ALLOWED_ORIGINS)
    origins = tuple(o.strip() for o in raw_origins.split(",") if o.strip()) or (DEFAULT_ALLOWED_ORIGINS,)

    config = AppConfig(
        supabase_url=supabase_url or PLACEHOLDER_SUPABASE_URL,
        supabase_anon_key=supabase_key or PLACEHOLDER_SUPABASE_ANON_KEY,
        openai_api_key=openai_key,
        openai_model=(env.get("OPENAI_MODEL") or DEFAULT_OPENAI_MODEL).strip(),
        openai_base_url=(env.get("OPENAI_BASE_URL") or "").strip() or None,
        allowed_origins=origins,
        site_url=(env.get("SITE_URL") or origins[0]).rstrip("/"),
        auth_grace_period=_parse_float(env.get("AUTH_GRACE_PERIOD_SECONDS"), DEFAULT_GRACE_PERIOD_SECONDS),
        session_cookie=(env.get("REHEARSE_SESSION_COOKIE") or DEFAULT_SESSION_COOKIE).strip(),
        session_idle_ttl=_parse_float(env.get("REHEARSE_SESSION_TTL_SECONDS"), DEFAULT_SESSION_IDLE_TTL_SECONDS),
        max_sessions=int(_parse_float(env.get("REHEARSE_MAX_SESSIONS"), DEFAULT_MAX_SESSIONS)),
        supabase_url_source=url_source or SOURCE_PLACEHOLDER,
        supabase_key_source=key_source or SOURCE_PLACEHOLDER,
        openai_key_source=openai_source,
    )

    if config.is_mock:
        LOGGER.warning(
            "Supabase credentials are not configured (%s); running in mock mode.",
            ", ".join(config.missing_variables()),
        )
    return config


__all__ = [
    "AppConfig",
    "load_config",
    "PLACEHOLDER_SUPABASE_URL",
    "PLACEHOLDER_SUPABASE_ANON_KEY",
]
