"""
Connection diagnostics and configuration reporting.

Used by the diagnostics and setup-error views to tell an unconfigured
deployment apart from a configured one that cannot reach the backend.
"""
from __future__ import annotations

import logging
from typing import Dict, Optional

from rehearse.core.config import AppConfig
from rehearse.core.errors import RehearseError
from rehearse.domain.schemas import ConfigReportResponse, ConnectionTestResponse, SetupErrorResponse
from rehearse.services.backend import PRACTICE_SESSIONS_TABLE, REQUIRED_BUCKETS, BackendClient


LOGGER = logging.getLogger(__name__)

REQUIRED_VARIABLES = ["SUPABASE_URL", "SUPABASE_ANON_KEY"]


def mask_secret(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    if len(value) <= 8:
        return "*" * len(value)
    return f"{value[:5]}{'*' * 5}"


def check_connection(backend: BackendClient) -> ConnectionTestResponse:
    """Check auth, database and storage reachability in that order."""
    if backend.is_mock:
        LOGGER.error("Using mock Supabase client. Check your environment variables.")
        return ConnectionTestResponse(
            success=False,
            error="Missing Supabase credentials in environment variables",
        )

    try:
        session = backend.get_session()
        backend.check_table(PRACTICE_SESSIONS_TABLE)
        buckets = backend.list_buckets()
    except RehearseError as exc:
        LOGGER.error("Supabase connection test failed: %s", exc)
        return ConnectionTestResponse(success=False, error=str(exc))

    missing = [name for name in REQUIRED_BUCKETS if name not in buckets]
    if missing:
        LOGGER.warning("Missing storage buckets: %s", ", ".join(missing))
    return ConnectionTestResponse(
        success=True,
        auth_status="authenticated" if session else "not authenticated",
        database_status="connected",
        storage_status="accessible",
        buckets=buckets,
        missing_buckets=missing,
    )


def config_report(config: AppConfig) -> ConfigReportResponse:
    values: Dict[str, Dict[str, Optional[str]]] = {
        "SUPABASE_URL": {"value": config.supabase_url, "source": config.supabase_url_source},
        "SUPABASE_ANON_KEY": {
            "value": mask_secret(config.supabase_anon_key),
            "source": config.supabase_key_source,
        },
        "OPENAI_API_KEY": {
            "value": mask_secret(config.openai_api_key),
            "source": config.openai_key_source,
        },
        "OPENAI_MODEL": {"value": config.openai_model, "source": None},
    }
    return ConfigReportResponse(is_mock=config.is_mock, values=values)


def setup_status(config: AppConfig) -> SetupErrorResponse:
    missing = list(config.missing_variables())
    if missing:
        message = (
            "The application is not properly configured. "
            "Please make sure to set up the required environment variables."
        )
    else:
        message = "The application is configured."
    return SetupErrorResponse(
        is_mock=config.is_mock,
        missing_variables=missing,
        required_variables=list(REQUIRED_VARIABLES),
        message=message,
    )
