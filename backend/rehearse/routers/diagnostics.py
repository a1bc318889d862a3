"""
FastAPI router for connection diagnostics and the setup-error view.

These endpoints are public: they exist to explain why the protected ones
are unavailable.
"""
from fastapi import APIRouter, Depends
from fastapi.concurrency import run_in_threadpool

from rehearse.domain.schemas import ConfigReportResponse, ConnectionTestResponse, SetupErrorResponse
from rehearse.routers.deps import get_browser_session, get_session_manager
from rehearse.services.diagnostics import check_connection, config_report, setup_status
from rehearse.services.session_manager import BrowserSession, SessionManager


router = APIRouter(prefix="/api", tags=["Diagnostics"])


@router.get("/diagnostics/connection", response_model=ConnectionTestResponse, summary="Test the Supabase connection")
async def connection(session: BrowserSession = Depends(get_browser_session)) -> ConnectionTestResponse:
    return await run_in_threadpool(check_connection, session.backend)


@router.get("/diagnostics/config", response_model=ConfigReportResponse, summary="Configuration values and their sources")
async def config(manager: SessionManager = Depends(get_session_manager)) -> ConfigReportResponse:
    return config_report(manager.config)


@router.get("/setup-error", response_model=SetupErrorResponse, summary="Setup instructions for an unconfigured deployment")
async def setup_error(manager: SessionManager = Depends(get_session_manager)) -> SetupErrorResponse:
    return setup_status(manager.config)
