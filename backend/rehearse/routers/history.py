"""
FastAPI router for the practice history view.
"""
from fastapi import APIRouter, Depends, Response, status

from rehearse.core.errors import RemoteError
from rehearse.domain.schemas import HistoryResponse
from rehearse.routers.deps import get_browser_session, require_identity
from rehearse.services.session_manager import BrowserSession


router = APIRouter(
    prefix="/api/history",
    tags=["History"],
    dependencies=[Depends(require_identity)],
)


def _state(session: BrowserSession) -> HistoryResponse:
    view = session.history
    return HistoryResponse(sessions=view.sessions, expanded_id=view.expanded_id, error=view.error)


@router.get("", response_model=HistoryResponse, summary="List saved practice sessions, newest first")
async def list_sessions(
    response: Response,
    session: BrowserSession = Depends(get_browser_session),
) -> HistoryResponse:
    try:
        await session.history.refresh()
    except RemoteError:
        # The view keeps a user-facing message; report it with the current list
        response.status_code = status.HTTP_502_BAD_GATEWAY
    return _state(session)


@router.post("/{session_id}/toggle", response_model=HistoryResponse, summary="Expand or collapse a session")
async def toggle(session_id: str, session: BrowserSession = Depends(get_browser_session)) -> HistoryResponse:
    session.history.toggle(session_id)
    return _state(session)


@router.delete(
    "/{session_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a practice session",
    description="Removes the stored recording (best effort) and then the session row.",
)
async def delete_session(session_id: str, session: BrowserSession = Depends(get_browser_session)):
    await session.history.delete(session_id)
    return None
