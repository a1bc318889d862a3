"""
Shared router dependencies: browser session lookup and the route guard.
"""
from fastapi import Depends, HTTPException, Request, status

from rehearse.domain.schemas import Identity
from rehearse.services.route_guard import GuardState
from rehearse.services.session_manager import BrowserSession, SessionManager


def get_session_manager(request: Request) -> SessionManager:
    return request.app.state.session_manager


async def get_browser_session(
    request: Request,
    manager: SessionManager = Depends(get_session_manager),
) -> BrowserSession:
    """Resolve the caller's browser session; new ids are sent back by the cookie middleware."""
    session, created = manager.get_or_create(request.cookies.get(manager.config.session_cookie))
    if created:
        request.state.new_session_id = session.session_id
    return session


async def require_identity(
    request: Request,
    session: BrowserSession = Depends(get_browser_session),
) -> Identity:
    """Gate protected resources behind the route guard."""
    decision = await session.guard.resolve(request.url.path)

    if decision.state == GuardState.AUTHORIZED and session.auth.identity is not None:
        return session.auth.identity

    if decision.state == GuardState.CONFIGURATION_ERROR:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={
                "message": "Authentication service is not available",
                "reason": decision.reason,
                "redirect": decision.redirect,
                "guidance": decision.guidance,
                "links": decision.links,
            },
        )

    if decision.state == GuardState.PENDING:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"message": "Authentication is still loading", "reason": decision.reason},
            headers={"Retry-After": "1"},
        )

    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"message": "You must be logged in", "redirect": decision.redirect or "/login"},
    )
