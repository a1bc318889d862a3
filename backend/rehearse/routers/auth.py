"""
FastAPI router for authentication.

Sign-in, sign-up, sign-out and password reset for the caller's browser
session. Auth failures are reported in the body (``error``) with a 400 status;
an unconfigured backend is reported as 503.
"""
from fastapi import APIRouter, Depends, Request, Response, status

from rehearse.core.errors import ConfigurationError
from rehearse.core.rate_limit import RATE_LIMIT_AUTH, limiter
from rehearse.domain.schemas import (
    AuthResponse,
    AuthStatusResponse,
    ResetPasswordRequest,
    SignInRequest,
    SignUpRequest,
)
from rehearse.routers.deps import get_browser_session
from rehearse.services.auth_state import AuthResult
from rehearse.services.backend import MOCK_MODE_MESSAGE
from rehearse.services.session_manager import BrowserSession


router = APIRouter(prefix="/api/auth", tags=["Auth"])


def _ensure_configured(session: BrowserSession) -> None:
    if session.backend.is_mock:
        raise ConfigurationError(MOCK_MODE_MESSAGE)


def _respond(result: AuthResult, response: Response) -> AuthResponse:
    if not result.ok:
        response.status_code = status.HTTP_400_BAD_REQUEST
    return AuthResponse(identity=result.identity, error=result.error)


@router.post("/login", response_model=AuthResponse, summary="Sign in with email and password")
@limiter.limit(RATE_LIMIT_AUTH)
async def login(
    request: Request,
    response: Response,
    payload: SignInRequest,
    session: BrowserSession = Depends(get_browser_session),
) -> AuthResponse:
    _ensure_configured(session)
    result = await session.auth.sign_in(payload.email, payload.password)
    return _respond(result, response)


@router.post(
    "/signup",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create an account",
    description="Registers the user with a display name. The identity provider may require email confirmation before sign-in.",
)
@limiter.limit(RATE_LIMIT_AUTH)
async def signup(
    request: Request,
    response: Response,
    payload: SignUpRequest,
    session: BrowserSession = Depends(get_browser_session),
) -> AuthResponse:
    _ensure_configured(session)
    result = await session.auth.sign_up(payload.email, payload.password, payload.name)
    return _respond(result, response)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT, summary="Sign out")
async def logout(session: BrowserSession = Depends(get_browser_session)):
    # Local identity is cleared even if the remote call fails
    await session.auth.sign_out()
    return None


@router.post("/forgot-password", response_model=AuthResponse, summary="Send a password reset email")
@limiter.limit(RATE_LIMIT_AUTH)
async def forgot_password(
    request: Request,
    response: Response,
    payload: ResetPasswordRequest,
    session: BrowserSession = Depends(get_browser_session),
) -> AuthResponse:
    _ensure_configured(session)
    result = await session.auth.reset_password(payload.email)
    return _respond(result, response)


@router.get("/me", response_model=AuthStatusResponse, summary="Current auth state")
async def me(session: BrowserSession = Depends(get_browser_session)) -> AuthStatusResponse:
    auth = session.auth
    return AuthStatusResponse(
        identity=auth.identity,
        is_authenticated=auth.is_authenticated,
        is_loading=auth.loading,
        is_mock=session.backend.is_mock,
    )
