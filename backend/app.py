"""
FastAPI application entrypoint (orchestration only).

Responsibilities:
- Load environment variables and resolve the immutable configuration
- Instantiate FastAPI app with its browser session registry
- Configure middleware (CORS), rate limiting and error handlers
- Register routers from modular packages

All business logic and endpoints live in dedicated modules under `rehearse/`.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

# Load environment variables BEFORE resolving configuration
load_dotenv()

from rehearse.core.config import AppConfig, load_config
from rehearse.core.errors import RehearseError
from rehearse.core.logging_utils import configure_logging
from rehearse.core.rate_limit import limiter
from rehearse.routers import auth, diagnostics, health, history, practice, tailored
from rehearse.services.session_manager import SessionManager


LOGGER = logging.getLogger("rehearse.app")


async def rehearse_error_handler(request: Request, exc: RehearseError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "error": exc.kind},
    )


def create_app(
    config: Optional[AppConfig] = None,
    *,
    session_manager: Optional[SessionManager] = None,
) -> FastAPI:
    configure_logging()
    if config is None:
        config = session_manager.config if session_manager is not None else load_config()
    manager = session_manager if session_manager is not None else SessionManager(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if config.is_mock:
            LOGGER.warning(
                "Missing Supabase credentials (%s); protected routes will report a setup error",
                ", ".join(config.missing_variables()),
            )
        if not config.openai_configured:
            LOGGER.warning("OPENAI_API_KEY not set; tailored questions will use sample questions")
        yield
        LOGGER.info("Closing %d browser session(s)", manager.count())
        manager.close_all()

    app = FastAPI(
        title="RehearseAI API",
        description="Interview practice backend: recorded answers, self-assessment and tailored questions",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.session_manager = manager
    app.state.limiter = limiter

    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_exception_handler(RehearseError, rehearse_error_handler)

    @app.middleware("http")
    async def session_cookie_middleware(request: Request, call_next):
        # Set on every response, error responses included, so the browser keeps one session
        response = await call_next(request)
        new_session_id = getattr(request.state, "new_session_id", None)
        if new_session_id:
            response.set_cookie(
                config.session_cookie,
                new_session_id,
                httponly=True,
                samesite="lax",
            )
        return response

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(config.allowed_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Register routers
    app.include_router(health.router)
    app.include_router(auth.router)
    app.include_router(practice.router)
    app.include_router(history.router)
    app.include_router(tailored.router)
    app.include_router(diagnostics.router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
