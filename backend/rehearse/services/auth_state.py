"""
Auth state controller: the single writer of the current identity.

Holds the identity of one browser session plus a loading flag, mirrors
identity-change notifications from the backend, and exposes sign-in, sign-up,
sign-out and password reset. Readers subscribe to changes instead of polling.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, List, Optional

from fastapi.concurrency import run_in_threadpool

from rehearse.core.errors import RehearseError
from rehearse.domain.schemas import Identity
from rehearse.services.backend import BackendClient, identity_from_user


LOGGER = logging.getLogger(__name__)

IdentityListener = Callable[[Optional[Identity]], None]


class AuthEvent(str, Enum):
    INITIAL_SESSION = "INITIAL_SESSION"
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"
    USER_UPDATED = "USER_UPDATED"
    PASSWORD_RECOVERY = "PASSWORD_RECOVERY"


@dataclass
class AuthResult:
    """Outcome of an auth operation; exactly one of identity/error is meaningful."""

    identity: Optional[Identity] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class AuthController:
    def __init__(self, backend: BackendClient, *, site_url: str = "") -> None:
        self._backend = backend
        self._site_url = site_url.rstrip("/")
        self._identity: Optional[Identity] = None
        self._loading = True
        self._subscription: Any = None
        self._initialized = False
        self._closed = False
        self._listeners: List[IdentityListener] = []
        # bumped on every identity write; a stale initial fetch must not win
        self._writes = 0
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    # ==================== Read side ====================

    @property
    def identity(self) -> Optional[Identity]:
        return self._identity

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def is_authenticated(self) -> bool:
        return self._identity is not None

    def subscribe(self, listener: IdentityListener) -> Callable[[], None]:
        """Register a listener for identity changes; returns its unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ==================== Write side ====================

    def _set_identity(self, identity: Optional[Identity]) -> None:
        self._writes += 1
        changed = identity != self._identity
        self._identity = identity
        if not changed:
            return
        for listener in list(self._listeners):
            try:
                listener(identity)
            except Exception:
                LOGGER.exception("Identity listener failed")

    def _finish_loading(self) -> None:
        if self._loading:
            self._loading = False
            LOGGER.debug("Auth initialization complete")

    def handle_auth_event(self, event: Any, session: Any) -> None:
        """Callback registered with the backend's identity-change stream."""
        name = getattr(event, "value", event)
        LOGGER.info("Auth state changed - %s (%s)", name, "with session" if session else "no session")

        if name == AuthEvent.SIGNED_OUT.value:
            self._set_identity(None)
        elif session is not None:
            identity = identity_from_user(getattr(session, "user", None))
            if identity is not None:
                self._set_identity(identity)
        elif name == AuthEvent.INITIAL_SESSION.value:
            self._set_identity(None)

        self._finish_loading()

    def _on_backend_event(self, event: Any, session: Any) -> None:
        """Backend callback; the sync SDK fires it on whichever thread made the call."""
        loop = self._loop
        if loop is None or loop.is_closed():
            self.handle_auth_event(event, session)
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is loop:
            self.handle_auth_event(event, session)
        else:
            loop.call_soon_threadsafe(self.handle_auth_event, event, session)

    async def initialize(self) -> None:
        """Subscribe to identity changes and resolve any existing session."""
        if self._initialized:
            return
        self._initialized = True
        self._loop = asyncio.get_running_loop()

        if self._backend.is_mock:
            LOGGER.warning("Auth initialization skipped: backend is not configured")
            self._finish_loading()
            return

        try:
            self._subscription = self._backend.subscribe(self._on_backend_event)
        except RehearseError as exc:
            LOGGER.error("Could not subscribe to auth changes: %s", exc)

        writes_before = self._writes
        try:
            identity = await run_in_threadpool(self._backend.get_identity)
        except RehearseError as exc:
            LOGGER.error("Error getting initial user: %s", exc)
        else:
            LOGGER.info("Initial session check: %s", "has session" if identity else "no session")
            if self._writes == writes_before:
                self._set_identity(identity)
        finally:
            self._finish_loading()

    async def sign_in(self, email: str, password: str) -> AuthResult:
        LOGGER.info("Signing in user")
        try:
            identity = await run_in_threadpool(self._backend.sign_in, email, password)
        except RehearseError as exc:
            LOGGER.info("Sign in error: %s", exc)
            return AuthResult(error=str(exc))
        self._set_identity(identity)
        self._finish_loading()
        LOGGER.info("Sign in successful for %s", identity.id)
        return AuthResult(identity=identity)

    async def sign_up(self, email: str, password: str, name: str) -> AuthResult:
        try:
            await run_in_threadpool(self._backend.sign_up, email, password, name)
        except RehearseError as exc:
            return AuthResult(error=str(exc))
        return AuthResult()

    async def sign_out(self) -> None:
        """Clear the local identity, then tell the backend."""
        LOGGER.info("Signing out user")
        self._set_identity(None)
        self._finish_loading()
        try:
            await run_in_threadpool(self._backend.sign_out)
        except RehearseError as exc:
            LOGGER.warning("Remote sign out failed; local identity already cleared: %s", exc)

    async def reset_password(self, email: str) -> AuthResult:
        redirect_to = f"{self._site_url}/reset-password"
        try:
            await run_in_threadpool(self._backend.reset_password, email, redirect_to)
        except RehearseError as exc:
            return AuthResult(error=str(exc))
        return AuthResult()

    def close(self) -> None:
        """Drop the backend subscription and all listeners."""
        if self._closed:
            return
        self._closed = True
        subscription, self._subscription = self._subscription, None
        if subscription is not None:
            LOGGER.debug("Cleaning up auth listener")
            subscription.unsubscribe()
        self._listeners.clear()
