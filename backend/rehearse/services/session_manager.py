"""
Browser session registry.

Each browser (identified by an opaque cookie) gets its own backend client,
auth controller, route guard and flow controllers. Sessions live in memory
and are closed after sitting idle past the configured TTL.
"""
from __future__ import annotations

import asyncio
import logging
import secrets
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, Tuple

from rehearse.core.config import AppConfig
from rehearse.core.llm_client_app import LLMClientApp, build_llm_client
from rehearse.domain.schemas import Identity
from rehearse.services.auth_state import AuthController
from rehearse.services.backend import BackendClient, ClientFactory
from rehearse.services.history import HistoryView
from rehearse.services.question_generator import TailoredQuestionGenerator
from rehearse.services.recording_flow import RecordingFlow
from rehearse.services.route_guard import RouteGuard
from rehearse.services.tailored_questions import TailoredQuestionFlow


LOGGER = logging.getLogger(__name__)


@dataclass
class BrowserSession:
    session_id: str
    backend: BackendClient
    auth: AuthController
    guard: RouteGuard
    recording: RecordingFlow
    tailored: TailoredQuestionFlow
    history: HistoryView
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    last_seen: float = 0.0
    _unsubscribe: Optional[Callable[[], None]] = None

    def on_identity_change(self, identity: Optional[Identity]) -> None:
        """Drop per-user state whenever the signed-in user changes."""
        LOGGER.info("Identity changed for browser session; resetting flows")
        self.recording.close()
        try:
            self.recording.reset()
        except Exception:
            LOGGER.exception("Could not reset recording flow")
        self.tailored.clear()
        self.history.clear()

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self.recording.close()
        self.auth.close()


class SessionManager:
    """
    Manages browser sessions in memory.

    Each session contains:
    - its own Supabase client (token storage is per session)
    - the auth controller and route guard
    - recording, tailored-question and history controllers
    """

    def __init__(
        self,
        config: AppConfig,
        *,
        client_factory: Optional[ClientFactory] = None,
        llm_client: Optional[LLMClientApp] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._config = config
        self._clock = clock
        self._client_factory = client_factory
        self._generator = TailoredQuestionGenerator(llm_client if llm_client is not None else build_llm_client(config))
        # {session_id: BrowserSession}
        self._sessions: Dict[str, BrowserSession] = {}
        self._pending_init: Dict[str, Any] = {}

    @property
    def config(self) -> AppConfig:
        return self._config

    def count(self) -> int:
        return len(self._sessions)

    def _build(self, session_id: str) -> BrowserSession:
        backend = BackendClient(self._config, self._client_factory)
        auth = AuthController(backend, site_url=self._config.site_url)
        session = BrowserSession(
            session_id=session_id,
            backend=backend,
            auth=auth,
            guard=RouteGuard(
                auth,
                grace_period=self._config.auth_grace_period,
                is_mock=self._config.is_mock,
            ),
            recording=RecordingFlow(backend, auth),
            tailored=TailoredQuestionFlow(backend, auth, self._generator),
            history=HistoryView(backend, auth),
        )
        session._unsubscribe = auth.subscribe(session.on_identity_change)
        return session

    def get(self, session_id: Optional[str]) -> Optional[BrowserSession]:
        if not session_id:
            return None
        return self._sessions.get(session_id)

    def get_or_create(self, session_id: Optional[str]) -> Tuple[BrowserSession, bool]:
        """
        Return the session for ``session_id``, creating a new one if unknown.

        A new session starts resolving its auth state in the background.

        Returns:
            (session, created)
        """
        now = self._clock()
        self.evict_idle(now)
        existing = self.get(session_id)
        if existing is not None:
            existing.last_seen = now
            return existing, False

        new_id = secrets.token_urlsafe(32)
        session = self._build(new_id)
        session.last_seen = now
        self._sessions[new_id] = session
        self._enforce_cap()
        task = asyncio.ensure_future(session.auth.initialize())
        self._pending_init[new_id] = task
        task.add_done_callback(lambda _: self._pending_init.pop(new_id, None))
        LOGGER.debug("Created browser session (%d active)", len(self._sessions))
        return session, True

    def evict_idle(self, now: Optional[float] = None) -> int:
        """Close sessions not seen within the idle TTL. Returns how many were closed."""
        if now is None:
            now = self._clock()
        ttl = self._config.session_idle_ttl
        expired = [sid for sid, s in self._sessions.items() if now - s.last_seen >= ttl]
        for sid in expired:
            self.close(sid)
        if expired:
            LOGGER.info("Evicted %d idle browser session(s)", len(expired))
        return len(expired)

    def _enforce_cap(self) -> None:
        overflow = len(self._sessions) - max(self._config.max_sessions, 1)
        if overflow <= 0:
            return
        oldest = sorted(self._sessions.values(), key=lambda s: s.last_seen)[:overflow]
        for session in oldest:
            self.close(session.session_id)
        LOGGER.warning("Session cap reached; closed %d least recently used session(s)", len(oldest))

    def close(self, session_id: str) -> bool:
        session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        task = self._pending_init.pop(session_id, None)
        if task is not None and not task.done():
            task.cancel()
        session.close()
        return True

    def close_all(self) -> None:
        for session_id in list(self._sessions):
            self.close(session_id)
