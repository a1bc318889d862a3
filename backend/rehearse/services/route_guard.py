"""
Route guard for authenticated resources.

Decides, for one browser session, whether a protected resource may be served.
States: undetermined -> authorized | pending | unauthorized | configuration_error,
and pending -> authorized | unauthorized | configuration_error once the auth
controller finishes loading or the grace period runs out.
"""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

from rehearse.services.auth_state import AuthController


LOGGER = logging.getLogger(__name__)

LOGIN_PATH = "/login"
SETUP_ERROR_PATH = "/setup-error"
PUBLIC_AUTH_PATHS: Tuple[str, ...] = ("/login", "/signup", "/forgot-password", "/api/auth")

CONFIGURATION_GUIDANCE = [
    "Missing or incorrect environment variables",
    "Supabase project not properly set up",
    "Network connectivity issues",
]


class GuardState(str, Enum):
    UNDETERMINED = "undetermined"
    PENDING = "pending"
    AUTHORIZED = "authorized"
    UNAUTHORIZED = "unauthorized"
    CONFIGURATION_ERROR = "configuration_error"


def allowed_transitions() -> Dict[GuardState, List[GuardState]]:
    return {
        GuardState.UNDETERMINED: [
            GuardState.AUTHORIZED,
            GuardState.PENDING,
            GuardState.UNAUTHORIZED,
            GuardState.CONFIGURATION_ERROR,
        ],
        GuardState.PENDING: [
            GuardState.AUTHORIZED,
            GuardState.UNAUTHORIZED,
            GuardState.CONFIGURATION_ERROR,
        ],
        GuardState.AUTHORIZED: [],
        GuardState.UNAUTHORIZED: [],
        GuardState.CONFIGURATION_ERROR: [],
    }


@dataclass
class GuardDecision:
    state: GuardState
    reason: Optional[str] = None
    redirect: Optional[str] = None
    links: List[str] = field(default_factory=list)
    guidance: List[str] = field(default_factory=list)
    trail: List[GuardState] = field(default_factory=list)

    @property
    def authorized(self) -> bool:
        return self.state == GuardState.AUTHORIZED


def is_public_auth_path(path: str) -> bool:
    return any(path == p or path.startswith(p + "/") for p in PUBLIC_AUTH_PATHS)


class RouteGuard:
    def __init__(
        self,
        auth: AuthController,
        *,
        grace_period: float = 2.0,
        is_mock: bool = False,
        poll_interval: float = 0.05,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._auth = auth
        self._grace_period = grace_period
        self._is_mock = is_mock
        self._poll_interval = poll_interval
        self._clock = clock

    def _first_evaluation(self) -> GuardState:
        if self._auth.identity is not None:
            return GuardState.AUTHORIZED
        if self._auth.loading:
            return GuardState.PENDING
        return GuardState.UNAUTHORIZED

    async def _wait_for_auth(self) -> bool:
        """Poll until loading resolves; False if the grace period ran out."""
        deadline = self._clock() + self._grace_period
        while self._auth.loading:
            if self._clock() >= deadline:
                return False
            await asyncio.sleep(self._poll_interval)
        return True

    async def resolve(self, path: str) -> GuardDecision:
        """Run the guard state machine to a decision for ``path``."""
        trail = [GuardState.UNDETERMINED]

        def decide(state: GuardState, **kwargs) -> GuardDecision:
            if state not in allowed_transitions()[trail[-1]]:
                raise RuntimeError(f"Invalid guard transition {trail[-1].value} -> {state.value}")
            trail.append(state)
            return GuardDecision(state=state, trail=trail, **kwargs)

        if self._is_mock:
            return decide(
                GuardState.CONFIGURATION_ERROR,
                reason="unconfigured",
                redirect=SETUP_ERROR_PATH,
                links=[SETUP_ERROR_PATH, LOGIN_PATH],
                guidance=["Set SUPABASE_URL and SUPABASE_ANON_KEY for this deployment"],
            )

        state = self._first_evaluation()
        if state != GuardState.PENDING:
            return self._settle(decide, state)

        trail.append(GuardState.PENDING)
        resolved = await self._wait_for_auth()
        if resolved:
            return self._settle(decide, self._first_evaluation())

        if is_public_auth_path(path):
            return GuardDecision(state=GuardState.PENDING, reason="loading", trail=trail)

        LOGGER.warning("Auth still loading after %.1fs on %s; reporting configuration issue", self._grace_period, path)
        return decide(
            GuardState.CONFIGURATION_ERROR,
            reason="auth_timeout",
            links=[SETUP_ERROR_PATH, LOGIN_PATH],
            guidance=list(CONFIGURATION_GUIDANCE),
        )

    @staticmethod
    def _settle(decide, state: GuardState) -> GuardDecision:
        if state == GuardState.AUTHORIZED:
            return decide(state)
        return decide(GuardState.UNAUTHORIZED, reason="not_authenticated", redirect=LOGIN_PATH)
