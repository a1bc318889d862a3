"""
History view: the current identity's saved practice sessions.

The local list is re-fetched on every refresh and only changes after the
remote row deletion succeeds. Blob removal is best effort.
"""
from __future__ import annotations

import logging
from typing import Any, List, Optional
from urllib.parse import unquote

from fastapi.concurrency import run_in_threadpool

from rehearse.core.errors import AuthorizationError, ParseError, RehearseError
from rehearse.domain.schemas import Identity, PracticeSession
from rehearse.services.auth_state import AuthController
from rehearse.services.backend import PRACTICE_SESSIONS_TABLE, RECORDINGS_BUCKET, BackendClient


LOGGER = logging.getLogger(__name__)

RECORDING_PATH_MARKER = f"/{RECORDINGS_BUCKET}/"


def storage_path_from_url(video_url: str) -> str:
    """Extract the object path that follows the recordings bucket segment.

    ``.../interview-recordings/recordings/<id>/<file>.webm`` ->
    ``recordings/<id>/<file>.webm``
    """
    index = (video_url or "").find(RECORDING_PATH_MARKER)
    if index == -1:
        raise ParseError(f"Could not find '{RECORDINGS_BUCKET}' in video URL")
    path = video_url[index + len(RECORDING_PATH_MARKER):]
    path = path.split("?", 1)[0].split("#", 1)[0]
    path = unquote(path).strip("/")
    if not path:
        raise ParseError("Video URL does not reference a stored file")
    return path


class HistoryView:
    def __init__(self, backend: BackendClient, auth: AuthController) -> None:
        self._backend = backend
        self._auth = auth
        self.sessions: List[PracticeSession] = []
        self.expanded_id: Optional[Any] = None
        self.error: Optional[str] = None

    def _identity(self) -> Identity:
        identity = self._auth.identity
        if identity is None:
            raise AuthorizationError("You must be logged in to view your practice history")
        return identity

    async def refresh(self) -> List[PracticeSession]:
        """Load all sessions of the current identity, newest first."""
        identity = self._identity()
        self.error = None
        try:
            rows = await run_in_threadpool(
                self._backend.select_rows, PRACTICE_SESSIONS_TABLE, identity.id
            )
        except RehearseError as exc:
            LOGGER.error("Error fetching practice sessions: %s", exc)
            self.error = "Failed to load your practice history. Please try again later."
            raise
        self.sessions = [PracticeSession.from_row(row) for row in rows]
        if self.expanded_id is not None and not any(s.id == self.expanded_id for s in self.sessions):
            self.expanded_id = None
        return self.sessions

    def _find(self, session_id: Any) -> Optional[PracticeSession]:
        for session in self.sessions:
            if str(session.id) == str(session_id):
                return session
        return None

    def toggle(self, session_id: Any) -> Optional[Any]:
        """Expand one row (collapsing any other) or collapse it again."""
        session = self._find(session_id)
        if session is None:
            raise ParseError("Unknown practice session")
        self.expanded_id = None if self.expanded_id == session.id else session.id
        return self.expanded_id

    async def delete(self, session_id: Any) -> None:
        identity = self._identity()
        session = self._find(session_id)
        if session is None:
            rows = await run_in_threadpool(
                self._backend.select_rows,
                PRACTICE_SESSIONS_TABLE,
                identity.id,
                filters={"id": session_id},
            )
            if not rows:
                raise ParseError("Unknown practice session")
            session = PracticeSession.from_row(rows[0])

        await self._remove_recording(session)

        try:
            await run_in_threadpool(
                self._backend.delete_row, PRACTICE_SESSIONS_TABLE, session.id, identity.id
            )
        except RehearseError as exc:
            self.error = f"Failed to delete practice session: {exc}"
            raise

        self.sessions = [s for s in self.sessions if str(s.id) != str(session.id)]
        if self.expanded_id == session.id:
            self.expanded_id = None
        self.error = None

    async def _remove_recording(self, session: PracticeSession) -> None:
        try:
            path = storage_path_from_url(session.video_url)
        except ParseError as exc:
            LOGGER.warning("Skipping recording removal for session %s: %s", session.id, exc)
            return
        try:
            await run_in_threadpool(self._backend.remove, RECORDINGS_BUCKET, [path])
        except RehearseError as exc:
            LOGGER.warning("Could not remove recording %s: %s", path, exc)

    def clear(self) -> None:
        self.sessions = []
        self.expanded_id = None
        self.error = None
