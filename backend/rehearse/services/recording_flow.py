"""
Recording flow controller for one browser session.

Drives a practice attempt through selecting -> recording -> reviewing ->
submitting -> complete, with a device-error step when the camera or
microphone cannot be used. Submission uploads the captured buffer, resolves
its public URL and inserts the practice session row; any failure returns the
attempt to reviewing with the buffer and answers untouched.
"""
from __future__ import annotations

import logging
import random
from typing import Any, Callable, Dict, Optional
from uuid import uuid4

from fastapi.concurrency import run_in_threadpool

from rehearse.core.errors import (
    AuthorizationError,
    ConfigurationError,
    DeviceError,
    FlowStateError,
    ParseError,
    RehearseError,
)
from rehearse.core.state_transitions import RecordingStep, allowed_transitions, initial_step, is_terminal
from rehearse.domain.schemas import PracticeSession
from rehearse.services.auth_state import AuthController
from rehearse.services.backend import PRACTICE_SESSIONS_TABLE, RECORDINGS_BUCKET, BackendClient
from rehearse.services.media_capture import RECORDING_MIME_TYPE, MediaCapture
from rehearse.services.question_service import QuestionCategory, random_question


LOGGER = logging.getLogger(__name__)

SAVE_ERROR_PREFIX = "There was an error saving your session"


def recording_path(identity_id: str) -> str:
    """Storage path namespaced by identity with a unique file name."""
    return f"recordings/{identity_id}/{uuid4()}.webm"


class RecordingFlow:
    def __init__(
        self,
        backend: BackendClient,
        auth: AuthController,
        *,
        capture_factory: Callable[[], MediaCapture] = MediaCapture,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._backend = backend
        self._auth = auth
        self._capture_factory = capture_factory
        self._rng = rng
        self._capture: Optional[MediaCapture] = None

        self.step = initial_step()
        self.question = ""
        self.recording: Optional[bytes] = None
        self.rating: Optional[int] = None
        self.notes = ""
        self.error: Optional[str] = None
        self.saved_video_url: Optional[str] = None
        self.saved_session: Optional[PracticeSession] = None

        self.select_question()

    # ==================== Internals ====================

    def _transition(self, target: RecordingStep) -> None:
        if target not in allowed_transitions()[self.step]:
            raise FlowStateError(
                f"Cannot move from {self.step.value} to {target.value}"
            )
        LOGGER.debug("Recording flow %s -> %s", self.step.value, target.value)
        self.step = target

    def _require(self, *steps: RecordingStep) -> None:
        if self.step not in steps:
            expected = ", ".join(s.value for s in steps)
            raise FlowStateError(f"Operation not available while {self.step.value} (expected {expected})")

    def _release_device(self) -> bytes:
        capture, self._capture = self._capture, None
        if capture is None:
            return b""
        return capture.close()

    @property
    def is_capturing(self) -> bool:
        return self._capture is not None and self._capture.is_open

    # ==================== Selecting ====================

    def select_question(self, question: Optional[str] = None, category: QuestionCategory = "both") -> str:
        """Use ``question`` if given, otherwise draw one from the local bank."""
        self._require(RecordingStep.SELECTING)
        if question is not None:
            question = question.strip()
            if not question:
                raise ParseError("Question cannot be empty")
            self.question = question
        else:
            self.question = random_question(category, self._rng)
        return self.question

    # ==================== Recording ====================

    def start_recording(
        self,
        *,
        camera: bool = True,
        microphone: bool = True,
        device_error: Optional[str] = None,
    ) -> None:
        """Acquire the devices and start a fresh buffer.

        From reviewing this discards the previous take (re-record).
        """
        self._require(RecordingStep.SELECTING, RecordingStep.REVIEWING, RecordingStep.ERROR)
        if not self.question:
            raise ParseError("Select a question before recording")

        self._release_device()
        self.recording = None
        self.error = None

        capture = self._capture_factory()
        try:
            capture.open(camera=camera, microphone=microphone, device_error=device_error)
        except DeviceError as exc:
            capture.close()
            LOGGER.warning("Error accessing media devices: %s", exc)
            self.error = str(exc)
            self._transition(RecordingStep.ERROR)
            raise

        self._capture = capture
        self._transition(RecordingStep.RECORDING)

    def add_chunk(self, chunk: bytes) -> int:
        """Append a MediaRecorder chunk; returns the buffered size."""
        self._require(RecordingStep.RECORDING)
        if self._capture is None:
            raise DeviceError("Recording device is not active")
        try:
            self._capture.write(chunk)
        except DeviceError as exc:
            self._release_device()
            self.error = str(exc)
            self._transition(RecordingStep.ERROR)
            raise
        return self._capture.size

    def stop_recording(self) -> int:
        """Release the devices and expose the take for review."""
        self._require(RecordingStep.RECORDING)
        self.recording = self._release_device()
        self._transition(RecordingStep.REVIEWING)
        LOGGER.info("Recording complete, %d bytes", len(self.recording))
        return len(self.recording)

    def discard(self, **device_status: Any) -> None:
        """Drop the current take and record again."""
        self._require(RecordingStep.REVIEWING)
        self.start_recording(**device_status)

    # ==================== Reviewing ====================

    def set_feedback(self, rating: int, notes: str = "") -> None:
        self._require(RecordingStep.REVIEWING)
        if isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 5:
            raise ParseError("Rating must be a whole number between 1 and 5")
        self.rating = rating
        self.notes = notes or ""

    # ==================== Submitting ====================

    async def submit(self, rating: Optional[int] = None, notes: Optional[str] = None) -> PracticeSession:
        """Upload the take and persist the practice session.

        Raises the failing step's error after returning to reviewing.
        """
        if self.step == RecordingStep.SUBMITTING:
            raise FlowStateError("A save is already in progress")
        if is_terminal(self.step):
            raise FlowStateError("This answer has already been saved")
        self._require(RecordingStep.REVIEWING)
        if rating is not None:
            self.set_feedback(rating, self.notes if notes is None else notes)
        elif notes is not None:
            self.notes = notes

        self.error = None
        self._transition(RecordingStep.SUBMITTING)
        try:
            session = await self._save()
        except RehearseError as exc:
            LOGGER.error("Error saving session: %s", exc)
            self.error = f"{SAVE_ERROR_PREFIX}: {exc}"
            self._transition(RecordingStep.REVIEWING)
            raise

        self.saved_video_url = session.video_url
        self.saved_session = session
        self._transition(RecordingStep.COMPLETE)
        return session

    async def _save(self) -> PracticeSession:
        identity = self._auth.identity
        if identity is None:
            raise AuthorizationError("You must be logged in to save recordings")
        if self.rating is None:
            raise ParseError("Please rate your answer before saving")
        if not self.recording:
            raise ParseError("No video recording found")

        buckets = await run_in_threadpool(self._backend.list_buckets)
        if RECORDINGS_BUCKET not in buckets:
            raise ConfigurationError(
                f'Storage bucket "{RECORDINGS_BUCKET}" not found. Please create it in your Supabase project.'
            )

        path = recording_path(identity.id)
        LOGGER.info("Uploading recording to %s/%s (%d bytes)", RECORDINGS_BUCKET, path, len(self.recording))
        await run_in_threadpool(
            self._backend.upload, RECORDINGS_BUCKET, path, self.recording, RECORDING_MIME_TYPE
        )
        video_url = await run_in_threadpool(self._backend.public_url, RECORDINGS_BUCKET, path)

        row: Dict[str, Any] = {
            "question": self.question,
            "rating": self.rating,
            "notes": self.notes,
            "video_url": video_url,
            "user_id": identity.id,
        }
        stored = await run_in_threadpool(self._backend.insert_row, PRACTICE_SESSIONS_TABLE, row)
        return PracticeSession.from_row({**row, **stored})

    # ==================== Complete / teardown ====================

    def reset(self) -> None:
        """Record another: clear local state and draw a new question."""
        if self.step == RecordingStep.SUBMITTING:
            raise FlowStateError("Cannot reset while a save is in progress")
        self._release_device()
        self._transition(RecordingStep.SELECTING)
        self.recording = None
        self.rating = None
        self.notes = ""
        self.error = None
        self.saved_video_url = None
        self.saved_session = None
        self.select_question()

    def fail_device(self, message: str) -> None:
        """The browser lost access to a device mid-recording."""
        self._release_device()
        self.error = f"Could not access camera or microphone: {message}"
        self._transition(RecordingStep.ERROR)

    def close(self) -> None:
        self._release_device()

    def snapshot(self) -> Dict[str, Any]:
        return {
            "step": self.step.value,
            "question": self.question,
            "rating": self.rating,
            "notes": self.notes,
            "has_recording": bool(self.recording),
            "recording_size": len(self.recording or b""),
            "is_capturing": self.is_capturing,
            "error": self.error,
            "saved_video_url": self.saved_video_url,
            "session": self.saved_session,
        }
