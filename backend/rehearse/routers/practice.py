"""
FastAPI router for the recording flow.

The browser owns the camera and microphone: it reports the outcome of its
device request to ``/start``, streams MediaRecorder chunks to ``/chunk`` and
calls ``/stop`` when done. Every endpoint returns the flow snapshot.
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from rehearse.domain.schemas import (
    DeviceFailureRequest,
    FeedbackRequest,
    PracticeStateResponse,
    SelectQuestionRequest,
    StartRecordingRequest,
    SubmitRequest,
)
from rehearse.routers.deps import get_browser_session, require_identity
from rehearse.services.media_capture import RECORDING_MIME_TYPE
from rehearse.services.session_manager import BrowserSession


# ==================== Router Setup ====================

router = APIRouter(
    prefix="/api/practice",
    tags=["Practice"],
    dependencies=[Depends(require_identity)],
)


def _state(session: BrowserSession) -> PracticeStateResponse:
    return PracticeStateResponse(**session.recording.snapshot())


# ==================== Endpoints ====================

@router.get("", response_model=PracticeStateResponse, summary="Current recording flow state")
async def get_state(session: BrowserSession = Depends(get_browser_session)) -> PracticeStateResponse:
    return _state(session)


@router.post("/question", response_model=PracticeStateResponse, summary="Select a question")
async def select_question(
    payload: SelectQuestionRequest,
    session: BrowserSession = Depends(get_browser_session),
) -> PracticeStateResponse:
    session.recording.select_question(payload.question, payload.category)
    return _state(session)


@router.post(
    "/start",
    response_model=PracticeStateResponse,
    summary="Start recording",
    description="Report the browser's device request outcome and open a fresh recording buffer.",
)
async def start_recording(
    payload: StartRecordingRequest,
    session: BrowserSession = Depends(get_browser_session),
) -> PracticeStateResponse:
    session.recording.start_recording(
        camera=payload.camera,
        microphone=payload.microphone,
        device_error=payload.device_error,
    )
    return _state(session)


@router.post("/chunk", response_model=PracticeStateResponse, summary="Append a recorded chunk")
async def add_chunk(
    request: Request,
    session: BrowserSession = Depends(get_browser_session),
) -> PracticeStateResponse:
    chunk = await request.body()
    session.recording.add_chunk(chunk)
    return _state(session)


@router.post("/stop", response_model=PracticeStateResponse, summary="Stop recording")
async def stop_recording(session: BrowserSession = Depends(get_browser_session)) -> PracticeStateResponse:
    session.recording.stop_recording()
    return _state(session)


@router.post("/device-error", response_model=PracticeStateResponse, summary="Report a lost device")
async def device_error(
    payload: DeviceFailureRequest,
    session: BrowserSession = Depends(get_browser_session),
) -> PracticeStateResponse:
    session.recording.fail_device(payload.message)
    return _state(session)


@router.post("/discard", response_model=PracticeStateResponse, summary="Discard the take and record again")
async def discard(
    payload: Optional[StartRecordingRequest] = None,
    session: BrowserSession = Depends(get_browser_session),
) -> PracticeStateResponse:
    payload = payload or StartRecordingRequest()
    session.recording.discard(
        camera=payload.camera,
        microphone=payload.microphone,
        device_error=payload.device_error,
    )
    return _state(session)


@router.post("/feedback", response_model=PracticeStateResponse, summary="Rate the answer")
async def set_feedback(
    payload: FeedbackRequest,
    session: BrowserSession = Depends(get_browser_session),
) -> PracticeStateResponse:
    session.recording.set_feedback(payload.rating, payload.notes)
    return _state(session)


@router.post(
    "/submit",
    response_model=PracticeStateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Save the practice session",
    description="Uploads the recording, resolves its public URL and stores the session. On failure the flow returns to reviewing with the recording intact.",
)
async def submit(
    payload: Optional[SubmitRequest] = None,
    session: BrowserSession = Depends(get_browser_session),
) -> PracticeStateResponse:
    payload = payload or SubmitRequest()
    await session.recording.submit(payload.rating, payload.notes)
    return _state(session)


@router.post("/reset", response_model=PracticeStateResponse, summary="Record another answer")
async def reset(session: BrowserSession = Depends(get_browser_session)) -> PracticeStateResponse:
    session.recording.reset()
    return _state(session)


@router.get("/recording", summary="Play back the current take")
async def get_recording(session: BrowserSession = Depends(get_browser_session)):
    if not session.recording.recording:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No recording available")
    return Response(content=session.recording.recording, media_type=RECORDING_MIME_TYPE)
