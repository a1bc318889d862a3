"""
FastAPI router for tailored question generation.

Upload a PDF résumé, enter a job description, generate questions (LLM or
sample fallback) and save individual questions.
"""
from typing import Optional

from fastapi import APIRouter, Depends, File, Request, UploadFile, status

from rehearse.core.rate_limit import RATE_LIMIT_GENERATION, limiter
from rehearse.domain.schemas import (
    CustomQuestion,
    GenerateQuestionsRequest,
    JobDescriptionRequest,
    TailoredStateResponse,
)
from rehearse.routers.deps import get_browser_session, require_identity
from rehearse.services.session_manager import BrowserSession


# ==================== Router Setup ====================

router = APIRouter(
    prefix="/api/tailored-questions",
    tags=["Tailored Questions"],
    dependencies=[Depends(require_identity)],
)


def _state(session: BrowserSession) -> TailoredStateResponse:
    return TailoredStateResponse(**session.tailored.snapshot())


# ==================== Endpoints ====================

@router.get("", response_model=TailoredStateResponse, summary="Current tailored question state")
async def get_state(session: BrowserSession = Depends(get_browser_session)) -> TailoredStateResponse:
    return _state(session)


@router.post(
    "/resume",
    response_model=TailoredStateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Upload a PDF résumé",
)
async def upload_resume(
    file: UploadFile = File(...),
    session: BrowserSession = Depends(get_browser_session),
) -> TailoredStateResponse:
    data = await file.read()
    await session.tailored.upload_resume(file.filename or "resume.pdf", file.content_type, data)
    return _state(session)


@router.put("/job-description", response_model=TailoredStateResponse, summary="Set the job description")
async def set_job_description(
    payload: JobDescriptionRequest,
    session: BrowserSession = Depends(get_browser_session),
) -> TailoredStateResponse:
    session.tailored.set_job_description(payload.job_description)
    return _state(session)


@router.post(
    "/generate",
    response_model=TailoredStateResponse,
    summary="Generate tailored questions",
    description="Asks the LLM for 8-10 questions. Without an API key, or when the request fails, sample questions are returned with a notice.",
)
@limiter.limit(RATE_LIMIT_GENERATION)
async def generate(
    request: Request,
    payload: Optional[GenerateQuestionsRequest] = None,
    session: BrowserSession = Depends(get_browser_session),
) -> TailoredStateResponse:
    payload = payload or GenerateQuestionsRequest()
    await session.tailored.generate(payload.job_description, payload.resume_text)
    return _state(session)


@router.post(
    "/questions/{index}/save",
    response_model=Optional[CustomQuestion],
    summary="Save one generated question",
    description="Returns the stored question, or null if it was already saved.",
)
async def save_question(index: int, session: BrowserSession = Depends(get_browser_session)) -> Optional[CustomQuestion]:
    return await session.tailored.save_question(index)
