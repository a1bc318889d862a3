"""
Tailored-question flow for one browser session.

Résumé upload (text extraction, blob upload, metadata row), job description
input, question generation with fallback, and per-question saving.
"""
from __future__ import annotations

import logging
from typing import List, Optional
from uuid import uuid4

from fastapi.concurrency import run_in_threadpool

from rehearse.core.errors import AuthorizationError, FlowStateError, ParseError, RehearseError
from rehearse.domain.schemas import CustomQuestion, Identity, QuestionRow, ResumeFile
from rehearse.security.validators import contains_suspicious_unicode, sanitize_prompt_text
from rehearse.services.auth_state import AuthController
from rehearse.services.backend import (
    CUSTOM_QUESTIONS_TABLE,
    RESUME_FILES_TABLE,
    RESUMES_BUCKET,
    BackendClient,
)
from rehearse.services.document_text import PDF_MIME_TYPE, extract_pdf_text, is_pdf_upload
from rehearse.services.question_generator import GenerationResult, TailoredQuestionGenerator


LOGGER = logging.getLogger(__name__)

GENERATED_SOURCE = "AI-generated"


def resume_path(identity_id: str, filename: str) -> str:
    safe_name = (filename or "resume.pdf").replace("/", "_").replace("\\", "_")
    return f"resumes/{identity_id}/{uuid4()}_{safe_name}"


class TailoredQuestionFlow:
    def __init__(
        self,
        backend: BackendClient,
        auth: AuthController,
        generator: TailoredQuestionGenerator,
    ) -> None:
        self._backend = backend
        self._auth = auth
        self._generator = generator

        self.resume: Optional[ResumeFile] = None
        self.resume_text = ""
        self.job_description = ""
        self.questions: List[QuestionRow] = []
        self.used_fallback = False
        self.notice: Optional[str] = None
        self.error: Optional[str] = None
        self._uploading = False
        self._generating = False

    def _identity(self, message: str) -> Identity:
        identity = self._auth.identity
        if identity is None:
            raise AuthorizationError(message)
        return identity

    # ==================== Résumé ====================

    async def upload_resume(self, filename: str, content_type: Optional[str], data: bytes) -> ResumeFile:
        if self._uploading:
            raise FlowStateError("A résumé upload is already in progress")
        self.error = None
        if not is_pdf_upload(filename, content_type):
            self.error = "Please upload a PDF file only."
            raise ParseError(self.error)

        self._uploading = True
        try:
            identity = self._identity("Please select a file and ensure you are logged in.")
            text = await run_in_threadpool(extract_pdf_text, data)

            path = resume_path(identity.id, filename)
            try:
                await run_in_threadpool(self._backend.upload, RESUMES_BUCKET, path, data, PDF_MIME_TYPE)
            except RehearseError as exc:
                raise type(exc)(f"Failed to upload file: {exc}") from exc
            file_url = await run_in_threadpool(self._backend.public_url, RESUMES_BUCKET, path)

            row = {"user_id": identity.id, "file_url": file_url, "filename": filename}
            try:
                stored = await run_in_threadpool(self._backend.insert_row, RESUME_FILES_TABLE, row)
            except RehearseError as exc:
                raise type(exc)(f"Failed to save file metadata: {exc}") from exc
        except RehearseError as exc:
            LOGGER.error("Error processing resume: %s", exc)
            self.error = str(exc)
            raise
        finally:
            self._uploading = False

        self.resume = ResumeFile(**{"id": stored.get("id", path), **row, **stored})
        self.resume_text = sanitize_prompt_text(text)
        LOGGER.info("Resume %s uploaded (%d characters of text)", filename, len(self.resume_text))
        return self.resume

    # ==================== Job description ====================

    def set_job_description(self, text: str) -> None:
        if contains_suspicious_unicode(text or ""):
            LOGGER.info("Removed invisible characters from job description")
        self.job_description = sanitize_prompt_text(text)

    # ==================== Generation ====================

    async def generate(
        self,
        job_description: Optional[str] = None,
        resume_text: Optional[str] = None,
    ) -> GenerationResult:
        if self._generating:
            raise FlowStateError("Questions are already being generated")
        resume = sanitize_prompt_text(resume_text) if resume_text is not None else self.resume_text
        jd = sanitize_prompt_text(job_description) if job_description is not None else self.job_description
        if not resume:
            raise ParseError("Upload your resume before generating questions")
        if not jd:
            raise ParseError("Enter a job description before generating questions")
        if job_description is not None:
            self.set_job_description(job_description)

        self.error = None
        self._generating = True
        try:
            result = await run_in_threadpool(self._generator.generate, resume, self.job_description)
        finally:
            self._generating = False

        self.questions = [QuestionRow(text=q) for q in result.questions]
        self.used_fallback = result.used_fallback
        self.notice = result.notice
        return result

    # ==================== Saving ====================

    async def save_question(self, index: int) -> Optional[CustomQuestion]:
        """Save one generated question; returns None if it was already saved."""
        if not 0 <= index < len(self.questions):
            raise ParseError("Unknown question")
        row = self.questions[index]
        if row.saved:
            return None
        if row.saving:
            raise FlowStateError("This question is already being saved")

        identity = self._identity("You must be logged in to save questions.")
        self.error = None
        row.saving = True
        try:
            stored = await run_in_threadpool(
                self._backend.insert_row,
                CUSTOM_QUESTIONS_TABLE,
                {"user_id": identity.id, "question_text": row.text, "source": GENERATED_SOURCE},
            )
        except RehearseError as exc:
            LOGGER.error("Error saving question: %s", exc)
            self.error = f"Failed to save question: {exc}"
            raise
        finally:
            row.saving = False

        row.saved = True
        return CustomQuestion(
            **{
                "id": stored.get("id", index),
                "user_id": identity.id,
                "question_text": row.text,
                "source": GENERATED_SOURCE,
                **stored,
            }
        )

    def clear(self) -> None:
        self.resume = None
        self.resume_text = ""
        self.job_description = ""
        self.questions = []
        self.used_fallback = False
        self.notice = None
        self.error = None

    def snapshot(self) -> dict:
        return {
            "resume": self.resume,
            "resume_text_length": len(self.resume_text),
            "job_description": self.job_description,
            "questions": [row.model_copy() for row in self.questions],
            "used_fallback": self.used_fallback,
            "notice": self.notice,
            "error": self.error,
        }
