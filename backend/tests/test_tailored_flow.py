from __future__ import annotations

import asyncio
import io

import pytest

from rehearse.core.errors import AuthorizationError, ParseError, RemoteError
from rehearse.services.auth_state import AuthController
from rehearse.services.backend import BackendClient
from rehearse.services.question_generator import FALLBACK_NOTICE, TailoredQuestionGenerator
from rehearse.services.tailored_questions import TailoredQuestionFlow

from conftest import StubLLM

fitz = pytest.importorskip("fitz")


def _build_resume_pdf(*lines: str) -> bytes:
    document = fitz.open()
    page = document.new_page()
    for index, line in enumerate(lines):
        page.insert_text((72, 72 + (index * 18)), line)
    buffer = io.BytesIO()
    document.save(buffer)
    document.close()
    return buffer.getvalue()


@pytest.fixture()
def flow(backend: BackendClient, signed_in_auth: AuthController) -> TailoredQuestionFlow:
    return TailoredQuestionFlow(backend, signed_in_auth, TailoredQuestionGenerator())


def test_upload_resume_stores_file_and_text(flow: TailoredQuestionFlow, supabase_server) -> None:
    data = _build_resume_pdf("Ada Lovelace", "Senior React engineer")

    resume = asyncio.run(flow.upload_resume("ada.pdf", "application/pdf", data))

    assert resume.filename == "ada.pdf"
    assert resume.user_id == "user-1"
    assert "Senior React engineer" in flow.resume_text

    stored = supabase_server.buckets["resume-files"]
    path = next(iter(stored))
    assert path.startswith("resumes/user-1/") and path.endswith("_ada.pdf")
    assert stored[path] == data
    assert resume.file_url.endswith(f"/resume-files/{path}")
    assert supabase_server.tables["resume_files"][0]["filename"] == "ada.pdf"


def test_non_pdf_is_rejected(flow: TailoredQuestionFlow, supabase_server) -> None:
    with pytest.raises(ParseError, match="Please upload a PDF file only."):
        asyncio.run(flow.upload_resume("cv.docx", "application/msword", b"doc"))

    assert flow.error == "Please upload a PDF file only."
    assert supabase_server.buckets["resume-files"] == {}


def test_unreadable_pdf_is_a_parse_error(flow: TailoredQuestionFlow) -> None:
    with pytest.raises(ParseError, match="Failed to extract text from PDF."):
        asyncio.run(flow.upload_resume("broken.pdf", "application/pdf", b"not really a pdf"))


def test_upload_requires_identity(backend: BackendClient, auth: AuthController) -> None:
    flow = TailoredQuestionFlow(backend, auth, TailoredQuestionGenerator())

    with pytest.raises(AuthorizationError):
        asyncio.run(flow.upload_resume("ada.pdf", "application/pdf", _build_resume_pdf("Ada")))


def test_upload_failure_is_reported(flow: TailoredQuestionFlow, supabase_server) -> None:
    supabase_server.fail("upload:resume-files", "Bucket not found")

    with pytest.raises(RemoteError):
        asyncio.run(flow.upload_resume("ada.pdf", "application/pdf", _build_resume_pdf("Ada")))

    assert flow.error == "Failed to upload file: Bucket not found"
    assert flow.resume is None


def test_metadata_failure_is_reported(flow: TailoredQuestionFlow, supabase_server) -> None:
    supabase_server.fail("insert:resume_files", "relation does not exist")

    with pytest.raises(RemoteError):
        asyncio.run(flow.upload_resume("ada.pdf", "application/pdf", _build_resume_pdf("Ada")))

    assert flow.error == "Failed to save file metadata: relation does not exist"


def test_generate_requires_resume_and_job_description(flow: TailoredQuestionFlow) -> None:
    with pytest.raises(ParseError):
        asyncio.run(flow.generate(job_description="Backend engineer"))
    assert flow.job_description == ""

    with pytest.raises(ParseError):
        asyncio.run(flow.generate(resume_text="Python developer"))


def test_generate_without_llm_uses_sample_questions(flow: TailoredQuestionFlow) -> None:
    asyncio.run(flow.upload_resume("ada.pdf", "application/pdf", _build_resume_pdf("React developer")))
    flow.set_job_description("Work with a small team")

    result = asyncio.run(flow.generate())

    assert result.used_fallback
    assert flow.notice == FALLBACK_NOTICE
    assert len(flow.questions) == 10
    assert "React development" in flow.questions[0].text
    assert "teamwork" in flow.questions[1].text


def test_generate_with_llm(backend: BackendClient, signed_in_auth: AuthController) -> None:
    llm = StubLLM(text="1. How did you scale the API?\n2. Why Postgres?")
    flow = TailoredQuestionFlow(backend, signed_in_auth, TailoredQuestionGenerator(llm))

    asyncio.run(flow.generate(job_description="Platform engineer", resume_text="Built APIs"))

    assert [row.text for row in flow.questions] == ["How did you scale the API?", "Why Postgres?"]
    assert not flow.used_fallback
    assert flow.notice is None


def test_job_description_is_cleaned(flow: TailoredQuestionFlow) -> None:
    flow.set_job_description("Senior\u200b engineer\u202e\r\n")

    assert flow.job_description == "Senior engineer"


def test_save_question_once(flow: TailoredQuestionFlow, supabase_server) -> None:
    asyncio.run(flow.generate(job_description="Role", resume_text="Resume"))

    saved = asyncio.run(flow.save_question(0))
    again = asyncio.run(flow.save_question(0))

    assert saved.question_text == flow.questions[0].text
    assert saved.source == "AI-generated"
    assert again is None
    assert flow.questions[0].saved
    assert len(supabase_server.tables["custom_questions"]) == 1


def test_save_failure_leaves_row_unsaved(flow: TailoredQuestionFlow, supabase_server) -> None:
    asyncio.run(flow.generate(job_description="Role", resume_text="Resume"))
    supabase_server.fail("insert:custom_questions", "quota exceeded")

    with pytest.raises(RemoteError):
        asyncio.run(flow.save_question(1))

    row = flow.questions[1]
    assert not row.saved and not row.saving
    assert flow.error == "Failed to save question: quota exceeded"


def test_save_unknown_question(flow: TailoredQuestionFlow) -> None:
    with pytest.raises(ParseError):
        asyncio.run(flow.save_question(3))
