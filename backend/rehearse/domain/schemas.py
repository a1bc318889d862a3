"""
Pydantic schemas for the RehearseAI API.

Entity models mirror the rows stored by the hosted backend; request/response
models describe the JSON surface of the routers.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field


# ==================== Entities ====================

class Identity(BaseModel):
    """Authenticated user as reported by the identity provider."""

    id: str
    email: Optional[str] = None
    name: Optional[str] = None


class PracticeSession(BaseModel):
    """A saved practice attempt."""

    id: Union[int, str]
    question: str
    rating: int = Field(..., ge=1, le=5)
    notes: str = ""
    video_url: str
    user_id: str
    created_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "PracticeSession":
        return cls(**{**row, "notes": row.get("notes") or ""})


class ResumeFile(BaseModel):
    """Metadata for an uploaded résumé document."""

    id: Union[int, str]
    user_id: str
    file_url: str
    filename: str
    upload_date: Optional[datetime] = None


class CustomQuestion(BaseModel):
    """A generated question the user chose to keep."""

    id: Union[int, str]
    user_id: str
    question_text: str
    source: str = "AI-generated"
    created_at: Optional[datetime] = None


# ==================== Auth ====================

class SignInRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=320)
    password: str = Field(..., min_length=1, max_length=256)


class SignUpRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=320)
    password: str = Field(..., min_length=6, max_length=256)
    name: str = Field(..., min_length=1, max_length=200)


class ResetPasswordRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=320)


class AuthResponse(BaseModel):
    """Outcome of an auth operation; ``error`` is set on failure."""

    identity: Optional[Identity] = None
    error: Optional[str] = None


class AuthStatusResponse(BaseModel):
    identity: Optional[Identity] = None
    is_authenticated: bool = False
    is_loading: bool = False
    is_mock: bool = False


# ==================== Practice ====================

class SelectQuestionRequest(BaseModel):
    """Pick a question: explicit text, or a random one from a category."""

    question: Optional[str] = Field(None, max_length=1000)
    category: Literal["behavioral", "technical", "both"] = "both"


class StartRecordingRequest(BaseModel):
    """Outcome of the browser's camera/microphone request."""

    camera: bool = True
    microphone: bool = True
    device_error: Optional[str] = Field(
        None,
        max_length=500,
        description="Error reported by getUserMedia, if the request failed",
    )


class FeedbackRequest(BaseModel):
    rating: int = Field(..., ge=1, le=5, description="Self-assessment from 1 (poor) to 5 (excellent)")
    notes: str = Field("", max_length=5000)


class DeviceFailureRequest(BaseModel):
    message: str = Field("device disconnected", max_length=500)


class SubmitRequest(BaseModel):
    rating: Optional[int] = Field(None, ge=1, le=5)
    notes: Optional[str] = Field(None, max_length=5000)


class PracticeStateResponse(BaseModel):
    step: str
    question: str
    rating: Optional[int] = None
    notes: str = ""
    has_recording: bool = False
    recording_size: int = 0
    is_capturing: bool = False
    error: Optional[str] = None
    saved_video_url: Optional[str] = None
    session: Optional[PracticeSession] = None


# ==================== History ====================

class HistoryResponse(BaseModel):
    sessions: List[PracticeSession] = Field(default_factory=list)
    expanded_id: Optional[Union[int, str]] = None
    error: Optional[str] = None


# ==================== Tailored questions ====================

class JobDescriptionRequest(BaseModel):
    job_description: str = Field(..., max_length=20000)


class GenerateQuestionsRequest(BaseModel):
    job_description: Optional[str] = Field(None, max_length=20000)
    resume_text: Optional[str] = Field(None, max_length=100000)


class QuestionRow(BaseModel):
    text: str
    saving: bool = False
    saved: bool = False


class TailoredStateResponse(BaseModel):
    resume: Optional[ResumeFile] = None
    resume_text_length: int = 0
    job_description: str = ""
    questions: List[QuestionRow] = Field(default_factory=list)
    used_fallback: bool = False
    notice: Optional[str] = None
    error: Optional[str] = None


# ==================== Diagnostics ====================

class ConnectionTestResponse(BaseModel):
    success: bool
    error: Optional[str] = None
    auth_status: Optional[str] = None
    database_status: Optional[str] = None
    storage_status: Optional[str] = None
    buckets: List[str] = Field(default_factory=list)
    missing_buckets: List[str] = Field(default_factory=list)


class ConfigReportResponse(BaseModel):
    is_mock: bool
    values: Dict[str, Dict[str, Optional[str]]]


class SetupErrorResponse(BaseModel):
    is_mock: bool
    missing_variables: List[str]
    required_variables: List[str]
    message: str
