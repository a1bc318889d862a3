"""
Tailored interview question generation.

One request to the LLM provider per call; any failure, a missing API key, or a
response with no parseable questions degrades to the deterministic fallback.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import List, Optional

from rehearse.core.errors import RehearseError
from rehearse.core.llm_client_app import LLMClientApp
from rehearse.core.prompt_templates_app import RECRUITER_SYSTEM_PROMPT, build_tailored_questions_prompt
from rehearse.services.question_service import generate_fallback_questions


LOGGER = logging.getLogger(__name__)

FALLBACK_NOTICE = (
    "Showing sample questions because tailored questions could not be generated right now."
)

_NUMBERED = re.compile(r"^\d+\.\s*")
_BULLETED = re.compile(r"^- ")


def parse_question_list(text: str) -> List[str]:
    """Keep numbered (``1.``) or bulleted (``- ``) lines, without their marker."""
    questions = []
    for raw_line in (text or "").split("\n"):
        line = raw_line.strip()
        if _NUMBERED.match(line):
            line = _NUMBERED.sub("", line, count=1)
        elif _BULLETED.match(line):
            line = _BULLETED.sub("", line, count=1)
        else:
            continue
        if line:
            questions.append(line)
    return questions


@dataclass
class GenerationResult:
    questions: List[str]
    used_fallback: bool = False
    reason: Optional[str] = None

    @property
    def notice(self) -> Optional[str]:
        return FALLBACK_NOTICE if self.used_fallback else None


class TailoredQuestionGenerator:
    def __init__(self, llm: Optional[LLMClientApp] = None) -> None:
        self._llm = llm

    def _fallback(self, resume_text: str, job_description: str, reason: str) -> GenerationResult:
        LOGGER.info("Falling back to sample questions: %s", reason)
        return GenerationResult(
            questions=generate_fallback_questions(resume_text, job_description),
            used_fallback=True,
            reason=reason,
        )

    def generate(self, resume_text: str, job_description: str) -> GenerationResult:
        """Always returns a non-empty list of questions."""
        if self._llm is None:
            return self._fallback(resume_text, job_description, "OpenAI API key not configured")

        prompt = build_tailored_questions_prompt(resume_text, job_description)
        try:
            payload = self._llm.generate_text(RECRUITER_SYSTEM_PROMPT, prompt)
        except RehearseError as exc:
            return self._fallback(resume_text, job_description, str(exc))

        questions = parse_question_list(payload.get("text", ""))
        if not questions:
            return self._fallback(resume_text, job_description, "no questions found in the response")
        return GenerationResult(questions=questions)
