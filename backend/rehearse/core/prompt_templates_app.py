"""
Prompt builders for tailored interview question generation.

Pure string builders; no external dependencies.
"""

RECRUITER_SYSTEM_PROMPT = (
    "You are a professional recruiter helping to prepare candidates for job interviews."
)

# Keeps the request within the provider's context window for long résumés
_MAX_SECTION_CHARS = 12000


def build_tailored_questions_prompt(resume_text: str, job_description: str) -> str:
    """Build the user prompt asking for 8-10 numbered interview questions.

    Output expectation (model side): a numbered list of questions only.
    """
    resume = (resume_text or "").strip()[:_MAX_SECTION_CHARS]
    jd = (job_description or "").strip()[:_MAX_SECTION_CHARS]

    return (
        "Based on the following resume and job description, generate 8-10 tailored "
        "interview questions that would likely be asked in an interview for this position. "
        "The questions should be specific to the candidate's experience and the job requirements.\n\n"
        f"Resume:\n{resume}\n\n"
        f"Job Description:\n{jd}\n\n"
        "Please format your response as a numbered list of questions only, "
        "with no additional explanation or text."
    )
