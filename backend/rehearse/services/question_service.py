from __future__ import annotations

import random
from typing import List, Literal, Optional, Sequence


QuestionCategory = Literal["behavioral", "technical", "both"]

BEHAVIORAL_QUESTIONS: Sequence[str] = (
    "Tell me about a time you faced a challenge and how you overcame it.",
    "Describe a situation where you had to work with a difficult team member.",
    "Give an example of when you showed leadership skills.",
    "Tell me about a time you failed and what you learned from it.",
    "How do you handle stress and pressure?",
    "Describe a time when you had to make a difficult decision.",
    "Tell me about a time you received negative feedback and how you responded.",
    "Give an example of a goal you achieved and how you did it.",
    "How do you prioritize your work when you have multiple deadlines?",
    "Tell me about a time you went above and beyond for a project.",
)

TECHNICAL_QUESTIONS: Sequence[str] = (
    "What is your approach to debugging a complex issue?",
    "Explain the difference between synchronous and asynchronous programming.",
    "How do you ensure code quality in your projects?",
    "Describe your experience with version control systems.",
    "How do you stay updated with the latest technologies?",
    "What's your approach to testing your code?",
    "Explain a complex technical concept in simple terms.",
    "How would you optimize a slow-performing application?",
    "Describe a time when you had to learn a new technology quickly.",
    "What considerations do you take into account for secure coding practices?",
)


def question_bank(category: QuestionCategory = "both") -> List[str]:
    questions: List[str] = []
    if category in ("behavioral", "both"):
        questions.extend(BEHAVIORAL_QUESTIONS)
    if category in ("technical", "both"):
        questions.extend(TECHNICAL_QUESTIONS)
    return questions


def random_question(category: QuestionCategory = "both", rng: Optional[random.Random] = None) -> str:
    return (rng or random).choice(question_bank(category))


def generate_fallback_questions(resume_text: str, job_description: str) -> List[str]:
    """Sample questions used when tailored generation is unavailable.

    Pure and deterministic; the first two lines are lightly templated from
    keywords in the résumé and job description.
    """
    resume_text = resume_text or ""
    job_description = job_description or ""

    focus = "React development" if "React" in resume_text else "web development"
    style = "teamwork" if "team" in job_description else "independent work"

    return [
        f"Tell me about your experience with {focus}.",
        f"The job requires {style}. How do you approach this?",
        "Describe a challenging project you worked on and how you overcame obstacles.",
        "How do you stay updated with the latest technologies in your field?",
        "Describe your experience with agile development methodologies.",
        "How do you handle tight deadlines and prioritize tasks?",
        "What is your approach to debugging and troubleshooting issues?",
        "Tell me about a time you had to learn a new technology quickly.",
        "How do you handle feedback and criticism?",
        "What are your career goals for the next 3-5 years?",
    ]
