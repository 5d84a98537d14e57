from __future__ import annotations

from dataclasses import dataclass

from app.ai.types import ChatMessage
from app.core.config.prompt_budget import get_budget_value
from app.schemas.resume import ExtractedIdentity

NOT_PROVIDED = "Not provided"
DEFAULT_TRUNCATION_MARKER = (
    "\n\n[Content truncated due to length limits. "
    "The analysis is based on the above portion of the text.]"
)

SCORING_SYSTEM_PROMPT = (
    "You are an expert ATS (Applicant Tracking System) analyzer and resume improvement specialist. "
    "You respond with a single JSON object and nothing else."
)

OPTIMIZATION_SYSTEM_PROMPT = (
    "You are an expert resume writer who optimizes resumes for ATS systems "
    "while keeping every fact about the candidate accurate."
)

SCORING_TEMPLATE = """Analyze the resume below against the job description and estimate its ATS compatibility.

JOB DESCRIPTION:
{job_description}

RESUME:
{resume}

CANDIDATE SKILLS:
{skills}

Consider:
1. Presence of relevant keywords from the job description
2. Match between the candidate's skills and experience and the job requirements
3. Clarity, organization and professional presentation
4. Quantifiable achievements relevant to the position
5. Correct use of industry-specific terminology

Return a valid JSON object with exactly these fields:
- score: a number between 0 and 100 representing ATS compatibility
- strengths: an array of strings listing resume strengths
- weaknesses: an array of strings listing resume weaknesses
- keywords: an array of strings with important keywords from the job description
- improvement_suggestions: an array of strings with specific improvement suggestions

Example format (replace with actual content):
{{"score": 75, "strengths": ["Good match for technical skills"], "weaknesses": ["No quantifiable achievements"], "keywords": ["Python", "SQL"], "improvement_suggestions": ["Quantify achievements"]}}
"""

OPTIMIZATION_TEMPLATE = """Rewrite and optimize the resume below so it better matches the job description, without fabricating experience or qualifications.

=========== JOB DESCRIPTION ===========
{job_description}
=======================================

=========== CURRENT RESUME ===========
{resume}
======================================

=========== CANDIDATE SKILLS ===========
{skills}
========================================

=========== EXTRACTED USER INFORMATION ===========
Name: {name}
Email: {email}
Phone: {phone}

Education:
{education}

Experience Highlights:
{experience}
==================================================

The optimized resume must:
1. Incorporate relevant keywords from the job description
2. Highlight the experience and skills most relevant to this position
3. Use industry-standard section organization
4. Quantify achievements where the original supports it
5. Keep the same work history and education, improving only the presentation
6. Use concise, strong action verbs
7. Start with the candidate's actual name, email and phone
8. Keep the candidate's real credentials and employers without invention

DO NOT invent accomplishments, positions or credentials.
DO NOT change job titles, company names, dates or other facts.
DO use keywords from the job description to describe real experience.

Sections: Header (name and contact), Summary tailored to this job, Skills, Experience, Education, and any certifications or other relevant sections from the original.
Use plain text with bullet points. No tables, columns or images.

Output only the finished resume text. Do not add any introduction or closing remarks.
"""


@dataclass(frozen=True)
class PromptBudget:
    chars_per_token: int = 4
    resume_max_tokens: int = 1000
    job_description_max_tokens: int = 750
    skills_max_tokens: int = 125
    truncation_marker: str = DEFAULT_TRUNCATION_MARKER
    max_education_lines: int = 10
    max_experience_lines: int = 15

    @property
    def resume_max_chars(self) -> int:
        return self.resume_max_tokens * self.chars_per_token

    @property
    def job_description_max_chars(self) -> int:
        return self.job_description_max_tokens * self.chars_per_token

    @property
    def skills_max_chars(self) -> int:
        return self.skills_max_tokens * self.chars_per_token


def load_prompt_budget() -> PromptBudget:
    defaults = PromptBudget()
    return PromptBudget(
        chars_per_token=int(get_budget_value("truncation.chars_per_token", defaults.chars_per_token)),
        resume_max_tokens=int(get_budget_value("truncation.resume_max_tokens", defaults.resume_max_tokens)),
        job_description_max_tokens=int(
            get_budget_value("truncation.job_description_max_tokens", defaults.job_description_max_tokens)
        ),
        skills_max_tokens=int(get_budget_value("truncation.skills_max_tokens", defaults.skills_max_tokens)),
        truncation_marker=str(get_budget_value("truncation.marker", defaults.truncation_marker)),
        max_education_lines=int(get_budget_value("optimization.max_education_lines", defaults.max_education_lines)),
        max_experience_lines=int(get_budget_value("optimization.max_experience_lines", defaults.max_experience_lines)),
    )


def truncate_text(text: str, max_chars: int, marker: str = DEFAULT_TRUNCATION_MARKER) -> str:
    if not text or len(text) <= max_chars:
        return text or ""
    return text[:max_chars] + marker


def _truncated_fields(job_description: str, resume_text: str, skills: str, budget: PromptBudget) -> dict[str, str]:
    marker = budget.truncation_marker
    return {
        "job_description": truncate_text(job_description, budget.job_description_max_chars, marker),
        "resume": truncate_text(resume_text, budget.resume_max_chars, marker),
        "skills": truncate_text(skills, budget.skills_max_chars, marker),
    }


def build_scoring_prompt(
    job_description: str,
    resume_text: str,
    skills: str,
    budget: PromptBudget | None = None,
) -> str:
    budget = budget or load_prompt_budget()
    return SCORING_TEMPLATE.format(**_truncated_fields(job_description, resume_text, skills, budget))


def _lines_or_not_provided(lines: list[str], limit: int) -> str:
    kept = [line for line in lines if line.strip()][:limit]
    return "\n".join(kept) if kept else NOT_PROVIDED


def build_optimization_prompt(
    job_description: str,
    resume_text: str,
    skills: str,
    identity: ExtractedIdentity | None = None,
    budget: PromptBudget | None = None,
) -> str:
    budget = budget or load_prompt_budget()
    identity = identity or ExtractedIdentity()
    return OPTIMIZATION_TEMPLATE.format(
        **_truncated_fields(job_description, resume_text, skills, budget),
        name=identity.known_name or NOT_PROVIDED,
        email=identity.known_email or NOT_PROVIDED,
        phone=identity.known_phone or NOT_PROVIDED,
        education=_lines_or_not_provided(identity.education, budget.max_education_lines),
        experience=_lines_or_not_provided(identity.experience, budget.max_experience_lines),
    )


def scoring_messages(prompt: str) -> list[ChatMessage]:
    return [
        ChatMessage(role="system", content=SCORING_SYSTEM_PROMPT),
        ChatMessage(role="user", content=prompt),
    ]


def optimization_messages(prompt: str) -> list[ChatMessage]:
    return [
        ChatMessage(role="system", content=OPTIMIZATION_SYSTEM_PROMPT),
        ChatMessage(role="user", content=prompt),
    ]
