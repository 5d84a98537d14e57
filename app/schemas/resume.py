from __future__ import annotations

from datetime import date
from typing import Literal

from pydantic import BaseModel, Field

ResumeView = Literal["original", "optimized"]
ExtractionSource = Literal["document", "session", "placeholder"]

DEFAULT_NAME = "Your Name"
DEFAULT_EMAIL = "email@example.com"
DEFAULT_PHONE = "(123) 456-7890"


class AnalysisResult(BaseModel):
    score: float = Field(ge=0, le=100)
    strengths: list[str]
    weaknesses: list[str]
    keywords: list[str]
    improvement_suggestions: list[str]


class ExtractedIdentity(BaseModel):
    name: str = DEFAULT_NAME
    email: str = DEFAULT_EMAIL
    phone: str = DEFAULT_PHONE
    education: list[str] = Field(default_factory=list)
    experience: list[str] = Field(default_factory=list)

    @staticmethod
    def _known(value: str, placeholder: str) -> str | None:
        cleaned = (value or "").strip()
        if not cleaned or cleaned == placeholder:
            return None
        return cleaned

    @property
    def known_name(self) -> str | None:
        return self._known(self.name, DEFAULT_NAME)

    @property
    def known_email(self) -> str | None:
        return self._known(self.email, DEFAULT_EMAIL)

    @property
    def known_phone(self) -> str | None:
        return self._known(self.phone, DEFAULT_PHONE)


class AnalyzeResponse(AnalysisResult):
    extracted_text: str | None = None
    resume_source: str | None = None
    state_updates: dict[str, str] = Field(default_factory=dict)


class RescoreRequest(BaseModel):
    session_id: str = Field(min_length=8, max_length=200)
    view: ResumeView = "original"
    job_description: str | None = Field(default=None, max_length=50000)
    skills: str | None = Field(default=None, max_length=10000)
    resume_text: str | None = Field(default=None, max_length=50000)
    optimized_resume_text: str | None = Field(default=None, max_length=50000)


class OptimizeRequest(BaseModel):
    session_id: str = Field(min_length=8, max_length=200)
    job_description: str | None = Field(default=None, max_length=50000)
    skills: str | None = Field(default=None, max_length=10000)
    resume_text: str | None = Field(default=None, max_length=50000)
    user_info: ExtractedIdentity | None = None


class OptimizeResponse(BaseModel):
    optimized_resume: str
    user_info: ExtractedIdentity
    resume_source: str
    state_updates: dict[str, str] = Field(default_factory=dict)


class ExtractTextResponse(BaseModel):
    filename: str
    source_type: str
    source: ExtractionSource = "document"
    text: str
    characters: int = Field(ge=0)
    strategy: str | None = None
    warnings: list[str] = Field(default_factory=list)


class IdentityRequest(BaseModel):
    resume_text: str = Field(default="", max_length=50000)


class RenderPdfRequest(BaseModel):
    resume_text: str | None = Field(default=None, max_length=50000)
    session_id: str | None = Field(default=None, min_length=8, max_length=200)
    view: ResumeView = "original"
    name: str | None = Field(default=None, max_length=200)
    email: str | None = Field(default=None, max_length=320)
    phone: str | None = Field(default=None, max_length=60)
    generated_date: date | None = None


class SessionEditRequest(BaseModel):
    view: ResumeView = "original"
    text: str = Field(min_length=1, max_length=50000)


class SessionState(BaseModel):
    session_id: str
    job_description: str | None = None
    skills: str | None = None
    resume: str | None = None
    extracted_resume_text: str | None = None
    optimized_resume: str | None = None
    analysis_result: AnalysisResult | None = None
    user_info: ExtractedIdentity | None = None
