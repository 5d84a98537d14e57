from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum

from app.core.cache_store import CacheKey, CacheStore
from app.core.config.prompt_budget import get_budget_value
from app.core.errors import NoUsableResumeText
from app.parsing.pdf_recovery import has_pdf_signature
from app.schemas.resume import DEFAULT_EMAIL, DEFAULT_NAME, DEFAULT_PHONE, ExtractedIdentity, ResumeView

logger = logging.getLogger(__name__)


class ResumeSource(str, Enum):
    CACHE_OPTIMIZED = "cache_optimized"
    MEMORY_OPTIMIZED = "memory_optimized"
    CACHE_ORIGINAL = "cache_original"
    MEMORY_ORIGINAL = "memory_original"
    CACHE_EXTRACTED = "cache_extracted"
    PLACEHOLDER = "placeholder"


_OPTIMIZED_KIND = {ResumeSource.CACHE_OPTIMIZED, ResumeSource.MEMORY_OPTIMIZED}

_CACHE_SLOTS = {
    ResumeSource.CACHE_OPTIMIZED: CacheKey.OPTIMIZED_RESUME,
    ResumeSource.CACHE_ORIGINAL: CacheKey.RESUME,
    ResumeSource.CACHE_EXTRACTED: CacheKey.EXTRACTED_RESUME_TEXT,
}

_MEMORY_SLOTS = {
    ResumeSource.MEMORY_OPTIMIZED: "optimized",
    ResumeSource.MEMORY_ORIGINAL: "original",
}

PRIORITY: dict[str, tuple[ResumeSource, ...]] = {
    "optimized": (
        ResumeSource.CACHE_OPTIMIZED,
        ResumeSource.MEMORY_OPTIMIZED,
        ResumeSource.CACHE_ORIGINAL,
        ResumeSource.MEMORY_ORIGINAL,
        ResumeSource.CACHE_EXTRACTED,
    ),
    "original": (
        ResumeSource.CACHE_ORIGINAL,
        ResumeSource.MEMORY_ORIGINAL,
        ResumeSource.CACHE_EXTRACTED,
    ),
}


def min_resume_chars() -> int:
    try:
        return max(1, int(get_budget_value("resume.min_chars", 100)))
    except (TypeError, ValueError):
        return 100


def is_usable_resume_text(text: str | None) -> bool:
    if not text or not text.strip():
        return False
    if has_pdf_signature(text):
        return False
    return len(text) >= min_resume_chars()


@dataclass
class ResumeState:
    original: str | None = None
    optimized: str | None = None


@dataclass(frozen=True)
class ResolvedResume:
    text: str
    source: ResumeSource
    backfilled: tuple[ResumeSource, ...] = ()


def build_placeholder_resume(
    job_description: str = "",
    skills: str = "",
    identity: ExtractedIdentity | None = None,
) -> str:
    name = (identity.known_name if identity else None) or DEFAULT_NAME
    email = (identity.known_email if identity else None) or DEFAULT_EMAIL
    phone = (identity.known_phone if identity else None) or DEFAULT_PHONE
    target = (job_description or "").strip() or "(No job description provided.)"
    skill_line = (skills or "").strip() or "general professional skills"

    return f"""{name}
{email} | {phone}

>> Your original resume text could not be extracted. <<
>> Please replace this text with your resume content. <<

Please create a professional resume based on the following skills: {skill_line}

Target position:
{target}

Professional Summary:
(Add a brief summary of your professional background and key qualifications.)

Work Experience:
(List your work experience, including job titles, companies, dates, and accomplishments.)

Education:
(List your educational background, degrees, institutions, and graduation dates.)

Skills:
(List relevant skills for the position you're applying for.)

Certifications:
(List any professional certifications you hold.)
"""


@dataclass
class ResumeResolver:
    """Pick the authoritative resume text for a view from the cached and in-memory copies."""

    store: CacheStore
    state: ResumeState = field(default_factory=ResumeState)

    def _read(self, source: ResumeSource) -> str | None:
        if source in _CACHE_SLOTS:
            return self.store.get(_CACHE_SLOTS[source])
        return getattr(self.state, _MEMORY_SLOTS[source])

    def _write(self, source: ResumeSource, value: str) -> None:
        if source in _CACHE_SLOTS:
            self.store.set(_CACHE_SLOTS[source], value)
        else:
            setattr(self.state, _MEMORY_SLOTS[source], value)

    def _backfill(self, chosen: ResumeSource, ranked: tuple[ResumeSource, ...], value: str) -> tuple[ResumeSource, ...]:
        chosen_is_optimized = chosen in _OPTIMIZED_KIND
        filled: list[ResumeSource] = []
        for source in ranked[: ranked.index(chosen)]:
            if (source in _OPTIMIZED_KIND) != chosen_is_optimized:
                continue
            self._write(source, value)
            filled.append(source)
        return tuple(filled)

    def resolve(self, view: ResumeView) -> ResolvedResume:
        ranked = PRIORITY[view]
        for source in ranked:
            candidate = self._read(source)
            if not is_usable_resume_text(candidate):
                continue
            backfilled = self._backfill(source, ranked, candidate)
            logger.info(
                "resume_resolved view=%s source=%s chars=%s backfilled=%s",
                view,
                source.value,
                len(candidate),
                ",".join(item.value for item in backfilled) or "-",
            )
            return ResolvedResume(text=candidate, source=source, backfilled=backfilled)

        logger.info("resume_resolution_failed view=%s", view)
        raise NoUsableResumeText()

    def resolve_or_placeholder(
        self,
        view: ResumeView,
        *,
        job_description: str = "",
        skills: str = "",
        identity: ExtractedIdentity | None = None,
    ) -> ResolvedResume:
        try:
            return self.resolve(view)
        except NoUsableResumeText:
            placeholder = build_placeholder_resume(job_description, skills, identity)
            self.store.set(CacheKey.RESUME, placeholder)
            self.store.set(CacheKey.EXTRACTED_RESUME_TEXT, placeholder)
            self.state.original = placeholder
            logger.info("resume_placeholder_created view=%s chars=%s", view, len(placeholder))
            return ResolvedResume(
                text=placeholder,
                source=ResumeSource.PLACEHOLDER,
                backfilled=(ResumeSource.CACHE_ORIGINAL, ResumeSource.CACHE_EXTRACTED, ResumeSource.MEMORY_ORIGINAL),
            )
