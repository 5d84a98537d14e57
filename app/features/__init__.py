from .identity import extract_identity, is_section_header
from .resolver import (
    ResolvedResume,
    ResumeResolver,
    ResumeSource,
    ResumeState,
    build_placeholder_resume,
    is_usable_resume_text,
)

__all__ = [
    "extract_identity",
    "is_section_header",
    "ResolvedResume",
    "ResumeResolver",
    "ResumeSource",
    "ResumeState",
    "build_placeholder_resume",
    "is_usable_resume_text",
]
