from __future__ import annotations

import re

from app.schemas.resume import ExtractedIdentity

_EMAIL_RE = re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b")
_PHONE_RE = re.compile(r"\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}")
_SECTION_KEYWORD_RE = re.compile(r"^(EDUCATION|EXPERIENCE|SKILLS|PROFILE|OBJECTIVE|SUMMARY)", re.IGNORECASE)
_URL_RE = re.compile(r"^(http|www)", re.IGNORECASE)

_EDUCATION_MARKERS = ("EDUCATION",)
_EXPERIENCE_MARKERS = ("EXPERIENCE", "EMPLOYMENT", "WORK HISTORY")


def _clean_lines(text: str) -> list[str]:
    return [line.strip() for line in (text or "").split("\n") if line.strip()]


def _looks_like_name(line: str) -> bool:
    if "@" in line or line[0].isdigit():
        return False
    if _SECTION_KEYWORD_RE.match(line) or _URL_RE.match(line):
        return False
    return len(line) > 2 and len(line.split()) <= 5


def is_section_header(line: str) -> bool:
    return line.isupper()


def extract_identity(resume_text: str, *, scan_lines: int = 10) -> ExtractedIdentity:
    """Heuristic name/email/phone and education/experience lines from resume text.

    Assumes a single-column resume with ALL-CAPS section headers. Never raises;
    fields that cannot be found keep their placeholder defaults.
    """
    text = resume_text or ""
    lines = _clean_lines(text)
    identity = ExtractedIdentity()

    for line in lines[:scan_lines]:
        if _looks_like_name(line):
            identity.name = line
            break

    email_match = _EMAIL_RE.search(text)
    if email_match:
        identity.email = email_match.group(0)

    phone_match = _PHONE_RE.search(text)
    if phone_match:
        identity.phone = phone_match.group(0)

    in_education = False
    in_experience = False
    for line in lines:
        if is_section_header(line):
            header = line.upper()
            in_education = any(marker in header for marker in _EDUCATION_MARKERS)
            in_experience = any(marker in header for marker in _EXPERIENCE_MARKERS)
            continue
        if in_education:
            identity.education.append(line)
        elif in_experience:
            identity.experience.append(line)

    return identity
