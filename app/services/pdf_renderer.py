from __future__ import annotations

import re
from dataclasses import dataclass, replace
from datetime import date
from io import BytesIO

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.lib.utils import simpleSplit
from reportlab.pdfgen import canvas

from app.features.identity import extract_identity, is_section_header
from app.schemas.resume import DEFAULT_EMAIL, DEFAULT_NAME, DEFAULT_PHONE, ExtractedIdentity

PAGE_WIDTH, PAGE_HEIGHT = A4
MARGIN = 20 * mm
CONTENT_WIDTH = PAGE_WIDTH - 2 * MARGIN
FOOTER_SPACE = 12 * mm

BODY_FONT = "Helvetica"
BOLD_FONT = "Helvetica-Bold"
BODY_SIZE = 10
HEADER_SIZE = 12
NAME_SIZE = 18
FOOTER_SIZE = 8

BODY_LEADING = 5 * mm
HEADER_LEADING = 6 * mm
SECTION_GAP = 5 * mm

_CONTROL_CHARS_RE = re.compile(r"[\x00-\x08\x0b-\x1f\x7f]")
_BLANK_RUN_RE = re.compile(r"\n{3,}")


@dataclass(frozen=True)
class ResumeMetadata:
    name: str = DEFAULT_NAME
    email: str = DEFAULT_EMAIL
    phone: str = DEFAULT_PHONE
    generated_date: date = date(1970, 1, 1)

    def with_overrides(self, *, name: str | None = None, email: str | None = None, phone: str | None = None):
        return replace(
            self,
            name=(name or "").strip() or self.name,
            email=(email or "").strip() or self.email,
            phone=(phone or "").strip() or self.phone,
        )


def metadata_for(
    resume_text: str,
    identity: ExtractedIdentity | None = None,
    generated_date: date | None = None,
) -> ResumeMetadata:
    """Header fields for a rendered resume; a saved identity wins over one extracted from the text."""
    extracted = extract_identity(resume_text)
    saved = identity or ExtractedIdentity()
    return ResumeMetadata(
        name=saved.known_name or extracted.name,
        email=saved.known_email or extracted.email,
        phone=saved.known_phone or extracted.phone,
        generated_date=generated_date or date.today(),
    )


def _printable(text: str) -> str:
    cleaned = _CONTROL_CHARS_RE.sub(" ", (text or "").replace("\r\n", "\n").replace("\r", "\n"))
    cleaned = cleaned.replace("\t", "    ")
    # standard Type 1 fonts only cover WinAnsi
    return cleaned.encode("cp1252", errors="replace").decode("cp1252")


class _ResumeCanvas:
    def __init__(self, metadata: ResumeMetadata):
        self.buffer = BytesIO()
        self.metadata = metadata
        self.pdf = canvas.Canvas(self.buffer, pagesize=A4, invariant=1)
        self.pdf.setTitle(f"{_printable(metadata.name)} - Resume")
        self.pdf.setAuthor(_printable(metadata.name))
        self.pdf.setSubject("Resume")
        self.pdf.setCreator("ATS Resume Optimizer")
        self.y = PAGE_HEIGHT - MARGIN

    def footer(self) -> None:
        self.pdf.setFont(BODY_FONT, FOOTER_SIZE)
        self.pdf.setFillColor(colors.grey)
        self.pdf.drawCentredString(
            PAGE_WIDTH / 2,
            MARGIN / 2,
            f"Generated on {self.metadata.generated_date.isoformat()}",
        )
        self.pdf.setFillColor(colors.black)

    def ensure_room(self) -> None:
        if self.y >= MARGIN + FOOTER_SPACE:
            return
        self.footer()
        self.pdf.showPage()
        self.y = PAGE_HEIGHT - MARGIN

    def header(self) -> None:
        center = PAGE_WIDTH / 2
        self.pdf.setFont(BOLD_FONT, NAME_SIZE)
        self.pdf.drawCentredString(center, self.y, _printable(self.metadata.name))
        self.y -= 8 * mm

        self.pdf.setFont(BODY_FONT, BODY_SIZE)
        for value in (self.metadata.email, self.metadata.phone):
            self.pdf.drawCentredString(center, self.y, _printable(value))
            self.y -= 5 * mm

        self.pdf.setLineWidth(0.5)
        self.pdf.line(MARGIN, self.y, PAGE_WIDTH - MARGIN, self.y)
        self.y -= 8 * mm

    def body(self, text: str) -> None:
        for raw_line in text.split("\n"):
            line = raw_line.strip()
            if not line:
                self.y -= BODY_LEADING
                continue

            if is_section_header(line):
                self.y -= SECTION_GAP
                for part in simpleSplit(line, BOLD_FONT, HEADER_SIZE, CONTENT_WIDTH):
                    self.ensure_room()
                    self.pdf.setFont(BOLD_FONT, HEADER_SIZE)
                    self.pdf.drawString(MARGIN, self.y, part)
                    self.y -= HEADER_LEADING
                continue

            for part in simpleSplit(line, BODY_FONT, BODY_SIZE, CONTENT_WIDTH):
                self.ensure_room()
                self.pdf.setFont(BODY_FONT, BODY_SIZE)
                self.pdf.drawString(MARGIN, self.y, part)
                self.y -= BODY_LEADING

    def finish(self) -> bytes:
        self.footer()
        self.pdf.showPage()
        self.pdf.save()
        return self.buffer.getvalue()


def render_resume_pdf(resume_text: str, metadata: ResumeMetadata | None = None) -> bytes:
    """Render plain resume text as a single-column A4 PDF. Same input, same bytes."""
    metadata = metadata or ResumeMetadata()
    text = _BLANK_RUN_RE.sub("\n\n", _printable(resume_text).strip())

    document = _ResumeCanvas(metadata)
    document.header()
    document.body(text)
    return document.finish()
