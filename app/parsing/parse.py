from __future__ import annotations

import hashlib
import logging
from io import BytesIO

from .models import ParsedDoc
from .pdf_recovery import (
    DEFAULT_STRATEGIES,
    MIN_RECOVERED_CHARS,
    has_pdf_signature,
    run_strategies,
)

logger = logging.getLogger(__name__)

TEXT_EXTENSIONS = {"txt", "md"}
SUPPORTED_EXTENSIONS = TEXT_EXTENSIONS | {"pdf", "docx"}


class UnsupportedDocumentError(ValueError):
    pass


def _compute_doc_id(text: str, filename: str) -> str:
    seed = text if text.strip() else filename
    digest = hashlib.sha256(seed.encode("utf-8", errors="ignore")).hexdigest()
    return digest[:16]


def _pypdf_text(content: bytes) -> str:
    from pypdf import PdfReader

    reader = PdfReader(BytesIO(content))
    if len(reader.pages) == 0:
        raise ValueError("PDF has no pages.")

    page_chunks: list[str] = []
    for page in reader.pages:
        page_text = (page.extract_text() or "").strip()
        if page_text:
            page_chunks.append(page_text)
    return "\n\n".join(page_chunks)


def _as_pdf_bytes(content: bytes | str | None) -> bytes:
    if not content:
        return b""
    if isinstance(content, str):
        return content.encode("latin-1", errors="replace")
    return bytes(content)


def _extract_pdf(content: bytes) -> tuple[str, str | None]:
    """pypdf when it can read the file; the raw-content heuristics only when it cannot."""
    if not has_pdf_signature(content):
        return "", None

    try:
        text = _pypdf_text(content)
    except Exception as exc:  # noqa: BLE001 - pypdf raises several unrelated types for malformed files
        logger.info("pdf_parse_failed fallback=heuristics: %s", exc)
        return run_strategies(content.decode("latin-1"), DEFAULT_STRATEGIES, min_chars=MIN_RECOVERED_CHARS)

    if len(text) < MIN_RECOVERED_CHARS:
        logger.info("pdf_text_too_short strategy=pypdf chars=%s", len(text))
        return "", None
    return text, "pypdf"


def extract_text(pdf_bytes: bytes | str | None) -> str:
    """Plain text from PDF content: pypdf, or the raw-content heuristics when pypdf cannot parse it.

    Returns "" on any failure. Never raises.
    """
    text, _ = _extract_pdf(_as_pdf_bytes(pdf_bytes))
    return text


def _decode_text(content: bytes) -> tuple[str, str]:
    for encoding in ("utf-8", "utf-16", "latin-1"):
        try:
            return content.decode(encoding), encoding
        except UnicodeDecodeError:
            continue
    return content.decode("utf-8", errors="replace"), "utf-8"


def _parse_docx(content: bytes) -> tuple[str, list[str]]:
    from docx import Document

    warnings: list[str] = []
    try:
        document = Document(BytesIO(content))
    except Exception as exc:  # noqa: BLE001 - python-docx raises several unrelated types for bad archives
        warnings.append(f"DOCX parsing failed: {exc}")
        return "", warnings

    paragraphs = [p.text.strip() for p in document.paragraphs if p.text and p.text.strip()]
    if not paragraphs:
        warnings.append("No extractable text found in DOCX.")
    return "\n".join(paragraphs), warnings


def parse_upload(filename: str, content: bytes) -> ParsedDoc:
    name = filename or "uploaded-file"
    extension = name.rsplit(".", 1)[-1].lower() if "." in name else ""
    if extension not in SUPPORTED_EXTENSIONS:
        raise UnsupportedDocumentError(
            f"Unsupported file type '.{extension}'. Supported types: {', '.join(sorted(SUPPORTED_EXTENSIONS))}."
        )

    warnings: list[str] = []
    strategy: str | None = None

    if extension == "pdf":
        source_type = "pdf"
        if not has_pdf_signature(content):
            raise UnsupportedDocumentError("File does not appear to be a valid PDF.")
        text, strategy = _extract_pdf(content)
        if not text:
            warnings.append("No extractable text found in PDF.")
        elif strategy != "pypdf":
            warnings.append(f"Text recovered with fallback strategy '{strategy}'.")
    elif extension == "docx":
        source_type = "docx"
        text, warnings = _parse_docx(content)
        strategy = "python-docx"
    else:
        source_type = "txt"
        text, encoding = _decode_text(content)
        strategy = f"decode:{encoding}"
        if has_pdf_signature(text):
            text = ""
            warnings.append("Text file contains raw PDF content.")

    logger.info(
        "document_parsed filename=%s source_type=%s strategy=%s chars=%s",
        name,
        source_type,
        strategy,
        len(text),
    )
    return ParsedDoc(
        doc_id=_compute_doc_id(text, name),
        filename=name,
        source_type=source_type,
        text=text,
        strategy=strategy if text else None,
        parsing_warnings=warnings,
    )
