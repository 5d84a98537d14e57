from __future__ import annotations

import json
import logging
import re
from datetime import date
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from app.ai.factory import get_ai_client
from app.ai.types import AIClient
from app.core.cache_store import CacheKey, CacheStore
from app.core.config import settings
from app.core.errors import ExtractionFailure, ModelResponseError, NoUsableResumeText, ValidationError
from app.features.identity import extract_identity
from app.features.resolver import ResumeResolver, ResumeSource, ResumeState, is_usable_resume_text
from app.parsing.models import ParsedDoc
from app.parsing.pdf_recovery import has_pdf_signature
from app.schemas.resume import (
    AnalysisResult,
    AnalyzeResponse,
    ExtractedIdentity,
    ExtractTextResponse,
    OptimizeRequest,
    OptimizeResponse,
    RenderPdfRequest,
    RescoreRequest,
    ResumeView,
    SessionEditRequest,
    SessionState,
)
from app.services.pdf_renderer import metadata_for, render_resume_pdf
from app.services.prompts import (
    build_optimization_prompt,
    build_scoring_prompt,
    optimization_messages,
    scoring_messages,
)

logger = logging.getLogger(__name__)

REQUIRED_SCORING_KEYS = ("score", "strengths", "weaknesses", "keywords", "improvement_suggestions")

_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```", re.IGNORECASE)
_FILENAME_UNSAFE_RE = re.compile(r"[^A-Za-z0-9]+")


class _StagedStore:
    """Reads through to a store but holds writes until commit()."""

    def __init__(self, store: CacheStore | None):
        self._store = store
        self.pending: dict[CacheKey, str] = {}

    def get(self, key: CacheKey) -> str | None:
        key = CacheKey(key)
        if key in self.pending:
            return self.pending[key]
        return self._store.get(key) if self._store is not None else None

    def set(self, key: CacheKey, value: str) -> None:
        self.pending[CacheKey(key)] = str(value)

    def commit(self) -> dict[str, str]:
        if self._store is not None:
            for key, value in self.pending.items():
                self._store.set(key, value)
        return {key.value: value for key, value in self.pending.items()}


def _preview(text: str) -> str:
    return (text or "")[: settings.log_text_preview_chars]


def _select_json_span(raw: str) -> str | None:
    fenced = _FENCE_RE.search(raw)
    if fenced:
        return fenced.group(1)
    start = raw.find("{")
    end = raw.rfind("}")
    if start == -1 or end <= start:
        return None
    return raw[start : end + 1]


def parse_scoring_response(raw: str) -> AnalysisResult:
    span = _select_json_span(raw or "")
    if span is None:
        logger.warning("resume_score_parse_failed reason=no_json preview=%r", _preview(raw))
        raise ModelResponseError("No JSON object found in model response.")

    try:
        payload: Any = json.loads(span)
    except json.JSONDecodeError as exc:
        logger.warning("resume_score_parse_failed reason=invalid_json preview=%r", _preview(span))
        raise ModelResponseError(f"Model response is not valid JSON: {exc.msg}") from exc

    if not isinstance(payload, dict):
        raise ModelResponseError("Model response JSON must be an object.")

    missing = [key for key in REQUIRED_SCORING_KEYS if key not in payload]
    if missing:
        logger.warning("resume_score_parse_failed reason=missing_keys keys=%s", ",".join(missing))
        raise ModelResponseError(f"Model response is missing required fields: {', '.join(missing)}")

    try:
        return AnalysisResult.model_validate({key: payload[key] for key in REQUIRED_SCORING_KEYS})
    except PydanticValidationError as exc:
        raise ModelResponseError(f"Model response failed validation: {exc.error_count()} error(s)") from exc


def _validate_inputs(job_description: str, resume_text: str) -> None:
    if not (job_description or "").strip():
        raise ValidationError("Job description is required.", code="job_description_required")
    if not is_usable_resume_text(resume_text):
        raise NoUsableResumeText()


async def score(
    job_description: str,
    resume_text: str,
    skills: str,
    *,
    client: AIClient | None = None,
) -> AnalysisResult:
    _validate_inputs(job_description, resume_text)
    client = client or get_ai_client()

    prompt = build_scoring_prompt(job_description, resume_text, skills or "")
    raw = await client.complete(scoring_messages(prompt))
    result = parse_scoring_response(raw)

    logger.info("resume_score_completed score=%s resume_chars=%s", result.score, len(resume_text))
    return result


async def optimize(
    job_description: str,
    resume_text: str,
    skills: str,
    identity: ExtractedIdentity | None = None,
    *,
    client: AIClient | None = None,
) -> str:
    _validate_inputs(job_description, resume_text)
    client = client or get_ai_client()

    prompt = build_optimization_prompt(job_description, resume_text, skills or "", identity)
    raw = await client.complete(optimization_messages(prompt))
    optimized = (raw or "").strip()
    if not optimized:
        raise ModelResponseError("Model returned an empty resume.", code="empty_optimization")

    logger.info("resume_optimize_completed resume_chars=%s optimized_chars=%s", len(resume_text), len(optimized))
    return optimized


def _pick(explicit: str | None, store: CacheStore | None, key: CacheKey) -> str:
    if explicit is not None and explicit.strip():
        return explicit
    if store is None:
        return ""
    return store.get(key) or ""


def _stored_identity(store: CacheStore | None) -> ExtractedIdentity | None:
    raw = store.get(CacheKey.USER_INFO) if store is not None else None
    if not raw:
        return None
    try:
        return ExtractedIdentity.model_validate_json(raw)
    except PydanticValidationError:
        logger.warning("session_user_info_invalid chars=%s", len(raw))
        return None


def _stored_analysis(store: CacheStore) -> AnalysisResult | None:
    raw = store.get(CacheKey.ANALYSIS_RESULT)
    if not raw:
        return None
    try:
        return AnalysisResult.model_validate_json(raw)
    except PydanticValidationError:
        logger.warning("session_analysis_result_invalid chars=%s", len(raw))
        return None


async def analyze_submission(
    *,
    job_description: str,
    skills: str,
    resume_text: str,
    upload: ParsedDoc | None = None,
    store: CacheStore | None = None,
    client: AIClient | None = None,
) -> AnalyzeResponse:
    """Score a freshly submitted form: pasted text, or text extracted from an uploaded file."""
    candidate = resume_text or ""
    source = "form"
    if upload is not None and is_usable_resume_text(upload.text):
        candidate = upload.text
        source = "upload"

    result = await score(job_description, candidate, skills, client=client)

    staged = _StagedStore(store)
    staged.set(CacheKey.JOB_DESCRIPTION, job_description)
    staged.set(CacheKey.SKILLS, skills or "")
    staged.set(CacheKey.RESUME, candidate)
    if upload is not None:
        staged.set(CacheKey.EXTRACTED_RESUME_TEXT, candidate)
    staged.set(CacheKey.ANALYSIS_RESULT, result.model_dump_json())
    updates = staged.commit()

    return AnalyzeResponse(
        **result.model_dump(),
        extracted_text=upload.text if upload is not None else None,
        resume_source=source,
        state_updates=updates,
    )


async def rescore_session(
    request: RescoreRequest,
    store: CacheStore,
    *,
    client: AIClient | None = None,
) -> AnalyzeResponse:
    job_description = _pick(request.job_description, store, CacheKey.JOB_DESCRIPTION)
    skills = _pick(request.skills, store, CacheKey.SKILLS)

    staged = _StagedStore(store)
    resolver = ResumeResolver(
        staged,
        ResumeState(original=request.resume_text, optimized=request.optimized_resume_text),
    )
    resolved = resolver.resolve(request.view)

    result = await score(job_description, resolved.text, skills, client=client)

    if request.job_description:
        staged.set(CacheKey.JOB_DESCRIPTION, job_description)
    if request.skills:
        staged.set(CacheKey.SKILLS, skills)
    staged.set(CacheKey.ANALYSIS_RESULT, result.model_dump_json())
    updates = staged.commit()
    _add_memory_updates(updates, resolver.state, resolved.backfilled)

    return AnalyzeResponse(
        **result.model_dump(),
        resume_source=resolved.source.value,
        state_updates=updates,
    )


def _add_memory_updates(
    updates: dict[str, str],
    state: ResumeState,
    backfilled: tuple[ResumeSource, ...],
) -> None:
    if ResumeSource.MEMORY_ORIGINAL in backfilled and state.original:
        updates.setdefault(CacheKey.RESUME.value, state.original)
    if ResumeSource.MEMORY_OPTIMIZED in backfilled and state.optimized:
        updates.setdefault(CacheKey.OPTIMIZED_RESUME.value, state.optimized)


async def optimize_session(
    request: OptimizeRequest,
    store: CacheStore,
    *,
    client: AIClient | None = None,
) -> OptimizeResponse:
    job_description = _pick(request.job_description, store, CacheKey.JOB_DESCRIPTION)
    skills = _pick(request.skills, store, CacheKey.SKILLS)

    staged = _StagedStore(store)
    resolver = ResumeResolver(staged, ResumeState(original=request.resume_text))
    resolved = resolver.resolve("original")

    identity = request.user_info or extract_identity(resolved.text)
    optimized = await optimize(job_description, resolved.text, skills, identity, client=client)

    staged.set(CacheKey.OPTIMIZED_RESUME, optimized)
    staged.set(CacheKey.USER_INFO, identity.model_dump_json())
    updates = staged.commit()
    _add_memory_updates(updates, resolver.state, resolved.backfilled)

    return OptimizeResponse(
        optimized_resume=optimized,
        user_info=identity,
        resume_source=resolved.source.value,
        state_updates=updates,
    )


def extract_upload(
    upload: ParsedDoc,
    store: CacheStore | None = None,
) -> ExtractTextResponse:
    """Keep usable extracted text; otherwise fall back to the session's resume or a placeholder."""
    if is_usable_resume_text(upload.text):
        if store is not None:
            store.set(CacheKey.EXTRACTED_RESUME_TEXT, upload.text)
            store.set(CacheKey.RESUME, upload.text)
        return ExtractTextResponse(
            filename=upload.filename,
            source_type=upload.source_type,
            text=upload.text,
            characters=upload.characters,
            strategy=upload.strategy,
            warnings=upload.parsing_warnings,
        )

    if store is None:
        raise ExtractionFailure(f"Extracted {upload.characters} characters from {upload.filename}.")

    logger.info("resume_extraction_unusable filename=%s chars=%s", upload.filename, upload.characters)
    resolver = ResumeResolver(store, ResumeState())
    resolved = resolver.resolve_or_placeholder(
        "original",
        job_description=store.get(CacheKey.JOB_DESCRIPTION) or "",
        skills=store.get(CacheKey.SKILLS) or "",
        identity=_stored_identity(store),
    )
    source = "placeholder" if resolved.source is ResumeSource.PLACEHOLDER else "session"
    warnings = [*upload.parsing_warnings, "Could not extract usable text from this file."]
    return ExtractTextResponse(
        filename=upload.filename,
        source_type=upload.source_type,
        source=source,
        text=resolved.text,
        characters=len(resolved.text),
        strategy=upload.strategy,
        warnings=warnings,
    )


def save_session_edit(store: CacheStore, edit: SessionEditRequest) -> dict[str, str]:
    if has_pdf_signature(edit.text):
        raise ValidationError("Edited resume looks like binary PDF content.", code="binary_resume_text")

    if edit.view == "optimized":
        store.set(CacheKey.OPTIMIZED_RESUME, edit.text)
        return {CacheKey.OPTIMIZED_RESUME.value: edit.text}

    store.set(CacheKey.RESUME, edit.text)
    store.set(CacheKey.EXTRACTED_RESUME_TEXT, edit.text)
    return {CacheKey.RESUME.value: edit.text, CacheKey.EXTRACTED_RESUME_TEXT.value: edit.text}


def load_session(session_id: str, store: CacheStore) -> SessionState:
    return SessionState(
        session_id=session_id,
        job_description=store.get(CacheKey.JOB_DESCRIPTION),
        skills=store.get(CacheKey.SKILLS),
        resume=store.get(CacheKey.RESUME),
        extracted_resume_text=store.get(CacheKey.EXTRACTED_RESUME_TEXT),
        optimized_resume=store.get(CacheKey.OPTIMIZED_RESUME),
        analysis_result=_stored_analysis(store),
        user_info=_stored_identity(store),
    )


def download_filename(name: str, view: ResumeView) -> str:
    slug = _FILENAME_UNSAFE_RE.sub("_", name).strip("_") or "resume"
    suffix = "optimized_resume" if view == "optimized" else "resume"
    return f"{slug}_{suffix}.pdf"


def render_pdf_download(
    request: RenderPdfRequest,
    store: CacheStore | None = None,
) -> tuple[bytes, str]:
    text = request.resume_text
    if not (text or "").strip():
        if store is None:
            raise ValidationError("Resume text is required to render a PDF.", code="resume_text_required")
        text = ResumeResolver(store, ResumeState()).resolve(request.view).text

    saved = _stored_identity(store)
    metadata = metadata_for(text, saved, request.generated_date or date.today())
    metadata = metadata.with_overrides(name=request.name, email=request.email, phone=request.phone)

    content = render_resume_pdf(text, metadata)
    filename = download_filename(metadata.name, request.view)
    logger.info("resume_pdf_rendered view=%s bytes=%s", request.view, len(content))
    return content, filename
