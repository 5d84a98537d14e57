from fastapi import APIRouter, File, Form, HTTPException, Path, Request, UploadFile, status
from fastapi.responses import Response

from app.core.cache_store import SqliteCacheStore
from app.core.config import settings
from app.core.errors import ResumeServiceError
from app.core.rate_limit import rate_limit
from app.features.identity import extract_identity
from app.parsing.models import ParsedDoc
from app.parsing.parse import UnsupportedDocumentError, parse_upload
from app.schemas.resume import (
    AnalyzeResponse,
    ExtractedIdentity,
    ExtractTextResponse,
    IdentityRequest,
    OptimizeRequest,
    OptimizeResponse,
    RenderPdfRequest,
    RescoreRequest,
    SessionEditRequest,
    SessionState,
)
from app.services import resume_service

router = APIRouter(prefix="/resume")


def _raise_http_error(exc: ResumeServiceError) -> None:
    raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc


def _store_for(session_id: str | None) -> SqliteCacheStore | None:
    cleaned = (session_id or "").strip()
    if not cleaned:
        return None
    if len(cleaned) < 8 or len(cleaned) > 200:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid session_id.")
    return SqliteCacheStore(cleaned)


async def _read_upload(file: UploadFile) -> ParsedDoc:
    filename = file.filename or "uploaded-file"
    limit = settings.max_upload_bytes

    chunks: list[bytes] = []
    total = 0
    while True:
        chunk = await file.read(1024 * 64)
        if not chunk:
            break
        total += len(chunk)
        if total > limit:
            raise HTTPException(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                detail=f"File too large. Maximum allowed size is {settings.max_upload_mb} MB.",
            )
        chunks.append(chunk)

    try:
        return parse_upload(filename, b"".join(chunks))
    except UnsupportedDocumentError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@router.post("/analyze", response_model=AnalyzeResponse)
@rate_limit()
async def analyze_resume(
    request: Request,
    job_description: str = Form(..., max_length=50000),
    skills: str = Form("", max_length=10000),
    resume: str = Form("", max_length=50000),
    resume_file: UploadFile | None = File(None),
    session_id: str | None = Form(None),
):
    store = _store_for(session_id)
    upload = await _read_upload(resume_file) if resume_file is not None else None
    try:
        return await resume_service.analyze_submission(
            job_description=job_description,
            skills=skills,
            resume_text=resume,
            upload=upload,
            store=store,
        )
    except ResumeServiceError as exc:
        _raise_http_error(exc)


@router.post("/rescore", response_model=AnalyzeResponse)
@rate_limit()
async def rescore_resume(request: Request, payload: RescoreRequest):
    try:
        return await resume_service.rescore_session(payload, SqliteCacheStore(payload.session_id))
    except ResumeServiceError as exc:
        _raise_http_error(exc)


@router.post("/optimize", response_model=OptimizeResponse)
@rate_limit()
async def optimize_resume(request: Request, payload: OptimizeRequest):
    try:
        return await resume_service.optimize_session(payload, SqliteCacheStore(payload.session_id))
    except ResumeServiceError as exc:
        _raise_http_error(exc)


@router.post("/extract-text", response_model=ExtractTextResponse)
@rate_limit()
async def extract_resume_text(
    request: Request,
    file: UploadFile = File(...),
    session_id: str | None = Form(None),
):
    store = _store_for(session_id)
    upload = await _read_upload(file)
    try:
        return resume_service.extract_upload(upload, store)
    except ResumeServiceError as exc:
        _raise_http_error(exc)


@router.post("/identity", response_model=ExtractedIdentity)
@rate_limit()
async def resume_identity(request: Request, payload: IdentityRequest):
    return extract_identity(payload.resume_text)


@router.post("/pdf")
@rate_limit()
async def render_resume(request: Request, payload: RenderPdfRequest):
    store = _store_for(payload.session_id)
    try:
        content, filename = resume_service.render_pdf_download(payload, store)
    except ResumeServiceError as exc:
        _raise_http_error(exc)
    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/session/{session_id}", response_model=SessionState)
@rate_limit()
async def get_session(request: Request, session_id: str = Path(..., min_length=8, max_length=200)):
    return resume_service.load_session(session_id, SqliteCacheStore(session_id))


@router.put("/session/{session_id}", response_model=SessionState)
@rate_limit()
async def save_session(
    request: Request,
    payload: SessionEditRequest,
    session_id: str = Path(..., min_length=8, max_length=200),
):
    store = SqliteCacheStore(session_id)
    try:
        resume_service.save_session_edit(store, payload)
    except ResumeServiceError as exc:
        _raise_http_error(exc)
    return resume_service.load_session(session_id, store)
