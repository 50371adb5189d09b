"""REST API routes for SmartDocs."""

from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, File, HTTPException, Request, UploadFile
from pydantic import BaseModel, Field

from smartdocs.config import settings
from smartdocs.ingestion.errors import (
    AnswerGenerationError,
    EmbeddingProviderError,
    NoReadableText,
    SmartDocsError,
    StoreUnavailable,
)
from smartdocs.ingestion.schemas import UploadedPdf
from smartdocs.services import chat
from smartdocs.services.container import Services
from smartdocs.services.evaluation import EvalReport, evaluate

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Request / Response schemas
# ---------------------------------------------------------------------------

class FileResult(BaseModel):
    filename: str
    status: str
    chunks: int = 0
    error: str = ""


class IngestResponse(BaseModel):
    ok: bool
    added: int
    duplicates: int
    files: list[FileResult]


class ChatRequest(BaseModel):
    question: str = Field(..., min_length=1, description="Question about the ingested documents.")
    k: int | None = Field(None, ge=1, le=50)


class CitationOut(BaseModel):
    idx: int
    source: str
    page: int
    text: str


class ChatResponse(BaseModel):
    answer: str
    citations: list[CitationOut]


class StatusResponse(BaseModel):
    chunks: int


class HealthResponse(BaseModel):
    status: str
    chunks: int


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _services(request: Request) -> Services:
    return request.app.state.services


def _to_http(exc: SmartDocsError) -> HTTPException:
    """Map core errors to a status code and a non-sensitive message."""
    if isinstance(exc, NoReadableText):
        status = 400
    elif isinstance(exc, (EmbeddingProviderError, AnswerGenerationError)):
        status = 502
    elif isinstance(exc, StoreUnavailable):
        status = 503
    else:
        status = 500
    return HTTPException(status_code=status, detail=exc.public_message)


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get("/health", response_model=HealthResponse, tags=["system"])
async def health_check(request: Request):
    """Return service health and the number of retrievable chunks."""
    try:
        n = await asyncio.to_thread(_services(request).store.count)
    except StoreUnavailable as exc:
        raise _to_http(exc) from exc
    return HealthResponse(status="ok", chunks=n)


@router.get("/status", response_model=StatusResponse, tags=["system"])
async def status(request: Request):
    try:
        return StatusResponse(chunks=await asyncio.to_thread(_services(request).store.count))
    except StoreUnavailable as exc:
        raise _to_http(exc) from exc


@router.post("/ingest", response_model=IngestResponse, tags=["ingestion"])
async def ingest(request: Request, files: list[UploadFile] | None = File(None)):
    """Upload one or more PDFs; they are chunked, embedded and stored."""
    if not files:
        raise HTTPException(status_code=400, detail="No files")

    limit = _services(request).pipeline.settings.max_file_bytes
    uploads: list[UploadedPdf] = []
    for f in files:
        # Read one byte past the ceiling so oversize files are detected
        # without buffering them whole.
        data = await f.read(limit + 1)
        uploads.append(
            UploadedPdf(
                filename=f.filename or "upload.pdf",
                data=data,
                content_type=f.content_type or "",
            )
        )
        await f.close()

    try:
        report = await _services(request).pipeline.ingest(uploads)
    except SmartDocsError as exc:
        logger.exception("Ingestion failed.")
        raise _to_http(exc) from exc

    return IngestResponse(
        ok=True,
        added=report.added,
        duplicates=report.duplicates,
        files=[
            FileResult(filename=fr.filename, status=fr.status, chunks=fr.chunks, error=fr.error)
            for fr in report.files
        ],
    )


@router.post("/chat", response_model=ChatResponse, tags=["research"])
async def ask(request: Request, body: ChatRequest):
    """Answer a question from the ingested documents, with citations."""
    try:
        result = await chat.answer(body.question, _services(request).retrieval, body.k)
    except SmartDocsError as exc:
        logger.exception("Error processing question.")
        raise _to_http(exc) from exc
    return ChatResponse(**result)


@router.get("/eval", response_model=EvalReport, tags=["research"])
async def run_eval(request: Request):
    """Keyword recall@k of retrieval over the sample questions."""
    services = _services(request)
    try:
        if await asyncio.to_thread(services.store.count) == 0:
            raise HTTPException(status_code=400, detail="No documents ingested.")
        return await evaluate(services.retrieval, k=settings.top_k)
    except SmartDocsError as exc:
        logger.exception("Evaluation failed.")
        raise _to_http(exc) from exc
