"""Document ingestion and retrieval endpoints."""

import logging

from fastapi import APIRouter, File, Form, HTTPException, UploadFile, status
from pydantic import BaseModel, Field

from src.api.deps import AppSettings, Pipeline, RetrieverDep
from src.core.errors import RAGError
from src.db.models import DocumentType
from src.db.repository import CorpusFilter

logger = logging.getLogger(__name__)

router = APIRouter()


# ============================================
# Request/Response Models
# ============================================


class IngestResponse(BaseModel):
    """Result of an ingestion request."""

    success: bool
    document_id: str
    chunks_processed: int
    message: str


class RetrieveRequest(BaseModel):
    """Retrieval request."""

    query: str = Field(..., min_length=1, max_length=10000)
    top_k: int | None = Field(None, ge=1, le=50)
    min_score: float | None = Field(None, ge=-1.0, le=1.0)
    owner_id: str | None = None
    document_type: DocumentType | None = None
    jurisdiction: str | None = None
    include_public: bool = True


class SourceResult(BaseModel):
    """Single retrieved excerpt."""

    id: str
    document_id: str
    title: str
    type: str
    citation: str | None
    relevance_score: float
    excerpt: str


class RetrieveResponse(BaseModel):
    """Retrieval response."""

    query: str
    results: list[SourceResult]
    context: str
    total_results: int


# ============================================
# Error mapping
# ============================================

ERROR_STATUS = {
    "unsupported_file_type": status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
    "no_extractable_text": status.HTTP_422_UNPROCESSABLE_CONTENT,
    "extraction_failed": status.HTTP_422_UNPROCESSABLE_CONTENT,
    "invalid_chunk_parameters": status.HTTP_500_INTERNAL_SERVER_ERROR,
    "embedding_service_error": status.HTTP_502_BAD_GATEWAY,
    "persistence_error": status.HTTP_500_INTERNAL_SERVER_ERROR,
    "timeout": status.HTTP_504_GATEWAY_TIMEOUT,
}

USER_MESSAGES = {
    "unsupported_file_type": "Unsupported file format. Upload a PDF, DOCX or TXT file.",
    "no_extractable_text": "No readable text was found in the document.",
    "extraction_failed": "The document could not be read. It may be corrupt or password protected.",
    "invalid_chunk_parameters": "The service is misconfigured. Please contact support.",
    "embedding_service_error": "The embedding service is unavailable. Please try again later.",
    "persistence_error": "The document could not be saved. Please try again.",
    "timeout": "The file is too large or complex to process. Try splitting it into smaller files.",
}


def error_response(error: RAGError) -> HTTPException:
    """Map a pipeline error to an HTTP error with an actionable message."""
    return HTTPException(
        status_code=ERROR_STATUS.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR),
        detail={
            "code": error.code,
            "message": USER_MESSAGES.get(error.code, error.message),
            "error": error.message,
        },
    )


# ============================================
# Endpoints
# ============================================


@router.post(
    "/documents/ingest",
    response_model=IngestResponse,
    status_code=status.HTTP_201_CREATED,
)
async def ingest_document(
    pipeline: Pipeline,
    settings: AppSettings,
    file: UploadFile = File(...),
    file_name: str = Form(..., alias="fileName", min_length=1),
    user_id: str = Form(..., alias="userId", min_length=1),
    document_type: DocumentType = Form(DocumentType.CASE, alias="documentType"),
    is_public: bool = Form(True, alias="isPublic"),
    citation: str | None = Form(None),
    jurisdiction: str | None = Form(None),
    year: int | None = Form(None),
):
    """Ingest an uploaded legal document.

    The file is extracted, chunked, embedded and stored in one request.
    Either the document and all of its chunks are stored, or nothing is.
    """
    # Read one byte past the limit so oversized uploads are caught without buffering them
    content = await file.read(settings.max_upload_bytes + 1)
    if len(content) > settings.max_upload_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail={
                "code": "file_too_large",
                "message": f"File exceeds the {settings.max_upload_bytes} byte upload limit.",
            },
        )

    try:
        result = await pipeline.ingest(
            content,
            file_name,
            user_id,
            document_type=document_type,
            is_public=is_public,
            citation=citation,
            jurisdiction=jurisdiction,
            year=year,
        )
    except RAGError as e:
        raise error_response(e) from None

    return IngestResponse(
        success=True,
        document_id=result.document_id,
        chunks_processed=result.chunk_count,
        message=f"Successfully processed {file_name} into {result.chunk_count} chunks",
    )


@router.post("/retrieve", response_model=RetrieveResponse)
async def retrieve(
    body: RetrieveRequest,
    retriever: RetrieverDep,
    settings: AppSettings,
):
    """Retrieve the excerpts most relevant to a query.

    Returns an empty result rather than an error when the embedding
    service or the database is unavailable.
    """
    corpus_filter = CorpusFilter(
        include_public=body.include_public,
        owner_id=body.owner_id,
        document_type=body.document_type,
        jurisdiction=body.jurisdiction,
    )

    candidates = await retriever.retrieve(
        body.query,
        corpus_filter,
        top_k=body.top_k or settings.retrieval_top_k,
        min_score=body.min_score if body.min_score is not None else settings.retrieval_min_score,
    )

    return RetrieveResponse(
        query=body.query,
        results=[SourceResult(**source) for source in retriever.build_sources(candidates)],
        context=retriever.format_context(candidates, max_chars=settings.context_max_chars),
        total_results=len(candidates),
    )
