"""FastAPI API routes for studylens.

Provides REST endpoints for subjects, document upload and status polling,
subject analyses, quick prediction, vector index stats and health.
Service dependencies are resolved from ``app.state`` via FastAPI's
``Depends`` using the ``Annotated`` pattern.

# ─── API ROUTE MAP (Junior Developer Guide) ───────────────────────────
#
# Endpoint                              Method  Description
# ─────────────────────────────────────────────────────────────────────
# /api/v1/subjects                      POST    Create a subject
# /api/v1/subjects                      GET     List the caller's active subjects
# /api/v1/subjects/{id}                 GET     Subject with document counts by type
# /api/v1/subjects/{id}                 PUT     Update name and description
# /api/v1/subjects/{id}                 DELETE  Deactivate (documents are kept)
# /api/v1/documents                     POST    Upload → pending → background ingestion
# /api/v1/documents                     GET     List the caller's documents
# /api/v1/documents/stats               GET     Counts by type and status
# /api/v1/documents/{id}                GET     Document detail with content
# /api/v1/documents/{id}/status         GET     Poll processing status
# /api/v1/documents/{id}                DELETE  Remove record, bytes, vectors
# /api/v1/analysis/subject/{sid}        POST    Start an analysis (202)
# /api/v1/analysis/quick-predict        POST    Synchronous single-topic prediction
# /api/v1/analysis                      GET     List the caller's analyses
# /api/v1/analysis/{id}                 GET     Poll / fetch an analysis
# /api/v1/vector/stats                  GET     Vector index statistics
# /api/v1/health                        GET     Health check + provider status
#
# IDENTITY: every route except /health needs an ``X-User-Id`` header.
# Authentication happens upstream; a missing header is a 401 here.
#
# ROUTE ORDER: /documents/stats is declared before /documents/{id} so the
# literal path is not captured as a document id.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from typing import Annotated, Any

import structlog
from fastapi import (
    APIRouter,
    Depends,
    File,
    Form,
    Header,
    HTTPException,
    Request,
    Response,
    UploadFile,
)

from studylens import __version__
from studylens.api.schemas import (
    AnalysisAcceptedResponse,
    AnalysisListResponse,
    AnalysisRequest,
    DocumentListResponse,
    DocumentResponse,
    DocumentUploadResponse,
    ErrorResponse,
    HealthResponse,
    QuickPredictRequest,
    SubjectCreateRequest,
    SubjectDetailResponse,
    SubjectListResponse,
    SubjectResponse,
)
from studylens.models.analysis import Analysis
from studylens.models.document import DocumentStats, DocumentStatusSnapshot, DocumentType
from studylens.models.prediction import QuickPrediction
from studylens.models.rag import IndexStats
from studylens.pipeline.analysis_orchestrator import AnalysisOrchestrator
from studylens.services.document_service import DocumentService
from studylens.utils.errors import ValidationError
from studylens.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

router = APIRouter(prefix="/api/v1")

# Uploads are read in 64 KB increments so oversized files are rejected
# without buffering the whole payload.
_UPLOAD_CHUNK_SIZE = 64 * 1024

_ERRORS: dict[int | str, dict[str, Any]] = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
}


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------


def _get_user_id(x_user_id: Annotated[str | None, Header()] = None) -> str:
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    return x_user_id.strip()


def _get_document_service(request: Request) -> DocumentService:
    return request.app.state.document_service


def _get_orchestrator(request: Request) -> AnalysisOrchestrator:
    return request.app.state.analysis_orchestrator


UserIdDep = Annotated[str, Depends(_get_user_id)]
DocumentServiceDep = Annotated[DocumentService, Depends(_get_document_service)]
OrchestratorDep = Annotated[AnalysisOrchestrator, Depends(_get_orchestrator)]


# ---------------------------------------------------------------------------
# Subjects
# ---------------------------------------------------------------------------


@router.post(
    "/subjects",
    response_model=SubjectResponse,
    status_code=201,
    responses=_ERRORS,
    summary="Create a subject",
)
async def create_subject(
    body: SubjectCreateRequest,
    user_id: UserIdDep,
    documents: DocumentServiceDep,
) -> SubjectResponse:
    subject = await documents.create_subject(user_id, body.name, body.description)
    return SubjectResponse.from_subject(subject)


@router.get(
    "/subjects",
    response_model=SubjectListResponse,
    responses=_ERRORS,
    summary="List the caller's subjects",
)
async def list_subjects(user_id: UserIdDep, documents: DocumentServiceDep) -> SubjectListResponse:
    subjects = await documents.list_subjects(user_id)
    return SubjectListResponse(
        subjects=[SubjectResponse.from_subject(s) for s in subjects],
        total=len(subjects),
    )


@router.get(
    "/subjects/{subject_id}",
    response_model=SubjectDetailResponse,
    responses=_ERRORS,
    summary="Get a subject with document counts by type",
)
async def get_subject(
    subject_id: str,
    user_id: UserIdDep,
    documents: DocumentServiceDep,
) -> SubjectDetailResponse:
    subject = await documents.get_subject(user_id, subject_id)
    counts = await documents.subject_document_counts(user_id, subject_id)
    return SubjectDetailResponse.from_subject(subject).model_copy(
        update={"document_counts": counts}
    )


@router.put(
    "/subjects/{subject_id}",
    response_model=SubjectResponse,
    responses=_ERRORS,
    summary="Rename or redescribe a subject",
)
async def update_subject(
    subject_id: str,
    body: SubjectCreateRequest,
    user_id: UserIdDep,
    documents: DocumentServiceDep,
) -> SubjectResponse:
    subject = await documents.update_subject(user_id, subject_id, body.name, body.description)
    return SubjectResponse.from_subject(subject)


@router.delete(
    "/subjects/{subject_id}",
    status_code=204,
    responses=_ERRORS,
    summary="Deactivate a subject",
)
async def delete_subject(
    subject_id: str,
    user_id: UserIdDep,
    documents: DocumentServiceDep,
) -> Response:
    await documents.delete_subject(user_id, subject_id)
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


@router.post(
    "/documents",
    response_model=DocumentUploadResponse,
    status_code=201,
    responses={**_ERRORS, 415: {"model": ErrorResponse}},
    summary="Upload a study document for background processing",
)
async def upload_document(
    file: Annotated[UploadFile, File()],
    subject_id: Annotated[str, Form(alias="subjectId")],
    document_type: Annotated[str, Form(alias="documentType")],
    user_id: UserIdDep,
    documents: DocumentServiceDep,
    request: Request,
) -> DocumentUploadResponse:
    """Store the upload as ``pending`` and return before extraction starts."""
    max_bytes = request.app.state.settings.max_upload_bytes
    chunks: list[bytes] = []
    total_size = 0
    while True:
        chunk = await file.read(_UPLOAD_CHUNK_SIZE)
        if not chunk:
            break
        total_size += len(chunk)
        if total_size > max_bytes:
            raise ValidationError(
                message=f"File size exceeds {max_bytes // (1024 * 1024)}MB limit"
            )
        chunks.append(chunk)

    document = await documents.upload(
        user_id=user_id,
        subject_id=subject_id,
        document_type=document_type,
        filename=file.filename or "upload",
        media_type=file.content_type,
        data=b"".join(chunks),
    )
    return DocumentUploadResponse(
        document_id=document.id,
        status=document.status,
        original_name=document.original_name,
        document_type=document.document_type,
        media_type=document.media_type,
        size_bytes=document.size_bytes,
    )


@router.get(
    "/documents",
    response_model=DocumentListResponse,
    responses=_ERRORS,
    summary="List documents",
)
async def list_documents(
    user_id: UserIdDep,
    documents: DocumentServiceDep,
    subject_id: str | None = None,
    document_type: DocumentType | None = None,
) -> DocumentListResponse:
    items = await documents.list_documents(user_id, subject_id, document_type)
    return DocumentListResponse(
        documents=[DocumentResponse.from_document(d) for d in items],
        total=len(items),
    )


@router.get(
    "/documents/stats",
    response_model=DocumentStats,
    responses=_ERRORS,
    summary="Document counts by type and status",
)
async def document_stats(
    user_id: UserIdDep,
    documents: DocumentServiceDep,
    subject_id: str | None = None,
) -> DocumentStats:
    return await documents.stats(user_id, subject_id)


@router.get(
    "/documents/{document_id}",
    response_model=DocumentResponse,
    responses=_ERRORS,
    summary="Get a document with its extracted content",
)
async def get_document(
    document_id: str,
    user_id: UserIdDep,
    documents: DocumentServiceDep,
) -> DocumentResponse:
    document = await documents.get_document(user_id, document_id)
    return DocumentResponse.from_document(document, include_content=True)


@router.get(
    "/documents/{document_id}/status",
    response_model=DocumentStatusSnapshot,
    responses=_ERRORS,
    summary="Poll document processing status",
)
async def get_document_status(
    document_id: str,
    user_id: UserIdDep,
    documents: DocumentServiceDep,
) -> DocumentStatusSnapshot:
    return await documents.get_status(user_id, document_id)


@router.delete(
    "/documents/{document_id}",
    status_code=204,
    responses=_ERRORS,
    summary="Delete a document",
)
async def delete_document(
    document_id: str,
    user_id: UserIdDep,
    documents: DocumentServiceDep,
) -> Response:
    await documents.delete_document(user_id, document_id)
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# Analyses
# ---------------------------------------------------------------------------


@router.post(
    "/analysis/subject/{subject_id}",
    response_model=AnalysisAcceptedResponse,
    status_code=202,
    responses=_ERRORS,
    summary="Start a subject analysis",
)
async def start_analysis(
    subject_id: str,
    user_id: UserIdDep,
    orchestrator: OrchestratorDep,
    body: AnalysisRequest | None = None,
) -> AnalysisAcceptedResponse:
    """Validate, create the analysis record and return 202 immediately."""
    options = (body or AnalysisRequest()).to_options()
    analysis = await orchestrator.request_analysis(user_id, subject_id, options)
    return AnalysisAcceptedResponse(analysis_id=analysis.id, status=analysis.status)


@router.post(
    "/analysis/quick-predict",
    response_model=QuickPrediction,
    responses=_ERRORS,
    summary="Predict questions for a single topic",
)
async def quick_predict(
    body: QuickPredictRequest,
    user_id: UserIdDep,
    orchestrator: OrchestratorDep,
) -> QuickPrediction:
    return await orchestrator.quick_predict(user_id, body.subject_id, body.topic)


@router.get(
    "/analysis",
    response_model=AnalysisListResponse,
    responses=_ERRORS,
    summary="List analyses",
)
async def list_analyses(
    user_id: UserIdDep,
    orchestrator: OrchestratorDep,
    subject_id: str | None = None,
) -> AnalysisListResponse:
    analyses = await orchestrator.list_analyses(user_id, subject_id)
    return AnalysisListResponse(analyses=analyses, total=len(analyses))


@router.get(
    "/analysis/{analysis_id}",
    response_model=Analysis,
    responses=_ERRORS,
    summary="Get an analysis",
)
async def get_analysis(
    analysis_id: str,
    user_id: UserIdDep,
    orchestrator: OrchestratorDep,
) -> Analysis:
    return await orchestrator.get_analysis(user_id, analysis_id)


# ---------------------------------------------------------------------------
# System endpoints
# ---------------------------------------------------------------------------


@router.get(
    "/vector/stats",
    response_model=IndexStats,
    responses=_ERRORS,
    summary="Vector index statistics",
)
async def vector_stats(user_id: UserIdDep, documents: DocumentServiceDep) -> IndexStats:
    return await documents.vector_stats()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Application health check",
)
async def health_check(request: Request) -> HealthResponse:
    """Return application health, version, and dependency availability.

    The record store is the only hard dependency.  A missing cache, vector
    index or generation provider degrades the service but does not take it
    down.
    """
    state = request.app.state
    providers: dict[str, Any] = dict(getattr(state, "provider_registry", {}))

    cache = getattr(state, "cache", None)
    providers["cache"] = await cache.ping() if cache is not None else False

    vector_store = getattr(state, "vector_store", None)
    providers["vector_store"] = bool(vector_store is not None and vector_store.is_available())

    database_ok = getattr(state, "record_store", None) is not None
    providers["database"] = database_ok

    if not database_ok:
        status = "unhealthy"
    elif providers["cache"] and providers["vector_store"] and providers.get("llm"):
        status = "healthy"
    else:
        status = "degraded"

    return HealthResponse(status=status, version=__version__, providers=providers)
