"""Pydantic request/response schemas for the studylens API.

Defines the public contract for the REST endpoints: subjects, document
upload and status polling, analyses, quick prediction and health.

# ─── HOW SCHEMAS WORK (Junior Developer Guide) ────────────────────────
#
# Request schemas end with "Request", response schemas with "Response".
# Domain models that are already safe to expose (Analysis, DocumentStats,
# IndexStats, QuickPrediction) are returned directly as ``response_model``
# instead of being copied field by field into a parallel schema.
#
# Request bodies accept both snake_case and the camelCase names used by
# browser clients (``subject_id`` / ``subjectId``).
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from studylens.models.analysis import Analysis, AnalysisOptions, Difficulty
from studylens.models.document import Document, DocumentMetadata, DocumentType, Subject
from studylens.models.status import AnalysisStatus, ProcessingStatus


class ErrorResponse(BaseModel):
    """Standard error response body."""

    error: str
    detail: str | None = None


# ---------------------------------------------------------------------------
# Subjects
# ---------------------------------------------------------------------------


class SubjectCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: str = Field(default="", max_length=2000)


class SubjectResponse(BaseModel):
    id: str
    name: str
    description: str = ""
    created_at: datetime

    @classmethod
    def from_subject(cls, subject: Subject) -> SubjectResponse:
        return cls(
            id=subject.id,
            name=subject.name,
            description=subject.description,
            created_at=subject.created_at,
        )


class SubjectDetailResponse(SubjectResponse):
    """A subject plus how many of its documents exist per declared type."""

    document_counts: dict[str, int] = Field(default_factory=dict)


class SubjectListResponse(BaseModel):
    subjects: list[SubjectResponse]
    total: int


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


class DocumentUploadResponse(BaseModel):
    """Returned with 201 once the upload is stored and queued for processing."""

    document_id: str
    status: ProcessingStatus
    original_name: str
    document_type: DocumentType
    media_type: str
    size_bytes: int


class DocumentResponse(BaseModel):
    """One document as seen by its owner.

    ``content`` is only populated on the detail endpoint; lists omit it.
    """

    id: str
    subject_id: str
    original_name: str
    document_type: DocumentType
    media_type: str
    size_bytes: int
    status: ProcessingStatus
    error: str | None = None
    indexed: bool = False
    metadata: DocumentMetadata | None = None
    uploaded_at: datetime
    processed_at: datetime | None = None
    content: str | None = None

    @classmethod
    def from_document(cls, document: Document, include_content: bool = False) -> DocumentResponse:
        return cls(
            id=document.id,
            subject_id=document.subject_id,
            original_name=document.original_name,
            document_type=document.document_type,
            media_type=document.media_type,
            size_bytes=document.size_bytes,
            status=document.status,
            error=document.error,
            indexed=document.indexed,
            metadata=document.metadata,
            uploaded_at=document.uploaded_at,
            processed_at=document.processed_at,
            content=document.content if include_content else None,
        )


class DocumentListResponse(BaseModel):
    documents: list[DocumentResponse]
    total: int


# ---------------------------------------------------------------------------
# Analyses
# ---------------------------------------------------------------------------


class AnalysisRequest(BaseModel):
    """Optional tuning knobs for a subject analysis."""

    model_config = ConfigDict(populate_by_name=True)

    question_count: int = Field(
        default=10,
        ge=1,
        le=30,
        validation_alias=AliasChoices("question_count", "questionCount"),
    )
    focus_topics: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("focus_topics", "focusTopics"),
    )
    difficulty: Difficulty | None = None
    include_summary: bool = Field(
        default=True,
        validation_alias=AliasChoices("include_summary", "includeSummary"),
    )

    def to_options(self) -> AnalysisOptions:
        return AnalysisOptions(
            question_count=self.question_count,
            focus_topics=[t.strip() for t in self.focus_topics if t.strip()],
            difficulty=self.difficulty,
            include_summary=self.include_summary,
        )


class AnalysisAcceptedResponse(BaseModel):
    """Returned with 202; poll ``GET /analysis/{analysis_id}`` for the result."""

    analysis_id: str
    status: AnalysisStatus
    message: str = "Analysis started"


class AnalysisListResponse(BaseModel):
    analyses: list[Analysis]
    total: int


class QuickPredictRequest(BaseModel):
    subject_id: str = Field(
        ..., min_length=1, validation_alias=AliasChoices("subject_id", "subjectId")
    )
    topic: str = Field(..., min_length=1, max_length=500)


# ---------------------------------------------------------------------------
# System
# ---------------------------------------------------------------------------


class HealthResponse(BaseModel):
    """Application health check response."""

    status: str
    version: str
    providers: dict[str, Any]
