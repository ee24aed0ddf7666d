"""Document and subject models.

A :class:`Document` is one uploaded study file.  Its record is created in
``pending`` state by the upload request and advanced by the ingestion
coordinator (studylens/services/ingestion/ingestion_coordinator.py).  The
extracted ``content`` and ``metadata`` are only populated once the status
reaches ``completed``.

Records are frozen; the coordinator produces each new snapshot with
``model_copy(update={...})`` and writes it back through the record store.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from studylens.models.status import ProcessingStatus


class DocumentType(str, Enum):  # noqa: UP042 - StrEnum requires Python 3.11+
    """Declared role of a document within its subject."""

    SYLLABUS = "syllabus"
    NOTES = "notes"
    PYQ = "pyq"  # previous-year question paper
    TEXTBOOK = "textbook"


class DocumentMetadata(BaseModel):
    """Facts derived from the extracted text."""

    model_config = ConfigDict(frozen=True)

    page_count: int | None = Field(default=None, ge=0)
    word_count: int = Field(default=0, ge=0)
    topics: list[str] = Field(default_factory=list)


class Document(BaseModel):
    """An uploaded study document and its processing state."""

    model_config = ConfigDict(frozen=True)

    id: str
    owner_id: str
    subject_id: str
    original_name: str
    document_type: DocumentType
    media_type: str
    size_bytes: int = Field(ge=0)
    content: str = ""
    metadata: DocumentMetadata | None = None
    status: ProcessingStatus = ProcessingStatus.PENDING
    error: str | None = None
    # True once the vector index accepted at least one chunk.  Indexing is
    # best-effort: a completed document may still have indexed=False.
    indexed: bool = False
    uploaded_at: datetime = Field(
        default_factory=lambda: datetime.now(tz=timezone.utc)  # noqa: UP017
    )
    processed_at: datetime | None = None

    def status_snapshot(self) -> DocumentStatusSnapshot:
        """Return the lightweight status view served by the status endpoint."""
        return DocumentStatusSnapshot(
            document_id=self.id,
            status=self.status,
            error=self.error,
            word_count=self.metadata.word_count if self.metadata else None,
            processed_at=self.processed_at,
        )


class DocumentStatusSnapshot(BaseModel):
    """Client-visible processing status, cached under the document status key."""

    model_config = ConfigDict(frozen=True)

    document_id: str
    status: ProcessingStatus
    error: str | None = None
    word_count: int | None = None
    processed_at: datetime | None = None


class DocumentStats(BaseModel):
    """Per-user document counts grouped by declared type and status."""

    model_config = ConfigDict(frozen=True)

    total: int = 0
    by_type: dict[str, int] = Field(default_factory=dict)
    by_status: dict[str, int] = Field(default_factory=dict)
    total_words: int = 0


class Subject(BaseModel):
    """A course subject that groups documents and analyses for one owner.

    Deleting a subject only clears ``is_active``; its documents and analyses
    stay on record.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    owner_id: str
    name: str
    description: str = ""
    is_active: bool = True
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(tz=timezone.utc)  # noqa: UP017
    )
