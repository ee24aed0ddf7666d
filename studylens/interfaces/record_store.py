"""Abstract base class for the persistent record store.

The record store is the authoritative source for subjects, documents and
analyses.  The cache layer sits in front of it and is never consulted for
correctness.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from studylens.models.analysis import Analysis
from studylens.models.document import Document, DocumentType, Subject
from studylens.models.status import ProcessingStatus


# Concrete implementation: SQLiteRecordStore (studylens/providers/store/)
class IRecordStore(ABC):
    """Contract for subject, document and analysis persistence."""

    @abstractmethod
    async def initialize(self) -> None:
        """Create tables if they do not exist."""

    # -- Subjects ----------------------------------------------------------

    @abstractmethod
    async def create_subject(self, subject: Subject) -> Subject:
        """Insert a new subject."""

    @abstractmethod
    async def get_subject(self, subject_id: str) -> Subject | None:
        """Return the subject or ``None``."""

    @abstractmethod
    async def list_subjects(self, owner_id: str, include_inactive: bool = False) -> list[Subject]:
        """Return the owner's subjects, newest first."""

    @abstractmethod
    async def update_subject(self, subject: Subject) -> Subject:
        """Replace an existing subject; ``NotFoundError`` if it is missing."""

    # -- Documents ---------------------------------------------------------

    @abstractmethod
    async def create_document(self, document: Document) -> Document:
        """Insert a new document record."""

    @abstractmethod
    async def get_document(self, document_id: str) -> Document | None:
        """Return the document or ``None``."""

    @abstractmethod
    async def update_document(self, document: Document) -> Document:
        """Replace the stored snapshot of *document* (matched by id)."""

    @abstractmethod
    async def list_documents(
        self,
        owner_id: str,
        subject_id: str | None = None,
        document_type: DocumentType | None = None,
        status: ProcessingStatus | None = None,
    ) -> list[Document]:
        """List an owner's documents, newest upload first, optionally filtered."""

    @abstractmethod
    async def count_documents_by_type(
        self, owner_id: str, subject_id: str | None = None
    ) -> dict[str, int]:
        """Return ``{document_type: count}`` for an owner's documents."""

    @abstractmethod
    async def delete_document(self, document_id: str) -> bool:
        """Delete a document record; ``True`` if a row was removed."""

    # -- Analyses ----------------------------------------------------------

    @abstractmethod
    async def create_analysis(self, analysis: Analysis) -> Analysis:
        """Insert a new analysis record."""

    @abstractmethod
    async def get_analysis(self, analysis_id: str) -> Analysis | None:
        """Return the analysis or ``None``."""

    @abstractmethod
    async def update_analysis(self, analysis: Analysis) -> Analysis:
        """Replace the stored snapshot of *analysis* (matched by id)."""

    @abstractmethod
    async def list_analyses(
        self, owner_id: str, subject_id: str | None = None, limit: int = 20
    ) -> list[Analysis]:
        """List an owner's analyses, newest first."""

    @abstractmethod
    async def delete_expired_analyses(self, now: datetime) -> int:
        """Delete analyses whose ``expires_at`` is before *now*; returns count."""

    async def close(self) -> None:
        """Release resources; default is a no-op."""
