"""Synchronous document operations behind the REST API.

Everything here answers within the request: uploads are validated, stored
and recorded as ``pending`` before the heavy work is handed to the
:class:`~studylens.utils.concurrency.TaskSupervisor`.  Reads go through the
cache-aside layer first and fall back to the record store.

Ownership is enforced by returning :class:`NotFoundError` for records that
exist but belong to somebody else, so ids cannot be guessed.
"""

from __future__ import annotations

import uuid
from typing import Any

import structlog

from studylens.interfaces.record_store import IRecordStore
from studylens.interfaces.upload_store import IUploadStore
from studylens.interfaces.vector_store_provider import IVectorStoreProvider
from studylens.models.document import (
    Document,
    DocumentStats,
    DocumentStatusSnapshot,
    DocumentType,
    Subject,
)
from studylens.models.rag import IndexStats
from studylens.models.status import is_terminal
from studylens.services.cache_aside import CacheAside
from studylens.services.cache_keys import CacheKeys
from studylens.services.ingestion.content_extractor import (
    MAX_UPLOAD_BYTES,
    resolve_media_type,
    validate_upload,
)
from studylens.services.ingestion.ingestion_coordinator import IngestionCoordinator
from studylens.utils.concurrency import TaskSupervisor
from studylens.utils.errors import NotFoundError, ValidationError
from studylens.utils.logging import get_logger


class DocumentService:
    """Subject and document operations for one API process."""

    def __init__(
        self,
        record_store: IRecordStore,
        upload_store: IUploadStore,
        coordinator: IngestionCoordinator,
        supervisor: TaskSupervisor,
        cache: CacheAside,
        vector_store: IVectorStoreProvider | None = None,
        max_upload_bytes: int = MAX_UPLOAD_BYTES,
    ) -> None:
        self._records = record_store
        self._uploads = upload_store
        self._coordinator = coordinator
        self._supervisor = supervisor
        self._cache = cache
        self._vector_store = vector_store
        self._max_upload_bytes = max_upload_bytes
        self._logger: structlog.BoundLogger = get_logger(__name__)

    # ------------------------------------------------------------------
    # Subjects
    # ------------------------------------------------------------------

    async def create_subject(self, user_id: str, name: str, description: str = "") -> Subject:
        name = name.strip()
        if not name:
            raise ValidationError(message="Subject name is required")
        subject = Subject(
            id=uuid.uuid4().hex, owner_id=user_id, name=name, description=description.strip()
        )
        await self._records.create_subject(subject)
        self._logger.info("subject_created", subject_id=subject.id, owner_id=user_id)
        return subject

    async def get_subject(self, user_id: str, subject_id: str) -> Subject:
        """Return the caller's subject or raise ``NotFoundError``."""
        subject = await self._records.get_subject(subject_id)
        if subject is None or subject.owner_id != user_id or not subject.is_active:
            raise NotFoundError(message=f"Subject {subject_id} not found")
        return subject

    async def list_subjects(self, user_id: str) -> list[Subject]:
        return await self._records.list_subjects(user_id)

    async def subject_document_counts(self, user_id: str, subject_id: str) -> dict[str, int]:
        """Document counts per declared type for one of the caller's subjects."""
        await self.get_subject(user_id, subject_id)
        return await self._records.count_documents_by_type(user_id, subject_id)

    async def update_subject(
        self, user_id: str, subject_id: str, name: str, description: str = ""
    ) -> Subject:
        subject = await self.get_subject(user_id, subject_id)
        name = name.strip()
        if not name:
            raise ValidationError(message="Subject name is required")
        updated = await self._records.update_subject(
            subject.model_copy(update={"name": name, "description": description.strip()})
        )
        self._logger.info("subject_updated", subject_id=subject_id, owner_id=user_id)
        return updated

    async def delete_subject(self, user_id: str, subject_id: str) -> None:
        """Deactivate the subject; its documents and analyses are kept."""
        subject = await self.get_subject(user_id, subject_id)
        await self._records.update_subject(subject.model_copy(update={"is_active": False}))
        self._logger.info("subject_deactivated", subject_id=subject_id, owner_id=user_id)

    # ------------------------------------------------------------------
    # Upload
    # ------------------------------------------------------------------

    async def upload(
        self,
        user_id: str,
        subject_id: str,
        document_type: DocumentType | str,
        filename: str,
        media_type: str | None,
        data: bytes,
    ) -> Document:
        """Validate and store an upload, then schedule background ingestion.

        Raises
        ------
        NotFoundError
            If the subject does not exist or belongs to another user.
        UnsupportedMediaTypeError
            If the file type is outside the allow-list.
        ValidationError
            If the document type is unknown or the file is empty/too large.
        """
        await self.get_subject(user_id, subject_id)
        try:
            doc_type = DocumentType(document_type)
        except ValueError as exc:
            raise ValidationError(message=f"Unknown document type: {document_type}") from exc

        resolved = resolve_media_type(media_type, filename)
        validate_upload(resolved, len(data), self._max_upload_bytes)

        document = Document(
            id=uuid.uuid4().hex,
            owner_id=user_id,
            subject_id=subject_id,
            original_name=filename or "upload",
            document_type=doc_type,
            media_type=resolved,
            size_bytes=len(data),
        )
        await self._uploads.save(document.id, data, resolved)
        await self._records.create_document(document)
        await self._cache.delete_many(
            CacheKeys.document_derived(document.id, user_id, subject_id, doc_type.value)
        )

        self._supervisor.submit(
            self._coordinator.process(document.id), name=f"ingest:{document.id}"
        )
        self._logger.info(
            "document_uploaded",
            document_id=document.id,
            subject_id=subject_id,
            document_type=doc_type.value,
            media_type=resolved,
            size_bytes=len(data),
        )
        return document

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_document(self, user_id: str, document_id: str) -> Document:
        key = CacheKeys.document_detail(document_id)
        cached = await self._cache.get_validated(key, Document.model_validate)
        if cached is not None and cached.owner_id == user_id:
            return cached

        document = await self._require_document(user_id, document_id)
        await self._cache.set_json(
            key, document.model_dump(mode="json"), self._cache.ttl("document_detail")
        )
        return document

    async def get_status(self, user_id: str, document_id: str) -> DocumentStatusSnapshot:
        """Return the processing status, served from cache when possible."""
        key = CacheKeys.document_status(document_id)
        cached = await self._cache.get_validated(key, _parse_status_entry)
        if cached is not None and cached[0] == user_id:
            return cached[1]

        document = await self._require_document(user_id, document_id)
        payload: dict[str, Any] = document.status_snapshot().model_dump(mode="json")
        payload["owner_id"] = document.owner_id
        tier = "document_status_terminal" if is_terminal(document.status) else "document_status"
        await self._cache.set_json(key, payload, self._cache.ttl(tier))
        return document.status_snapshot()

    async def list_documents(
        self,
        user_id: str,
        subject_id: str | None = None,
        document_type: DocumentType | None = None,
    ) -> list[Document]:
        """List the caller's documents, newest first, without their content."""
        if subject_id is None and document_type is not None:
            key = CacheKeys.document_list_by_type(user_id, document_type.value)
        else:
            key = CacheKeys.document_list(user_id, subject_id)

        cached = await self._cache.get_validated(key, _parse_document_list)
        if cached is not None:
            documents = cached
        else:
            stored = await self._records.list_documents(
                user_id,
                subject_id=subject_id,
                document_type=document_type if subject_id is None else None,
            )
            documents = [d.model_copy(update={"content": ""}) for d in stored]
            await self._cache.set_json(
                key,
                [d.model_dump(mode="json") for d in documents],
                self._cache.ttl("document_list"),
            )

        if document_type is not None:
            documents = [d for d in documents if d.document_type == document_type]
        return documents

    async def stats(self, user_id: str, subject_id: str | None = None) -> DocumentStats:
        key = CacheKeys.document_stats(user_id, subject_id)
        cached = await self._cache.get_validated(key, DocumentStats.model_validate)
        if cached is not None:
            return cached

        documents = await self._records.list_documents(user_id, subject_id=subject_id)
        by_type: dict[str, int] = {}
        by_status: dict[str, int] = {}
        total_words = 0
        for document in documents:
            by_type[document.document_type.value] = by_type.get(document.document_type.value, 0) + 1
            by_status[document.status.value] = by_status.get(document.status.value, 0) + 1
            if document.metadata is not None:
                total_words += document.metadata.word_count

        stats = DocumentStats(
            total=len(documents), by_type=by_type, by_status=by_status, total_words=total_words
        )
        await self._cache.set_json(key, stats.model_dump(mode="json"), self._cache.ttl("document_stats"))
        return stats

    async def vector_stats(self) -> IndexStats:
        key = CacheKeys.vector_stats()
        cached = await self._cache.get_validated(key, IndexStats.model_validate)
        if cached is not None:
            return cached

        if self._vector_store is None:
            return IndexStats(available=False)
        stats = await self._vector_store.stats()
        await self._cache.set_json(key, stats.model_dump(mode="json"), self._cache.ttl("vector_stats"))
        return stats

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------

    async def delete_document(self, user_id: str, document_id: str) -> None:
        """Remove the record, its stored bytes and its vectors."""
        document = await self._require_document(user_id, document_id)
        await self._records.delete_document(document_id)
        try:
            await self._uploads.delete(document_id)
        except Exception as exc:
            self._logger.warning("upload_delete_failed", document_id=document_id, error=str(exc))
        if self._vector_store is not None:
            await self._vector_store.delete_document(document_id)

        await self._cache.delete_many(
            CacheKeys.document_derived(
                document.id, user_id, document.subject_id, document.document_type.value
            )
        )
        await self._cache.delete(CacheKeys.vector_stats())
        self._logger.info("document_deleted", document_id=document_id, owner_id=user_id)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _require_document(self, user_id: str, document_id: str) -> Document:
        document = await self._records.get_document(document_id)
        if document is None or document.owner_id != user_id:
            raise NotFoundError(message=f"Document {document_id} not found")
        return document


def _parse_status_entry(cached: dict[str, Any]) -> tuple[str, DocumentStatusSnapshot]:
    """Split a cached status payload into its owner and snapshot."""
    owner_id = cached["owner_id"]
    if not isinstance(owner_id, str):
        raise TypeError("owner_id must be a string")
    return owner_id, DocumentStatusSnapshot.model_validate(cached)


def _parse_document_list(cached: list[Any]) -> list[Document]:
    return [Document.model_validate(item) for item in cached]
