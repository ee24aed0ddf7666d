"""Background ingestion of one uploaded document.

Drives a document record through ``pending -> processing -> completed|failed``
and, once completed, hands its text to the vector index.

ARCHITECTURE NOTE (for junior developers):
    ``process()`` runs inside the TaskSupervisor, AFTER the upload request
    has already answered 201.  It therefore never raises: every failure is
    recorded on the document itself (status ``failed`` + ``error``) where
    the status endpoint can see it.

    Each step follows the frozen-model pattern:
        1. Validate the status move (pending -> processing, ...)
        2. Build the next snapshot with ``model_copy(update={...})``
        3. Write it back through the record store

    Indexing is an enhancement.  A completed document stays completed even
    when ChromaDB is down; ``indexed`` simply stays ``False``.

    Once a terminal status has been written the derived cache keys are
    invalidated and the status is published, even if a later write fails.
    A failed write of the completed status is recorded as ``failed``.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import structlog

from studylens.interfaces.record_store import IRecordStore
from studylens.interfaces.upload_store import IUploadStore
from studylens.interfaces.vector_store_provider import IVectorStoreProvider
from studylens.models.document import Document
from studylens.models.status import ProcessingStatus, validate_transition
from studylens.services.cache_aside import CacheAside
from studylens.services.cache_keys import CacheKeys
from studylens.services.ingestion.chunker import TextChunker
from studylens.services.ingestion.content_extractor import ContentExtractor
from studylens.utils.errors import InvalidTransitionError
from studylens.utils.logging import get_logger


class IngestionCoordinator:
    """Runs extraction and indexing for uploaded documents.

    Parameters
    ----------
    record_store:
        Source of truth for document records.
    upload_store:
        Holds the raw uploaded bytes, keyed by document id.
    extractor:
        Synchronous text extractor; executed in a worker thread.
    chunker:
        Splits completed text into windows for the vector index.
    vector_store:
        Optional vector index.  ``None`` skips indexing.
    cache:
        Cache-aside wrapper; derived keys are invalidated on every
        terminal transition.
    """

    def __init__(
        self,
        record_store: IRecordStore,
        upload_store: IUploadStore,
        extractor: ContentExtractor,
        chunker: TextChunker,
        vector_store: IVectorStoreProvider | None,
        cache: CacheAside,
    ) -> None:
        self._records = record_store
        self._uploads = upload_store
        self._extractor = extractor
        self._chunker = chunker
        self._vector_store = vector_store
        self._cache = cache
        self._logger: structlog.BoundLogger = get_logger(__name__)

    async def process(self, document_id: str) -> Document | None:
        """Extract, complete and index *document_id*.

        Returns the final document snapshot, or ``None`` when the record is
        missing or no longer pending.
        """
        document = await self._records.get_document(document_id)
        if document is None:
            self._logger.warning("ingestion_document_missing", document_id=document_id)
            return None

        try:
            validate_transition(document.status, ProcessingStatus.PROCESSING)
        except InvalidTransitionError as exc:
            self._logger.warning(
                "ingestion_skipped",
                document_id=document_id,
                status=document.status.value,
                reason=str(exc),
            )
            return None

        document = await self._records.update_document(
            document.model_copy(update={"status": ProcessingStatus.PROCESSING})
        )
        await self._cache.set_json(
            CacheKeys.document_status(document.id),
            self._status_payload(document),
            self._cache.ttl("document_status"),
        )
        self._logger.info(
            "ingestion_started",
            document_id=document.id,
            media_type=document.media_type,
            size_bytes=document.size_bytes,
        )

        try:
            data, media_type = await self._uploads.read(document.id)
            result = await asyncio.to_thread(
                self._extractor.extract, data, document.media_type or media_type
            )
        except Exception as exc:
            error = str(exc) or type(exc).__name__
            self._logger.error(
                "ingestion_failed",
                document_id=document.id,
                error_type=type(exc).__name__,
                error=error,
            )
            failed = await self._fail(document, error)
            await self._finalize(failed)
            return failed

        try:
            completed = await self._transition(
                document,
                ProcessingStatus.COMPLETED,
                content=result.text,
                metadata=result.metadata,
            )
        except Exception as exc:
            error = str(exc) or type(exc).__name__
            self._logger.error(
                "ingestion_completion_write_failed",
                document_id=document.id,
                error_type=type(exc).__name__,
                error=error,
            )
            failed = await self._fail(document, error)
            await self._finalize(failed)
            return failed

        self._logger.info(
            "ingestion_completed",
            document_id=completed.id,
            word_count=result.metadata.word_count,
            topics=len(result.metadata.topics),
        )
        try:
            completed = await self._index(completed)
        finally:
            await self._finalize(completed)
        return completed

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _transition(
        self, document: Document, target: ProcessingStatus, **fields: object
    ) -> Document:
        validate_transition(document.status, target)
        update = {
            "status": target,
            "processed_at": datetime.now(tz=timezone.utc),  # noqa: UP017
            **fields,
        }
        return await self._records.update_document(document.model_copy(update=update))

    async def _fail(self, document: Document, error: str) -> Document:
        """Write the failed status; the last snapshot is returned if that write fails too."""
        try:
            return await self._transition(document, ProcessingStatus.FAILED, error=error)
        except Exception as exc:
            self._logger.error(
                "ingestion_failure_not_recorded",
                document_id=document.id,
                error_type=type(exc).__name__,
                error=str(exc),
            )
            return document

    async def _index(self, document: Document) -> Document:
        """Best-effort chunk + upsert; never changes the completed status."""
        if self._vector_store is None:
            return document
        try:
            chunks = self._chunker.chunk_document(document)
            stored = await self._vector_store.upsert(chunks)
            if stored <= 0:
                self._logger.info(
                    "document_not_indexed", document_id=document.id, chunks=len(chunks)
                )
                return document
            indexed = await self._records.update_document(
                document.model_copy(update={"indexed": True})
            )
        except Exception as exc:
            self._logger.warning(
                "document_indexing_failed", document_id=document.id, error=str(exc)
            )
            return document

        self._logger.info("document_indexed", document_id=document.id, chunks=stored)
        return indexed

    async def _finalize(self, document: Document) -> None:
        """Invalidate every derived key and publish the terminal status."""
        await self._cache.delete_many(
            CacheKeys.document_derived(
                document.id,
                document.owner_id,
                document.subject_id,
                document.document_type.value,
            )
        )
        await self._cache.delete(CacheKeys.vector_stats())
        tier = (
            "document_status_terminal"
            if document.status == ProcessingStatus.COMPLETED
            else "document_status"
        )
        await self._cache.set_json(
            CacheKeys.document_status(document.id),
            self._status_payload(document),
            self._cache.ttl(tier),
        )

    @staticmethod
    def _status_payload(document: Document) -> dict[str, object]:
        """Status snapshot plus the owner id used for access checks on cache hits."""
        payload = document.status_snapshot().model_dump(mode="json")
        payload["owner_id"] = document.owner_id
        return payload
