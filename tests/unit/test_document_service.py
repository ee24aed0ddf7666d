"""Unit tests for DocumentService: upload validation, reads, ownership, delete."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
import pytest_asyncio

from studylens.models.document import DocumentType
from studylens.models.status import ProcessingStatus
from studylens.services.cache_keys import CacheKeys
from studylens.services.document_service import DocumentService
from studylens.services.ingestion.chunker import TextChunker
from studylens.services.ingestion.content_extractor import ContentExtractor
from studylens.services.ingestion.ingestion_coordinator import IngestionCoordinator
from studylens.utils.errors import NotFoundError, UnsupportedMediaTypeError, ValidationError
from tests.conftest import OTHER_USER_ID, USER_ID, make_document, make_subject


@pytest.fixture
def service(record_store, upload_store, cache, supervisor, mock_vector_store) -> DocumentService:
    coordinator = IngestionCoordinator(
        record_store=record_store,
        upload_store=upload_store,
        extractor=ContentExtractor(),
        chunker=TextChunker(),
        vector_store=mock_vector_store,
        cache=cache,
    )
    return DocumentService(
        record_store=record_store,
        upload_store=upload_store,
        coordinator=coordinator,
        supervisor=supervisor,
        cache=cache,
        vector_store=mock_vector_store,
        max_upload_bytes=1024,
    )


@pytest_asyncio.fixture
async def subject(record_store):
    return await record_store.create_subject(make_subject())


# ======================================================================
# Subjects
# ======================================================================


class TestSubjects:
    @pytest.mark.asyncio
    async def test_create_and_get(self, service: DocumentService) -> None:
        subject = await service.create_subject(USER_ID, "  Chemistry ", "Organic")
        assert subject.name == "Chemistry"
        assert await service.get_subject(USER_ID, subject.id) == subject

    @pytest.mark.asyncio
    async def test_blank_name_rejected(self, service: DocumentService) -> None:
        with pytest.raises(ValidationError):
            await service.create_subject(USER_ID, "   ")

    @pytest.mark.asyncio
    async def test_other_owner_cannot_see_subject(
        self, service: DocumentService, subject
    ) -> None:
        with pytest.raises(NotFoundError):
            await service.get_subject(OTHER_USER_ID, subject.id)

    @pytest.mark.asyncio
    async def test_list_update_and_delete(
        self, service: DocumentService, subject, record_store
    ) -> None:
        await record_store.create_document(make_document("a", document_type=DocumentType.PYQ))
        await record_store.create_document(make_document("b"))

        assert [s.id for s in await service.list_subjects(USER_ID)] == [subject.id]
        assert await service.subject_document_counts(USER_ID, subject.id) == {
            "pyq": 1,
            "notes": 1,
        }

        updated = await service.update_subject(USER_ID, subject.id, " Physics II ", "Waves")
        assert updated.name == "Physics II"
        assert (await record_store.get_subject(subject.id)).description == "Waves"

        await service.delete_subject(USER_ID, subject.id)
        assert await service.list_subjects(USER_ID) == []
        with pytest.raises(NotFoundError):
            await service.get_subject(USER_ID, subject.id)
        assert (await record_store.get_document("a")) is not None

    @pytest.mark.asyncio
    async def test_other_owner_cannot_change_subject(
        self, service: DocumentService, subject
    ) -> None:
        with pytest.raises(NotFoundError):
            await service.update_subject(OTHER_USER_ID, subject.id, "Mine now")
        with pytest.raises(NotFoundError):
            await service.delete_subject(OTHER_USER_ID, subject.id)
        with pytest.raises(ValidationError):
            await service.update_subject(USER_ID, subject.id, "  ")


# ======================================================================
# Upload
# ======================================================================


class TestUpload:
    @pytest.mark.asyncio
    async def test_upload_returns_pending_then_completes(
        self, service: DocumentService, subject, supervisor, record_store
    ) -> None:
        document = await service.upload(
            USER_ID, subject.id, "notes", "intro.txt", "text/plain",
            b"Chapter 1 introduces vectors.",
        )

        assert document.status == ProcessingStatus.PENDING
        assert document.size_bytes == len(b"Chapter 1 introduces vectors.")

        await supervisor.drain()

        stored = await record_store.get_document(document.id)
        assert stored is not None
        assert stored.status == ProcessingStatus.COMPLETED
        assert supervisor.get_outcome(f"ingest:{document.id}").succeeded

    @pytest.mark.asyncio
    async def test_media_type_inferred_from_extension(
        self, service: DocumentService, subject
    ) -> None:
        document = await service.upload(
            USER_ID, subject.id, DocumentType.SYLLABUS, "plan.md",
            "application/octet-stream", b"# Unit 1 Algebra",
        )
        assert document.media_type == "text/markdown"

    @pytest.mark.asyncio
    async def test_unknown_subject(self, service: DocumentService, record_store) -> None:
        with pytest.raises(NotFoundError):
            await service.upload(USER_ID, "nope", "notes", "a.txt", "text/plain", b"x")
        assert await record_store.list_documents(USER_ID) == []

    @pytest.mark.asyncio
    async def test_unknown_document_type(self, service: DocumentService, subject) -> None:
        with pytest.raises(ValidationError, match="Unknown document type"):
            await service.upload(USER_ID, subject.id, "essay", "a.txt", "text/plain", b"x")

    @pytest.mark.asyncio
    async def test_unsupported_media_type(self, service: DocumentService, subject) -> None:
        with pytest.raises(UnsupportedMediaTypeError):
            await service.upload(USER_ID, subject.id, "notes", "a.png", "image/png", b"x")

    @pytest.mark.asyncio
    async def test_oversize(self, service: DocumentService, subject, record_store) -> None:
        with pytest.raises(ValidationError):
            await service.upload(USER_ID, subject.id, "notes", "a.txt", "text/plain", b"x" * 2048)
        assert await record_store.list_documents(USER_ID) == []


# ======================================================================
# Reads
# ======================================================================


class TestReads:
    @pytest.mark.asyncio
    async def test_get_document_caches(
        self, service: DocumentService, record_store, cache
    ) -> None:
        await record_store.create_document(make_document())

        document = await service.get_document(USER_ID, "doc-1")

        assert document.id == "doc-1"
        assert (await cache.get_json(CacheKeys.document_detail("doc-1")))["id"] == "doc-1"

    @pytest.mark.asyncio
    async def test_cached_document_not_leaked_to_other_owner(
        self, service: DocumentService, record_store
    ) -> None:
        await record_store.create_document(make_document())
        await service.get_document(USER_ID, "doc-1")

        with pytest.raises(NotFoundError):
            await service.get_document(OTHER_USER_ID, "doc-1")

    @pytest.mark.asyncio
    async def test_status(self, service: DocumentService, record_store) -> None:
        await record_store.create_document(make_document(content="a b c"))

        status = await service.get_status(USER_ID, "doc-1")
        cached = await service.get_status(USER_ID, "doc-1")

        assert status.status == ProcessingStatus.COMPLETED
        assert status.word_count == 3
        assert cached == status

    @pytest.mark.asyncio
    async def test_malformed_cached_entries_reloaded(
        self, service: DocumentService, record_store, cache
    ) -> None:
        await record_store.create_document(make_document(content="a b c"))
        await cache.set_json(
            CacheKeys.document_status("doc-1"), {"owner_id": USER_ID, "status": "exploded"}
        )
        await cache.set_json(CacheKeys.document_detail("doc-1"), ["not", "a", "document"])
        await cache.set_json(CacheKeys.document_stats(USER_ID, None), {"total": "many"})

        status = await service.get_status(USER_ID, "doc-1")
        document = await service.get_document(USER_ID, "doc-1")
        stats = await service.stats(USER_ID)

        assert status.status == ProcessingStatus.COMPLETED
        assert status.word_count == 3
        assert document.id == "doc-1"
        assert stats.total == 1
        assert (await cache.get_json(CacheKeys.document_status("doc-1")))["status"] == "completed"

    @pytest.mark.asyncio
    async def test_list_strips_content_and_filters_type(
        self, service: DocumentService, record_store
    ) -> None:
        await record_store.create_document(make_document("a", document_type=DocumentType.PYQ))
        await record_store.create_document(make_document("b"))

        everything = await service.list_documents(USER_ID, subject_id="subj-1")
        pyqs = await service.list_documents(
            USER_ID, subject_id="subj-1", document_type=DocumentType.PYQ
        )

        assert {d.id for d in everything} == {"a", "b"}
        assert all(d.content == "" for d in everything)
        assert [d.id for d in pyqs] == ["a"]

    @pytest.mark.asyncio
    async def test_stats(self, service: DocumentService, record_store) -> None:
        await record_store.create_document(make_document("a", content="one two"))
        await record_store.create_document(
            make_document("b", document_type=DocumentType.PYQ, status=ProcessingStatus.FAILED)
        )

        stats = await service.stats(USER_ID)

        assert stats.total == 2
        assert stats.by_type == {"notes": 1, "pyq": 1}
        assert stats.by_status == {"completed": 1, "failed": 1}
        assert stats.total_words == 2

    @pytest.mark.asyncio
    async def test_vector_stats(self, service: DocumentService, mock_vector_store) -> None:
        stats = await service.vector_stats()
        await service.vector_stats()
        assert stats.available is True
        assert mock_vector_store.stats.await_count == 1


# ======================================================================
# Delete
# ======================================================================


class TestDelete:
    @pytest.mark.asyncio
    async def test_delete_removes_everything(
        self,
        service: DocumentService,
        record_store,
        upload_store,
        cache,
        mock_vector_store: MagicMock,
    ) -> None:
        await record_store.create_document(make_document())
        await upload_store.save("doc-1", b"data", "text/plain")
        await service.get_document(USER_ID, "doc-1")

        await service.delete_document(USER_ID, "doc-1")

        assert await record_store.get_document("doc-1") is None
        assert await upload_store.delete("doc-1") is False
        mock_vector_store.delete_document.assert_awaited_once_with("doc-1")
        assert await cache.get_json(CacheKeys.document_detail("doc-1")) is None

    @pytest.mark.asyncio
    async def test_delete_other_owner(self, service: DocumentService, record_store) -> None:
        await record_store.create_document(make_document())
        with pytest.raises(NotFoundError):
            await service.delete_document(OTHER_USER_ID, "doc-1")
        assert await record_store.get_document("doc-1") is not None
