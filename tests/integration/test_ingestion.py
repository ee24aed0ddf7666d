"""Integration tests for document ingestion into a real Chroma collection.

Uses an on-disk ``chromadb.PersistentClient`` under ``tmp_path`` and the
hash embedding backend, so the full extract → chunk → embed → upsert →
query path runs without a model download or a Chroma server.
"""

from __future__ import annotations

from pathlib import Path

import chromadb
import pytest
from chromadb.config import Settings as ChromaSettings

from studylens.models.document import DocumentType
from studylens.models.status import ProcessingStatus
from studylens.providers.embedding.fallback_embedding_provider import FallbackEmbeddingProvider
from studylens.providers.vector_store.chromadb_provider import ChromaDBProvider
from studylens.services.ingestion.chunker import TextChunker
from studylens.services.ingestion.content_extractor import ContentExtractor
from studylens.services.ingestion.ingestion_coordinator import IngestionCoordinator
from tests.conftest import make_document

PAPER = (
    "Unit 3 Thermodynamics\n"
    "Q1. Define entropy and state the second law of thermodynamics. (2 marks)\n"
    "Q2. Derive the efficiency of a Carnot engine operating between two reservoirs. 10 marks\n"
    "Q3. Explain why no heat engine can be more efficient than a Carnot engine. 5 marks\n"
)


@pytest.fixture
def vector_store(tmp_path: Path) -> ChromaDBProvider:
    return ChromaDBProvider(
        embedding_provider=FallbackEmbeddingProvider(None),
        collection_name="ingestion_test",
        client_factory=lambda: chromadb.PersistentClient(
            path=str(tmp_path / "chroma"),
            settings=ChromaSettings(anonymized_telemetry=False),
        ),
    )


@pytest.fixture
def coordinator(record_store, upload_store, cache, vector_store) -> IngestionCoordinator:
    return IngestionCoordinator(
        record_store=record_store,
        upload_store=upload_store,
        extractor=ContentExtractor(),
        chunker=TextChunker(chunk_size=120, overlap=20),
        vector_store=vector_store,
        cache=cache,
    )


class TestIngestionIntoChroma:
    @pytest.mark.asyncio
    async def test_document_indexed_and_queryable(
        self, record_store, upload_store, coordinator, vector_store
    ) -> None:
        pending = make_document(
            "doc-pyq", document_type=DocumentType.PYQ, status=ProcessingStatus.PENDING
        )
        await record_store.create_document(pending)
        await upload_store.save(pending.id, PAPER.encode("utf-8"), "text/plain")

        document = await coordinator.process(pending.id)

        assert document is not None
        assert document.status == ProcessingStatus.COMPLETED
        assert document.indexed is True
        assert document.metadata.topics == ["Unit 3 Thermodynamics"]

        stats = await vector_store.stats()
        assert stats.available is True
        assert stats.count >= 2

        results = await vector_store.query(
            "Carnot engine efficiency", subject_id="subj-1", document_type="pyq"
        )
        assert results
        assert all(r.metadata["document_id"] == "doc-pyq" for r in results)
        assert results == sorted(results, key=lambda r: r.distance)

        other_subject = await vector_store.query("Carnot engine", subject_id="subj-9")
        assert other_subject == []

    @pytest.mark.asyncio
    async def test_delete_removes_vectors(
        self, record_store, upload_store, coordinator, vector_store
    ) -> None:
        pending = make_document("doc-notes", status=ProcessingStatus.PENDING)
        await record_store.create_document(pending)
        await upload_store.save(pending.id, PAPER.encode("utf-8"), "text/plain")
        await coordinator.process(pending.id)

        removed = await vector_store.delete_document("doc-notes")

        assert removed >= 2
        assert (await vector_store.stats()).count == 0

    @pytest.mark.asyncio
    async def test_short_document_completes_without_vectors(
        self, record_store, upload_store, coordinator, vector_store
    ) -> None:
        pending = make_document("doc-short", status=ProcessingStatus.PENDING)
        await record_store.create_document(pending)
        await upload_store.save(pending.id, b"Too short to index.", "text/plain")

        document = await coordinator.process(pending.id)

        assert document.status == ProcessingStatus.COMPLETED
        assert document.indexed is False
        assert (await vector_store.stats()).count == 0
