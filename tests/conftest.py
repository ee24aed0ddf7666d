"""Shared pytest fixtures for the studylens test suite."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio

from studylens.config.loader import DEFAULT_CONFIG
from studylens.interfaces.llm_provider import ILLMProvider
from studylens.interfaces.vector_store_provider import IVectorStoreProvider
from studylens.models.document import Document, DocumentMetadata, DocumentType, Subject
from studylens.models.rag import IndexStats, RetrievedChunk
from studylens.models.status import ProcessingStatus
from studylens.providers.cache.memory_cache import MemoryCacheProvider
from studylens.providers.store.local_upload_store import LocalUploadStore
from studylens.providers.store.sqlite_record_store import SQLiteRecordStore
from studylens.services.cache_aside import CacheAside
from studylens.utils.concurrency import TaskSupervisor

USER_ID = "user-1"
OTHER_USER_ID = "user-2"

VALID_PREDICTION: dict[str, Any] = {
    "important_topics": [
        {
            "topic": "Thermodynamics",
            "frequency": 80,
            "weightage": 40,
            "priority": "high",
            "confidence": 0.9,
            "trend": "increasing",
        },
        {
            "topic": "Kinematics",
            "frequency": 50,
            "weightage": 25,
            "priority": "medium",
            "confidence": 0.7,
        },
    ],
    "generated_questions": [
        {
            "question": "Define entropy.",
            "type": "definition",
            "marks": 2,
            "difficulty": "easy",
            "estimated_time": 3,
            "topic": "Thermodynamics",
        },
        {
            "question": "Derive the equations of motion.",
            "type": "derivation",
            "marks": 10,
            "difficulty": "hard",
            "estimated_time": 20,
            "topic": "Kinematics",
        },
    ],
    "summary": {
        "overview": "Focus on thermodynamics and kinematics.",
        "key_concepts": ["entropy", "velocity"],
        "study_recommendations": ["Practise derivations."],
        "estimated_preparation_time": "6 hours",
    },
}


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


def make_subject(subject_id: str = "subj-1", owner_id: str = USER_ID, name: str = "Physics") -> Subject:
    return Subject(id=subject_id, owner_id=owner_id, name=name, description="First year physics")


def make_document(
    document_id: str = "doc-1",
    owner_id: str = USER_ID,
    subject_id: str = "subj-1",
    document_type: DocumentType = DocumentType.NOTES,
    status: ProcessingStatus = ProcessingStatus.COMPLETED,
    content: str = "Chapter 1 Thermodynamics covers entropy and heat engines in depth.",
    topics: list[str] | None = None,
    media_type: str = "text/plain",
) -> Document:
    completed = status == ProcessingStatus.COMPLETED
    return Document(
        id=document_id,
        owner_id=owner_id,
        subject_id=subject_id,
        original_name=f"{document_id}.txt",
        document_type=document_type,
        media_type=media_type,
        size_bytes=len(content.encode("utf-8")),
        content=content if completed else "",
        metadata=(
            DocumentMetadata(
                page_count=None,
                word_count=len(content.split()),
                topics=topics if topics is not None else ["Chapter 1 Thermodynamics"],
            )
            if completed
            else None
        ),
        status=status,
    )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def ttl_tiers() -> dict[str, int]:
    return dict(DEFAULT_CONFIG["cache"]["ttl"])


@pytest.fixture
def cache(ttl_tiers: dict[str, int]) -> CacheAside:
    """Cache-aside layer over a fresh in-memory backend."""
    return CacheAside(MemoryCacheProvider(max_size=500), ttl_tiers=ttl_tiers)


@pytest_asyncio.fixture
async def record_store(tmp_path: Path) -> SQLiteRecordStore:
    store = SQLiteRecordStore(db_path=tmp_path / "studylens.db")
    await store.initialize()
    return store


@pytest.fixture
def upload_store(tmp_path: Path) -> LocalUploadStore:
    return LocalUploadStore(upload_dir=tmp_path / "uploads")


@pytest_asyncio.fixture
async def supervisor() -> TaskSupervisor:
    runner = TaskSupervisor(max_concurrency=2)
    yield runner
    await runner.drain()


@pytest.fixture
def mock_llm() -> MagicMock:
    """Generation provider returning a valid prediction as a fenced JSON block."""
    llm = MagicMock(spec=ILLMProvider)
    llm.complete = AsyncMock(return_value=f"```json\n{json.dumps(VALID_PREDICTION)}\n```")
    llm.get_provider_name.return_value = "mock-llm"
    llm.is_available.return_value = True
    llm.validate_credentials = AsyncMock(return_value=True)
    llm.close = AsyncMock()
    llm.model_name = "mock-model"
    return llm


@pytest.fixture
def mock_vector_store() -> MagicMock:
    """Reachable but empty vector index."""
    store = MagicMock(spec=IVectorStoreProvider)
    store.initialize = AsyncMock(return_value=True)
    store.upsert = AsyncMock(side_effect=lambda chunks: len(chunks))
    store.query = AsyncMock(return_value=[])
    store.delete_document = AsyncMock(return_value=0)
    store.stats = AsyncMock(
        return_value=IndexStats(count=0, available=True, collection="test", dimension=384)
    )
    store.is_available.return_value = True
    store.get_provider_name.return_value = "mock-vector"
    return store


@pytest.fixture
def unavailable_vector_store(mock_vector_store: MagicMock) -> MagicMock:
    mock_vector_store.initialize = AsyncMock(return_value=False)
    mock_vector_store.upsert = AsyncMock(return_value=0)
    mock_vector_store.is_available.return_value = False
    mock_vector_store.stats = AsyncMock(
        return_value=IndexStats(count=0, available=False, collection="test", dimension=384)
    )
    return mock_vector_store


@pytest.fixture
def pyq_chunks() -> list[RetrievedChunk]:
    """Previous-year-paper passages with headings, question verbs and marks."""
    return [
        RetrievedChunk(
            text="Unit 3 Thermodynamics. Q1. Define entropy. (2 marks)",
            metadata={"document_type": "pyq", "subject_id": "subj-1"},
            distance=0.1,
        ),
        RetrievedChunk(
            text="Unit 3 Thermodynamics. Q2. Calculate the efficiency of a Carnot engine. 5 marks",
            metadata={"document_type": "pyq", "subject_id": "subj-1"},
            distance=0.2,
        ),
        RetrievedChunk(
            text="Unit 1 Kinematics. Q3. Derive v = u + at. 10 marks",
            metadata={"document_type": "pyq", "subject_id": "subj-1"},
            distance=0.3,
        ),
    ]
