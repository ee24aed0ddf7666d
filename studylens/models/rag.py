"""Retrieval data models for the study-material vector index.

Defines Pydantic v2 models for document chunks, retrieval results and index
statistics.  All models use frozen config to enforce immutability.

Retrieval overview for junior developers:
    1. CHUNKING: a completed document's text is split into overlapping
       character windows (studylens/services/ingestion/chunker.py).
    2. EMBEDDING: each chunk is converted into a 384-dimension vector
       (studylens/providers/embedding/).
    3. STORAGE: chunks + embeddings are written to ChromaDB together with
       the owning document/subject ids
       (studylens/providers/vector_store/chromadb_provider.py).
    4. RETRIEVAL: the prediction engine queries by subject id for
       topic-indicative and pattern-indicative passages
       (studylens/services/prediction/retrieval_strategy.py).
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class DocumentChunk(BaseModel):
    """A window of document text ready for embedding and storage.

    This is the VectorRecord of the domain model minus its embedding: the
    vector store provider attaches the embedding at write time.
    """

    model_config = ConfigDict(frozen=True)

    chunk_id: str
    text: str
    document_id: str
    subject_id: str
    document_type: str
    original_name: str = ""
    uploaded_at: str = ""
    chunk_index: int = Field(default=0, ge=0)

    def to_metadata(self) -> dict[str, Any]:
        """Flat metadata dict stored next to the vector (Chroma accepts scalars only)."""
        return {
            "document_id": self.document_id,
            "subject_id": self.subject_id,
            "document_type": self.document_type,
            "original_name": self.original_name,
            "uploaded_at": self.uploaded_at,
            "chunk_index": self.chunk_index,
        }


class RetrievedChunk(BaseModel):
    """A passage returned from a vector-store query, ranked by distance."""

    model_config = ConfigDict(frozen=True)

    text: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    # Cosine distance: 0.0 is identical, larger is less similar.
    distance: float = 0.0


class IndexStats(BaseModel):
    """Snapshot of the vector index served by the stats endpoint."""

    model_config = ConfigDict(frozen=True)

    count: int = Field(default=0, ge=0)
    available: bool = False
    collection: str = ""
    dimension: int = Field(default=0, ge=0)
