"""Abstract base class for vector-store service providers.

Defines the contract for storing and querying embedded document chunks.
Every method is best-effort: the vector index is an enhancement, so
failures are logged and reported as "nothing stored" / "nothing found"
instead of being raised into ingestion or prediction.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from studylens.models.rag import DocumentChunk, IndexStats, RetrievedChunk


# Concrete implementation: ChromaDBProvider (studylens/providers/vector_store/)
class IVectorStoreProvider(ABC):
    """Contract for the study-material vector index."""

    @abstractmethod
    async def initialize(self) -> bool:
        """Connect and get-or-create the collection.

        Idempotent: a second call reuses the existing handles.

        Returns
        -------
        bool
            ``True`` if the index is usable.  Never raises.
        """

    @abstractmethod
    async def upsert(self, chunks: list[DocumentChunk]) -> int:
        """Embed and store *chunks*, skipping near-empty ones.

        Returns
        -------
        int
            Number of chunks written; ``0`` on failure.
        """

    @abstractmethod
    async def query(
        self,
        query_text: str,
        subject_id: str | None = None,
        top_k: int = 10,
        document_type: str | None = None,
    ) -> list[RetrievedChunk]:
        """Semantic search scoped to a subject.

        Parameters
        ----------
        query_text:
            Natural-language query to embed and search for.
        subject_id:
            Restrict results to chunks from this subject.
        top_k:
            Maximum number of results.
        document_type:
            Optional further restriction (e.g. ``"pyq"``).

        Returns
        -------
        list[RetrievedChunk]
            Results ranked by ascending distance; empty on any failure.
        """

    @abstractmethod
    async def delete_document(self, document_id: str) -> int:
        """Remove every chunk belonging to *document_id*; returns count removed."""

    @abstractmethod
    async def stats(self) -> IndexStats:
        """Return count, availability, collection name and dimension."""

    @abstractmethod
    def reset(self) -> None:
        """Drop cached client and collection handles (next call reconnects)."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the last initialisation succeeded."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"chromadb"``."""
