"""ChromaDB vector store provider adapter.

Wraps ``chromadb.HttpClient`` to implement :class:`IVectorStoreProvider`
against a Chroma server.  Uses cosine distance for similarity search.

Every public method is best-effort.  The index is an enhancement to
ingestion and prediction, never a prerequisite, so failures are logged and
reported as ``False`` / ``0`` / ``[]`` rather than raised.  A failed call also
drops the cached handles, so ``is_available()`` turns ``False`` until the
next call reconnects.
"""

from __future__ import annotations

import os
from typing import Any, Callable

# Chroma reads this before the client is built; the Settings flag below is
# the authoritative switch for newer versions.
os.environ.setdefault("ANONYMIZED_TELEMETRY", "False")

import chromadb
import structlog
from chromadb.config import Settings as ChromaSettings

from studylens.interfaces.embedding_provider import IEmbeddingProvider
from studylens.interfaces.vector_store_provider import IVectorStoreProvider
from studylens.models.rag import DocumentChunk, IndexStats, RetrievedChunk

logger = structlog.get_logger(logger_name=__name__)

MIN_CHUNK_CHARS = 50
MAX_CHUNK_CHARS = 4000
_BATCH_SIZE = 500


class _NoopEmbeddingFunction(chromadb.EmbeddingFunction[list[str]]):
    """No-op embedding function that prevents ChromaDB from loading a model.

    studylens always passes pre-computed embeddings, so ChromaDB's
    built-in embedding is never invoked.
    """

    def __call__(self, input: list[str]) -> list[list[float]]:
        raise NotImplementedError(
            "studylens uses pre-computed embeddings; "
            "ChromaDB's built-in embedding should never be called."
        )

    def name(self) -> str:
        """Return function name (required by ChromaDB's EmbeddingFunction protocol)."""
        return "noop_precomputed"


class ChromaDBProvider(IVectorStoreProvider):
    """Vector store provider backed by a ChromaDB server.

    The client and collection handles are created lazily by
    :meth:`initialize` and cached until :meth:`reset`.

    Parameters
    ----------
    embedding_provider:
        Produces the vectors written and queried.  Its dimension is the
        dimension of the collection.
    host, port:
        Chroma HTTP endpoint.
    collection_name:
        Collection to get-or-create.
    client_factory:
        Zero-argument callable returning a Chroma client; defaults to an
        ``HttpClient`` for *host*/*port*.  Tests inject a fake here.
    """

    def __init__(
        self,
        embedding_provider: IEmbeddingProvider,
        host: str = "localhost",
        port: int = 8000,
        collection_name: str = "study_materials",
        client_factory: Callable[[], Any] | None = None,
    ) -> None:
        self._embedding_provider = embedding_provider
        self._host = host
        self._port = port
        self._collection_name = collection_name
        self._client_factory = client_factory or self._default_client
        self._client: Any = None
        self._collection: Any = None
        self._available = False

    def _default_client(self) -> Any:
        return chromadb.HttpClient(
            host=self._host,
            port=self._port,
            settings=ChromaSettings(anonymized_telemetry=False),
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> bool:
        """Connect and get-or-create the collection; reuse handles when present."""
        if self._collection is not None and self._available:
            return True

        try:
            if self._client is None:
                self._client = self._client_factory()
            self._client.heartbeat()
            # Newer ChromaDB versions reject a different embedding function
            # than the one persisted with the collection.
            try:
                collection = self._client.get_or_create_collection(
                    name=self._collection_name,
                    metadata={"hnsw:space": "cosine"},
                    embedding_function=_NoopEmbeddingFunction(),
                )
            except ValueError:
                collection = self._client.get_or_create_collection(
                    name=self._collection_name,
                    metadata={"hnsw:space": "cosine"},
                )
        except Exception as exc:
            logger.warning(
                "chromadb_unavailable",
                host=self._host,
                port=self._port,
                error=str(exc),
            )
            self._client = None
            self._collection = None
            self._available = False
            return False

        if not self._dimension_matches(collection):
            self._collection = None
            self._available = False
            return False

        self._collection = collection
        self._available = True
        logger.info(
            "chromadb_initialized",
            collection=self._collection_name,
            dimension=self._embedding_provider.get_dimension(),
        )
        return True

    def reset(self) -> None:
        """Drop client and collection handles; the next call reconnects."""
        self._client = None
        self._collection = None
        self._available = False
        logger.info("chromadb_reset", collection=self._collection_name)

    def is_available(self) -> bool:
        return self._available

    def get_provider_name(self) -> str:
        return "chromadb"

    # ------------------------------------------------------------------
    # IVectorStoreProvider implementation
    # ------------------------------------------------------------------

    async def upsert(self, chunks: list[DocumentChunk]) -> int:
        """Embed and upsert chunks whose stripped text exceeds 50 characters."""
        eligible = [c for c in chunks if len(c.text.strip()) > MIN_CHUNK_CHARS]
        if not eligible:
            logger.debug("chromadb_upsert_nothing_eligible", submitted=len(chunks))
            return 0
        if not await self.initialize():
            logger.warning("chromadb_upsert_skipped_unavailable", chunks=len(eligible))
            return 0

        try:
            texts = [c.text[:MAX_CHUNK_CHARS] for c in eligible]
            embeddings = await self._embedding_provider.embed(texts)
            dimension = self._embedding_provider.get_dimension()
            if len(embeddings) != len(texts) or any(len(e) != dimension for e in embeddings):
                logger.warning(
                    "chromadb_upsert_dimension_mismatch",
                    expected_dimension=dimension,
                    chunks=len(texts),
                )
                return 0

            total_stored = 0
            for start in range(0, len(eligible), _BATCH_SIZE):
                end = start + _BATCH_SIZE
                batch = eligible[start:end]
                self._collection.upsert(
                    ids=[c.chunk_id for c in batch],
                    embeddings=embeddings[start:end],
                    documents=texts[start:end],
                    metadatas=[c.to_metadata() for c in batch],
                )
                total_stored += len(batch)

            logger.info(
                "chromadb_upsert",
                count=total_stored,
                skipped=len(chunks) - len(eligible),
            )
            return total_stored
        except Exception as exc:
            logger.warning("chromadb_upsert_failed", error=str(exc), chunks=len(eligible))
            self.reset()
            return 0

    async def query(
        self,
        query_text: str,
        subject_id: str | None = None,
        top_k: int = 10,
        document_type: str | None = None,
    ) -> list[RetrievedChunk]:
        """Semantic search ranked by ascending cosine distance."""
        if top_k <= 0 or not query_text.strip():
            return []
        if not await self.initialize():
            return []

        try:
            count = self._collection.count()
            if count == 0:
                return []

            query_embedding = await self._embedding_provider.embed_single(query_text)
            kwargs: dict[str, Any] = {
                "query_embeddings": [query_embedding],
                "n_results": min(top_k, count),
                "include": ["documents", "metadatas", "distances"],
            }
            where = self._build_where(subject_id, document_type)
            if where:
                kwargs["where"] = where

            raw = self._collection.query(**kwargs)
            documents = (raw.get("documents") or [[]])[0] or []
            metadatas = (raw.get("metadatas") or [[]])[0] or []
            distances = (raw.get("distances") or [[]])[0] or []

            results = [
                RetrievedChunk(
                    text=text or "",
                    metadata=dict(metadatas[i] or {}) if i < len(metadatas) else {},
                    distance=float(distances[i]) if i < len(distances) else 0.0,
                )
                for i, text in enumerate(documents)
            ]
            results.sort(key=lambda r: r.distance)
            logger.debug(
                "chromadb_query",
                subject_id=subject_id,
                document_type=document_type,
                results=len(results),
            )
            return results
        except Exception as exc:
            logger.warning("chromadb_query_failed", error=str(exc), subject_id=subject_id)
            self.reset()
            return []

    async def delete_document(self, document_id: str) -> int:
        """Delete all chunks belonging to *document_id*."""
        if not await self.initialize():
            return 0
        try:
            existing = self._collection.get(where={"document_id": document_id})
            ids = existing.get("ids") or []
            if ids:
                self._collection.delete(ids=ids)
            logger.info("chromadb_delete_document", document_id=document_id, deleted=len(ids))
            return len(ids)
        except Exception as exc:
            logger.warning(
                "chromadb_delete_document_failed", document_id=document_id, error=str(exc)
            )
            self.reset()
            return 0

    async def stats(self) -> IndexStats:
        """Return collection size and availability; zero count when unreachable."""
        dimension = self._embedding_provider.get_dimension()
        if not await self.initialize():
            return IndexStats(
                count=0, available=False, collection=self._collection_name, dimension=dimension
            )
        try:
            count = self._collection.count()
        except Exception as exc:
            logger.warning("chromadb_stats_failed", error=str(exc))
            self.reset()
            return IndexStats(
                count=0, available=False, collection=self._collection_name, dimension=dimension
            )
        return IndexStats(
            count=count, available=True, collection=self._collection_name, dimension=dimension
        )

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _dimension_matches(self, collection: Any) -> bool:
        """Refuse a collection whose stored vectors have another dimension.

        Peeks at one stored vector; an empty collection always matches.
        """
        expected = self._embedding_provider.get_dimension()
        try:
            if collection.count() == 0:
                return True
            sample = collection.peek(limit=1)
            embeddings = sample.get("embeddings") if sample else None
            if embeddings is None or len(embeddings) == 0:
                return True
            stored = len(embeddings[0])
        except Exception as exc:
            logger.warning("embedding_dimension_check_skipped", error=str(exc))
            return True

        if stored != expected:
            logger.error(
                "embedding_dimension_mismatch",
                stored_dim=stored,
                expected_dim=expected,
                collection=self._collection_name,
            )
            return False
        return True

    @staticmethod
    def _build_where(subject_id: str | None, document_type: str | None) -> dict[str, Any] | None:
        clauses: list[dict[str, Any]] = []
        if subject_id:
            clauses.append({"subject_id": subject_id})
        if document_type:
            clauses.append({"document_type": document_type})
        if not clauses:
            return None
        if len(clauses) == 1:
            return clauses[0]
        return {"$and": clauses}
