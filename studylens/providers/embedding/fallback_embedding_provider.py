"""Embedding provider that never fails.

Wraps a model-backed primary provider.  Every input text is first truncated
to ``max_chars``; then:

* if the primary is unavailable or raises, every text gets a hash vector;
* if the primary returns the wrong number of vectors, every text gets a
  hash vector;
* if an individual vector has the wrong dimension or non-finite values,
  just that text gets a hash vector.

The output therefore always has one vector per input, each of the fixed
dimension, which is what the vector store requires.
"""

from __future__ import annotations

import math

import structlog

from studylens.interfaces.embedding_provider import IEmbeddingProvider
from studylens.providers.embedding.hash_embedding_provider import hash_vector

logger = structlog.get_logger(logger_name=__name__)

MAX_EMBED_CHARS = 4000


class FallbackEmbeddingProvider(IEmbeddingProvider):
    """Primary model with a per-text deterministic fallback."""

    def __init__(
        self,
        primary: IEmbeddingProvider | None,
        dimension: int | None = None,
        max_chars: int = MAX_EMBED_CHARS,
    ) -> None:
        self._primary = primary
        self._dimension = dimension or (primary.get_dimension() if primary else 384)
        self._max_chars = max_chars

    async def embed(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []
        truncated = [text[: self._max_chars] for text in texts]

        vectors = await self._embed_primary(truncated)
        if vectors is None:
            return [hash_vector(text, self._dimension) for text in truncated]

        result: list[list[float]] = []
        for text, vector in zip(truncated, vectors):
            if self._is_valid(vector):
                result.append(list(vector))
            else:
                logger.warning(
                    "embedding_vector_rejected",
                    expected_dimension=self._dimension,
                    actual_dimension=len(vector) if vector is not None else None,
                )
                result.append(hash_vector(text, self._dimension))
        return result

    async def embed_single(self, text: str) -> list[float]:
        result = await self.embed([text])
        return result[0]

    def get_dimension(self) -> int:
        return self._dimension

    def get_provider_name(self) -> str:
        if self._primary is None:
            return "hash"
        return f"{self._primary.get_provider_name()}+hash"

    def is_available(self) -> bool:
        return True

    @property
    def model_available(self) -> bool:
        """``True`` when a semantic model (not just hashing) is in use."""
        return self._primary is not None and self._primary.is_available()

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _embed_primary(self, texts: list[str]) -> list[list[float]] | None:
        if not self.model_available:
            return None
        try:
            vectors = await self._primary.embed(texts)
        except Exception as exc:
            logger.warning(
                "embedding_model_failed_using_hash",
                provider=self._primary.get_provider_name(),
                error=str(exc),
                count=len(texts),
            )
            return None
        if len(vectors) != len(texts):
            logger.warning(
                "embedding_count_mismatch_using_hash",
                expected=len(texts),
                actual=len(vectors),
            )
            return None
        return vectors

    def _is_valid(self, vector: list[float] | None) -> bool:
        if vector is None or len(vector) != self._dimension:
            return False
        return all(math.isfinite(v) for v in vector)
