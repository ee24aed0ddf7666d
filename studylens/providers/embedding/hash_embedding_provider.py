"""Deterministic hash-based embedding provider.

Produces a fixed-dimension vector from a 32-bit rolling hash of the text's
character codes: ``v[i] = sin(hash + i) * 0.1``.  The vectors carry no
semantics, but they are stable across processes and always the right
shape, so the vector index keeps working (as an exact-match store) when no
embedding model can be loaded.
"""

from __future__ import annotations

import math

from studylens.interfaces.embedding_provider import IEmbeddingProvider

DEFAULT_DIMENSION = 384


def rolling_hash(text: str) -> int:
    """Signed 32-bit ``hash * 31 + code`` over the text's characters."""
    value = 0
    for char in text:
        value = ((value << 5) - value + ord(char)) & 0xFFFFFFFF
    # Reinterpret as signed so results match two's-complement arithmetic.
    return value - 0x100000000 if value & 0x80000000 else value


def hash_vector(text: str, dimension: int = DEFAULT_DIMENSION) -> list[float]:
    seed = rolling_hash(text)
    return [math.sin(seed + i) * 0.1 for i in range(dimension)]


class HashEmbeddingProvider(IEmbeddingProvider):
    """Embedding provider that never loads a model and never fails."""

    def __init__(self, dimension: int = DEFAULT_DIMENSION) -> None:
        self._dimension = dimension

    async def embed(self, texts: list[str]) -> list[list[float]]:
        return [hash_vector(text, self._dimension) for text in texts]

    async def embed_single(self, text: str) -> list[float]:
        return hash_vector(text, self._dimension)

    def get_dimension(self) -> int:
        return self._dimension

    def get_provider_name(self) -> str:
        return "hash"

    def is_available(self) -> bool:
        return True
