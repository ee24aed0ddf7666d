"""Abstract base class for text-embedding service providers.

Defines the contract for generating fixed-dimension embedding vectors from
text.  Implementations wrap FastEmbed (ONNX), Sentence Transformers, or a
deterministic hash function used when no model can be loaded.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementations:
#   FastEmbedEmbeddingProvider           - lightweight ONNX (no PyTorch), default
#   SentenceTransformerEmbeddingProvider - all-MiniLM-L6-v2 (local, needs PyTorch)
#   HashEmbeddingProvider                - deterministic, dependency-free vectors
#   FallbackEmbeddingProvider            - model first, hash vector per failed text
# Located in: studylens/providers/embedding/
class IEmbeddingProvider(ABC):
    """Contract for text-embedding services used by the vector index.

    Embeddings are consumed by
    :class:`~studylens.interfaces.vector_store_provider.IVectorStoreProvider`
    for indexing and query-time similarity search.
    """

    @abstractmethod
    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Generate embedding vectors for a batch of texts.

        Parameters
        ----------
        texts:
            One or more text strings to embed.

        Returns
        -------
        list[list[float]]
            Embedding vectors corresponding positionally to *texts*.  Each
            inner list has length equal to :meth:`get_dimension`.

        Raises
        ------
        studylens.utils.errors.RAGError
            If the underlying model fails.  The fallback provider never
            raises.
        """

    @abstractmethod
    async def embed_single(self, text: str) -> list[float]:
        """Generate an embedding vector for a single text string."""

    @abstractmethod
    def get_dimension(self) -> int:
        """Return the dimensionality of the embedding vectors.

        This value must remain constant for the lifetime of the provider
        instance and must match the dimension configured in the vector store.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this embedding provider."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider's model can be used.

        Implementations check that the backing package is importable
        without loading model weights.
        """
