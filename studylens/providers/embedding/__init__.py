"""Embedding provider implementations.

Embeddings convert text into numeric vectors that capture semantic meaning.
These vectors are stored in ChromaDB and used for similarity search.

    1. FastEmbedEmbeddingProvider - ONNX-based, no PyTorch needed. Default.
    2. SentenceTransformerEmbeddingProvider - PyTorch-based, optional extra.
    3. HashEmbeddingProvider - deterministic vectors, no model at all.
    4. FallbackEmbeddingProvider - wraps 1 or 2 and substitutes 3 per text.

The model libraries are imported lazily inside the model-backed providers,
so importing this package never pulls in ONNX Runtime or PyTorch.
"""

from studylens.providers.embedding.fallback_embedding_provider import (
    FallbackEmbeddingProvider,
)
from studylens.providers.embedding.fastembed_embedding_provider import (
    FastEmbedEmbeddingProvider,
)
from studylens.providers.embedding.hash_embedding_provider import HashEmbeddingProvider
from studylens.providers.embedding.sentence_transformer_embedding_provider import (
    SentenceTransformerEmbeddingProvider,
)

__all__ = [
    "FallbackEmbeddingProvider",
    "FastEmbedEmbeddingProvider",
    "HashEmbeddingProvider",
    "SentenceTransformerEmbeddingProvider",
]
