"""Local sentence-transformers embedding provider adapter.

Optional alternative to fastembed for hosts that already carry PyTorch.
Install with the ``sentence-transformers`` extra.  The default model is the
same all-MiniLM-L6-v2 used by the fastembed provider, so both backends
write compatible 384-dimension vectors into one collection.
"""

from __future__ import annotations

import structlog

from studylens.interfaces.embedding_provider import IEmbeddingProvider
from studylens.utils.errors import RAGError

logger = structlog.get_logger(logger_name=__name__)

_MODEL_DIMENSIONS: dict[str, int] = {
    "sentence-transformers/all-MiniLM-L6-v2": 384,
    "all-MiniLM-L6-v2": 384,
    "BAAI/bge-small-en-v1.5": 384,
}

_DEFAULT_MODEL = "sentence-transformers/all-MiniLM-L6-v2"
_BATCH_LIMIT = 64  # Conservative batch size for CPU inference


class SentenceTransformerEmbeddingProvider(IEmbeddingProvider):
    """Embedding provider backed by a local sentence-transformers model.

    Loads the model into memory on first use (lazy initialization).
    """

    def __init__(self, model_name: str | None = None) -> None:
        self._model_name = model_name or _DEFAULT_MODEL
        self._dimension = _MODEL_DIMENSIONS.get(self._model_name, 384)
        self._model = None  # Lazy-loaded

    def _load_model(self):
        """Lazy-load the sentence-transformers model."""
        if self._model is not None:
            return
        try:
            from sentence_transformers import SentenceTransformer

            logger.info("loading_sentence_transformer", model=self._model_name)
            self._model = SentenceTransformer(self._model_name)
            logger.info(
                "sentence_transformer_loaded",
                model=self._model_name,
                dimension=self._dimension,
            )
        except Exception as exc:
            raise RAGError(
                message=f"Failed to load sentence-transformers model '{self._model_name}': {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Generate normalised embedding vectors for a batch of texts."""
        if not texts:
            return []

        self._load_model()

        try:
            all_embeddings: list[list[float]] = []
            for start in range(0, len(texts), _BATCH_LIMIT):
                batch = texts[start : start + _BATCH_LIMIT]
                vectors = self._model.encode(
                    batch,
                    normalize_embeddings=True,
                    show_progress_bar=False,
                )
                all_embeddings.extend(vectors.tolist())
            return all_embeddings
        except Exception as exc:
            raise RAGError(
                message=f"Sentence-transformers embedding error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    async def embed_single(self, text: str) -> list[float]:
        result = await self.embed([text])
        return result[0]

    def get_dimension(self) -> int:
        return self._dimension

    def get_provider_name(self) -> str:
        return f"sentence_transformer_{self._model_name.split('/')[-1]}"

    def is_available(self) -> bool:
        """Return ``True`` if sentence-transformers is installed."""
        try:
            import sentence_transformers  # noqa: F401

            return True
        except ImportError:
            return False
