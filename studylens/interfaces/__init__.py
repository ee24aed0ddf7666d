"""Abstract interfaces for every external dependency studylens consumes.

Core services depend only on these ABCs; concrete adapters live under
``studylens/providers/`` and are wired together in ``studylens/main.py``.
"""

from studylens.interfaces.cache_provider import ICacheProvider
from studylens.interfaces.embedding_provider import IEmbeddingProvider
from studylens.interfaces.llm_provider import ILLMProvider
from studylens.interfaces.record_store import IRecordStore
from studylens.interfaces.upload_store import IUploadStore
from studylens.interfaces.vector_store_provider import IVectorStoreProvider

__all__ = [
    "ICacheProvider",
    "IEmbeddingProvider",
    "ILLMProvider",
    "IRecordStore",
    "IUploadStore",
    "IVectorStoreProvider",
]
