"""studylens FastAPI application entry point.

Wires together all providers, services, and routes via dependency injection.
Loads configuration from ``.env`` and ``config/config.yaml`` and configures
structured logging.

# ─── COMPONENT GRAPH (Junior Developer Guide) ─────────────────────────
#
#   Settings + config.yaml
#        │
#        ├─ SQLiteRecordStore ─┐
#        ├─ LocalUploadStore ──┤
#        ├─ CacheAside(Redis | Memory)
#        ├─ FallbackEmbeddingProvider(fastembed | sentence-transformers | hash)
#        │     └─ ChromaDBProvider
#        ├─ LLM (Anthropic → OpenAI → Ollama)
#        │     └─ PredictionEngine
#        ├─ TaskSupervisor
#        │
#        ├─ IngestionCoordinator → DocumentService
#        └─ AnalysisOrchestrator
#
# Every component is built ONCE in _build_all() and stored on app.state.
# Shared clients are lazily connected; the lifespan closes them on shutdown.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

import structlog
import uvicorn
from fastapi import FastAPI

from studylens import __version__
from studylens.api.middleware import ErrorHandlingMiddleware, RequestLoggingMiddleware
from studylens.api.routes import router as api_router
from studylens.config.loader import load_config
from studylens.config.settings import Settings
from studylens.interfaces.cache_provider import ICacheProvider
from studylens.interfaces.embedding_provider import IEmbeddingProvider
from studylens.interfaces.llm_provider import ILLMProvider
from studylens.pipeline.analysis_orchestrator import AnalysisOrchestrator
from studylens.providers.cache.memory_cache import MemoryCacheProvider
from studylens.providers.cache.redis_cache import RedisCacheProvider
from studylens.providers.embedding.fallback_embedding_provider import FallbackEmbeddingProvider
from studylens.providers.llm.anthropic_provider import AnthropicLLMProvider
from studylens.providers.llm.ollama_provider import OllamaLLMProvider
from studylens.providers.llm.openai_provider import OpenAILLMProvider
from studylens.providers.store.local_upload_store import LocalUploadStore
from studylens.providers.store.sqlite_record_store import SQLiteRecordStore
from studylens.providers.vector_store.chromadb_provider import ChromaDBProvider
from studylens.services.cache_aside import CacheAside
from studylens.services.document_service import DocumentService
from studylens.services.ingestion.chunker import TextChunker
from studylens.services.ingestion.content_extractor import ContentExtractor
from studylens.services.ingestion.ingestion_coordinator import IngestionCoordinator
from studylens.services.prediction.prediction_engine import PredictionEngine
from studylens.utils.concurrency import TaskSupervisor
from studylens.utils.logging import configure_logging, get_logger

# ---------------------------------------------------------------------------
# Module-level settings & logging
# ---------------------------------------------------------------------------

settings = Settings()
config = load_config(settings=settings)

configure_logging(
    log_level=settings.log_level,
    json_output=(settings.app_env == "production"),
)
_logger: structlog.BoundLogger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Provider selection
# ---------------------------------------------------------------------------


def _build_llm_provider(app_settings: Settings) -> ILLMProvider:
    """Select the first configured LLM provider.

    Priority order: Anthropic -> OpenAI -> Ollama (always constructed; an
    unreachable server surfaces as ``LLMError`` and the deterministic
    fallback takes over).
    """
    if app_settings.anthropic_api_key:
        return AnthropicLLMProvider(settings=app_settings)
    if app_settings.openai_api_key:
        return OpenAILLMProvider(settings=app_settings)
    return OllamaLLMProvider(settings=app_settings)


def _build_embedding_provider(app_settings: Settings) -> FallbackEmbeddingProvider:
    """Wrap the configured embedding backend with the hash-vector fallback.

    The model backends are imported lazily so the ``hash`` backend works
    without fastembed or sentence-transformers installed.
    """
    primary: IEmbeddingProvider | None = None
    if app_settings.embedding_backend == "fastembed":
        from studylens.providers.embedding.fastembed_embedding_provider import (
            FastEmbedEmbeddingProvider,
        )

        primary = FastEmbedEmbeddingProvider(model_name=app_settings.embedding_model)
    elif app_settings.embedding_backend == "sentence_transformers":
        from studylens.providers.embedding.sentence_transformer_embedding_provider import (
            SentenceTransformerEmbeddingProvider,
        )

        primary = SentenceTransformerEmbeddingProvider(model_name=app_settings.embedding_model)
    return FallbackEmbeddingProvider(primary)


def _build_cache_provider(app_settings: Settings, app_config: dict[str, Any]) -> ICacheProvider:
    if app_settings.cache_backend == "memory":
        cache_cfg = app_config.get("cache", {})
        return MemoryCacheProvider(
            max_size=int(cache_cfg.get("max_size", 1000)),
            ttl=int(cache_cfg.get("ttl", {}).get("analysis_completed", 3600)),
        )
    return RedisCacheProvider(
        url=app_settings.redis_url,
        connect_attempts=app_settings.redis_connect_attempts,
        cooldown_seconds=app_settings.redis_cooldown_seconds,
    )


# ---------------------------------------------------------------------------
# Full DI assembly for the FastAPI application
# ---------------------------------------------------------------------------


def _build_all(app_settings: Settings, app_config: dict[str, Any]) -> dict[str, Any]:
    """Construct every provider and service instance for the application.

    Returns a flat dict of named components to be stored on ``app.state``.
    Nothing here opens a connection; initialisation happens in the lifespan.
    """
    app_settings.validate_required()

    # -- Persistence --
    record_store = SQLiteRecordStore(db_path=app_settings.database_path)
    upload_store = LocalUploadStore(upload_dir=app_settings.upload_dir)

    # -- Cache --
    cache_provider = _build_cache_provider(app_settings, app_config)
    cache = CacheAside(cache_provider, ttl_tiers=app_config.get("cache", {}).get("ttl", {}))

    # -- Vector index --
    embedding_provider = _build_embedding_provider(app_settings)
    vector_store = ChromaDBProvider(
        embedding_provider=embedding_provider,
        host=app_settings.chroma_host,
        port=app_settings.chroma_port,
        collection_name=app_settings.chroma_collection,
    )

    # -- Generation --
    llm = _build_llm_provider(app_settings)
    engine = PredictionEngine(llm, vector_store, app_config.get("prediction", {}))

    # -- Background work --
    supervisor = TaskSupervisor(max_concurrency=app_settings.background_concurrency)

    # -- Services --
    ingestion_cfg = app_config.get("ingestion", {})
    coordinator = IngestionCoordinator(
        record_store=record_store,
        upload_store=upload_store,
        extractor=ContentExtractor(),
        chunker=TextChunker(
            chunk_size=int(ingestion_cfg.get("chunk_size", 1500)),
            overlap=int(ingestion_cfg.get("chunk_overlap", 200)),
        ),
        vector_store=vector_store,
        cache=cache,
    )
    document_service = DocumentService(
        record_store=record_store,
        upload_store=upload_store,
        coordinator=coordinator,
        supervisor=supervisor,
        cache=cache,
        vector_store=vector_store,
        max_upload_bytes=app_settings.max_upload_bytes,
    )
    orchestrator = AnalysisOrchestrator(
        record_store=record_store,
        cache=cache,
        engine=engine,
        supervisor=supervisor,
        config=app_config.get("analysis", {}),
    )

    # -- Provider registry for /health --
    provider_registry: dict[str, Any] = {
        "llm": llm.is_available(),
        "llm_provider": llm.get_provider_name(),
        "embedding": embedding_provider.get_provider_name(),
        "cache_backend": app_settings.cache_backend,
    }

    return {
        "settings": app_settings,
        "config": app_config,
        "record_store": record_store,
        "upload_store": upload_store,
        "cache": cache,
        "embedding_provider": embedding_provider,
        "vector_store": vector_store,
        "llm_provider": llm,
        "prediction_engine": engine,
        "supervisor": supervisor,
        "ingestion_coordinator": coordinator,
        "document_service": document_service,
        "analysis_orchestrator": orchestrator,
        "provider_registry": provider_registry,
    }


# ---------------------------------------------------------------------------
# Application lifespan (startup / shutdown)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def _lifespan(application: FastAPI):  # noqa: ANN201
    """Initialise all providers and services on startup, clean up on shutdown."""
    components = _build_all(settings, config)
    for key, value in components.items():
        setattr(application.state, key, value)

    await components["record_store"].initialize()
    vector_ready = await components["vector_store"].initialize()
    llm: ILLMProvider = components["llm_provider"]
    llm_ready = await llm.validate_credentials()
    components["provider_registry"]["llm"] = llm_ready
    purged = await components["analysis_orchestrator"].purge_expired()

    _logger.info(
        "app_startup",
        version=__version__,
        environment=settings.app_env,
        llm=llm.get_provider_name(),
        llm_ready=llm_ready,
        vector_ready=vector_ready,
        cache_ready=await components["cache"].ping(),
        purged_analyses=purged,
    )

    yield

    # -- Shutdown: drain background work, then release shared clients --
    await components["supervisor"].shutdown()
    await components["cache"].close()
    await llm.close()
    components["vector_store"].reset()
    await components["record_store"].close()
    _logger.info("app_shutdown", message="Shared clients closed")


# ---------------------------------------------------------------------------
# FastAPI application factory
# ---------------------------------------------------------------------------


def create_app() -> FastAPI:
    """Build and configure the FastAPI application."""
    application = FastAPI(
        title="studylens API",
        version=__version__,
        description="Study-material ingestion, semantic indexing and exam prediction.",
        lifespan=_lifespan,
    )

    # -- Middleware (order matters: last added = outermost) --
    application.add_middleware(ErrorHandlingMiddleware)
    application.add_middleware(RequestLoggingMiddleware)

    # -- API routes --
    application.include_router(api_router)

    return application


app = create_app()

# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    uvicorn.run(
        "studylens.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=(settings.app_env == "development"),
    )
