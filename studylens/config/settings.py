"""Application settings loaded from environment variables via pydantic-settings.

# ─── HOW SETTINGS WORK (Junior Developer Guide) ───────────────────────
#
# pydantic-settings reads configuration from TWO sources (priority order):
#
#   1. **Environment variables** - e.g., OPENAI_API_KEY=sk-abc123
#   2. **.env file** - key=value lines in the project root .env file
#
# Field ``redis_url`` maps to env var ``REDIS_URL`` automatically.
# Defaults apply when neither source sets a value.
#
# validate_required() is called once from main.py before any provider is
# built.  It is the only place that raises FatalConfigurationError.
# ──────────────────────────────────────────────────────────────────────
"""

from pydantic_settings import BaseSettings, SettingsConfigDict

from studylens.utils.errors import FatalConfigurationError

_CACHE_BACKENDS = frozenset({"redis", "memory"})
_EMBEDDING_BACKENDS = frozenset({"fastembed", "sentence_transformers", "hash"})


class Settings(BaseSettings):
    """studylens application settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # === Generation providers ===
    # Empty string = "not configured"; provider selection in main.py skips
    # providers with empty keys and falls through to Ollama.
    openai_api_key: str = ""
    openai_base_url: str = ""  # OpenAI-compatible endpoints (Gemini, TogetherAI, ...)
    openai_text_model: str = ""
    anthropic_api_key: str = ""
    anthropic_model: str = ""
    ollama_base_url: str = "http://localhost:11434"
    ollama_model: str = "llama3.1"

    # === Cache ===
    cache_backend: str = "redis"
    redis_url: str = "redis://localhost:6379/0"
    redis_connect_attempts: int = 3
    redis_cooldown_seconds: float = 5.0

    # === Vector store / embeddings ===
    chroma_host: str = "localhost"
    chroma_port: int = 8000
    chroma_collection: str = "study_materials"
    embedding_backend: str = "fastembed"
    embedding_model: str = "sentence-transformers/all-MiniLM-L6-v2"

    # === Persistence ===
    database_path: str = "data/studylens.db"
    upload_dir: str = "data/uploads"
    max_upload_bytes: int = 10 * 1024 * 1024

    # === Background work ===
    background_concurrency: int = 4

    # === App Config ===
    app_host: str = "0.0.0.0"
    app_port: int = 3000
    app_env: str = "development"
    log_level: str = "INFO"
    config_path: str = "config/config.yaml"

    def get_available_llm_providers(self) -> list[str]:
        """Return LLM provider names in selection priority order."""
        providers: list[str] = []
        if self.anthropic_api_key:
            providers.append("anthropic")
        if self.openai_api_key:
            providers.append("openai")
        if self.ollama_base_url:
            providers.append("ollama")
        return providers

    def validate_required(self) -> None:
        """Abort startup when required configuration is missing or invalid.

        Raises
        ------
        FatalConfigurationError
            If a backend name is unknown, persistence paths are empty, or a
            production deployment has no hosted generation provider key.
        """
        if self.cache_backend not in _CACHE_BACKENDS:
            raise FatalConfigurationError(
                f"CACHE_BACKEND must be one of {sorted(_CACHE_BACKENDS)}, "
                f"got {self.cache_backend!r}"
            )
        if self.embedding_backend not in _EMBEDDING_BACKENDS:
            raise FatalConfigurationError(
                f"EMBEDDING_BACKEND must be one of {sorted(_EMBEDDING_BACKENDS)}, "
                f"got {self.embedding_backend!r}"
            )
        if not self.database_path or not self.upload_dir:
            raise FatalConfigurationError("DATABASE_PATH and UPLOAD_DIR must be set")
        if self.app_env == "production" and not (
            self.openai_api_key or self.anthropic_api_key
        ):
            raise FatalConfigurationError(
                "Missing required environment variable: OPENAI_API_KEY or ANTHROPIC_API_KEY"
            )
