"""YAML configuration loader with environment variable overrides.

# ─── CONFIGURATION HIERARCHY (Junior Developer Guide) ──────────────────
#
# Configuration is loaded in layers (later layers override earlier):
#
#   1. Built-in defaults   - DEFAULT_CONFIG below
#   2. config/config.yaml  - Static tunables checked into the repo
#                            (cache TTL tiers, context budgets, retention)
#   3. .env / env vars     - Deployment values via Settings
#
# The _deep_merge helper does recursive dict merging:
#   base = {"cache": {"ttl": {"analysis_completed": 3600}}}
#   overrides = {"cache": {"backend": "memory"}}
#   result = {"cache": {"ttl": {...}, "backend": "memory"}}
# ──────────────────────────────────────────────────────────────────────
"""

import copy
from pathlib import Path
from typing import Any

import yaml

from studylens.config.settings import Settings

DEFAULT_CONFIG: dict[str, Any] = {
    "cache": {
        "max_size": 1000,
        "ttl": {
            "analysis_in_flight": 300,
            "analysis_completed": 3600,
            "analysis_list": 300,
            "document_detail": 600,
            "document_list": 300,
            "document_stats": 300,
            "document_status": 300,
            "document_status_terminal": 86400,
            "quick_predict": 1800,
            "vector_stats": 120,
        },
    },
    "analysis": {
        "min_completed_documents": 2,
        "retention_days": 7,
        "list_limit": 20,
        "context": {
            "syllabus_chars": 2000,
            "note_chars": 1000,
            "pyq_chars": 1500,
            "total_chars": 12000,
        },
    },
    "prediction": {
        "fallback_question_count": 5,
        "retrieval_k": 10,
        "max_topics": 8,
        "temperature": 0.3,
        "max_tokens": 2048,
    },
    "ingestion": {
        "chunk_size": 1500,
        "chunk_overlap": 200,
    },
}


def load_config(path: str | None = None, settings: Settings | None = None) -> dict[str, Any]:
    """Load YAML config and merge with environment-based Settings.

    Args:
        path: Path to the YAML configuration file.  Defaults to
            ``settings.config_path``.
        settings: Pre-built settings; a fresh ``Settings()`` is read when omitted.

    Returns:
        Fully resolved configuration dictionary.
    """
    settings = settings or Settings()
    config = copy.deepcopy(DEFAULT_CONFIG)

    config_path = Path(path or settings.config_path)
    if config_path.exists():
        with open(config_path) as f:
            yaml_config = yaml.safe_load(f) or {}
        _deep_merge(config, yaml_config)

    env_overrides = {
        "app": {
            "host": settings.app_host,
            "port": settings.app_port,
            "env": settings.app_env,
        },
        "cache": {
            "backend": settings.cache_backend,
            "redis_url": settings.redis_url,
        },
        "llm": {
            "available_providers": settings.get_available_llm_providers(),
        },
        "logging": {
            "level": settings.log_level,
        },
    }

    _deep_merge(config, env_overrides)
    return config


def _deep_merge(base: dict, overrides: dict) -> None:
    """Recursively merge overrides into base dict, mutating base in place."""
    for key, value in overrides.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
