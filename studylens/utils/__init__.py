"""Utility modules for studylens.

- **errors** -- Exception hierarchy rooted at StudyLensError, organized by
  how a failure must be handled (synchronous 4xx, recorded on the entity,
  absorbed, or fatal at startup).
- **concurrency** -- TaskSupervisor for bounded, observable background
  work, plus a throttled ``asyncio.gather``.
- **logging** -- structlog setup with a dual-renderer pattern: coloured
  console output in development, structured JSON in production.
- **text_normalizer** -- whitespace/word accounting, budgeting helpers and
  fuzzy topic deduplication.
"""

from studylens.utils.concurrency import TaskOutcome, TaskSupervisor, throttled_gather
from studylens.utils.errors import (
    CacheError,
    DependencyUnavailableError,
    ExtractionError,
    FatalConfigurationError,
    InvalidTransitionError,
    LLMError,
    NotFoundError,
    PredictionParseError,
    ProcessingError,
    RAGError,
    StudyLensError,
    UnsupportedMediaTypeError,
    ValidationError,
)
from studylens.utils.logging import configure_logging, get_logger

__all__ = [
    "CacheError",
    "DependencyUnavailableError",
    "ExtractionError",
    "FatalConfigurationError",
    "InvalidTransitionError",
    "LLMError",
    "NotFoundError",
    "PredictionParseError",
    "ProcessingError",
    "RAGError",
    "StudyLensError",
    "TaskOutcome",
    "TaskSupervisor",
    "UnsupportedMediaTypeError",
    "ValidationError",
    "configure_logging",
    "get_logger",
    "throttled_gather",
]
