"""Custom exception hierarchy for studylens.

All application exceptions inherit from :class:`StudyLensError`, which
carries an optional ``provider_name`` so error handlers can identify which
external service (e.g. "openai", "chromadb", "redis") caused the failure.

The hierarchy is organized by how the failure must be *handled*, not by
where it happened:

    StudyLensError  (base -- catch-all for any studylens error)
    +-- ValidationError             (bad/missing input, surfaced synchronously, 400)
    +-- NotFoundError               (entity absent or not owned by caller, 404)
    +-- InvalidTransitionError      (illegal status state-machine move)
    +-- ProcessingError             (recorded on the owning entity, never re-raised
    |   |                            across an async boundary)
    |   +-- ExtractionError         (document text extraction failed)
    |   +-- UnsupportedMediaTypeError
    |   +-- LLMError                (generation provider call failed)
    |   +-- PredictionParseError    (generated output failed schema validation)
    +-- DependencyUnavailableError  (cache / vector store unreachable -- always
    |   |                            absorbed at the point of use)
    |   +-- RAGError                (embedding or vector-store failure)
    |   +-- CacheError              (cache backend failure)
    +-- FatalConfigurationError     (missing startup configuration -- aborts start)

The ``status_code`` class attribute is read by the API error middleware so
the HTTP mapping lives next to the exception it describes.
"""


class StudyLensError(Exception):
    """Base exception for all studylens errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which external service triggered the
    error.  The ``__str__`` method prefixes the provider name in brackets
    for structured log output, e.g. ``[openai] Rate limit exceeded``.
    """

    status_code: int = 500

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Synchronous request errors
# ---------------------------------------------------------------------------

class ValidationError(StudyLensError):
    """Raised for malformed or missing input detected before work is scheduled."""

    status_code = 400

    def __init__(
        self,
        message: str = "Validation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class NotFoundError(StudyLensError):
    """Raised when an entity does not exist or is not owned by the caller."""

    status_code = 404

    def __init__(
        self,
        message: str = "Resource not found",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class InvalidTransitionError(StudyLensError):
    """Raised when a status change would violate the entity's state machine."""

    status_code = 409

    def __init__(
        self,
        message: str = "Illegal status transition",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Background processing errors
# ---------------------------------------------------------------------------

class ProcessingError(StudyLensError):
    """Raised when extraction or generation fails during background work.

    Callers record the message on the owning entity's status/metadata; it
    is never propagated to a request handler that has already responded.
    """

    def __init__(
        self,
        message: str = "Processing failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ExtractionError(ProcessingError):
    """Raised when a document's text cannot be extracted."""

    def __init__(
        self,
        message: str = "Content extraction failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class UnsupportedMediaTypeError(ExtractionError):
    """Raised for media types outside the extractor's allow-list."""

    status_code = 415

    def __init__(
        self,
        message: str = "Unsupported media type",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class LLMError(ProcessingError):
    """Raised when a generation provider call fails or returns nothing."""

    def __init__(
        self,
        message: str = "LLM API call failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class PredictionParseError(ProcessingError):
    """Raised when generated output is not valid JSON or fails schema validation.

    The prediction strategies catch this and switch to the deterministic
    fallback instead of returning a wrongly-shaped object.
    """

    def __init__(
        self,
        message: str = "Generated output did not match the expected schema",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Absorbed dependency errors
# ---------------------------------------------------------------------------

class DependencyUnavailableError(StudyLensError):
    """Raised when a non-authoritative dependency (cache, vector store) fails.

    Always logged and swallowed at the point of use; never flips a document
    or analysis into a failed state on its own.
    """

    status_code = 503

    def __init__(
        self,
        message: str = "External service is unavailable",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class RAGError(DependencyUnavailableError):
    """Raised when an embedding or vector-store operation fails."""

    def __init__(
        self,
        message: str = "RAG operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class CacheError(DependencyUnavailableError):
    """Raised when the cache backend cannot be reached."""

    def __init__(
        self,
        message: str = "Cache backend unavailable",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Startup errors
# ---------------------------------------------------------------------------

class FatalConfigurationError(StudyLensError):
    """Raised when required configuration is missing at startup.

    The only unrecoverable error: the process refuses to start.
    """

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
