"""Text extraction from uploaded study documents.

Turns raw upload bytes into normalised text plus derived metadata
(page count, word count, heading-like topics).  Supported media types:

* ``text/plain`` and ``text/markdown`` - decoded as UTF-8, invalid bytes replaced
* ``application/pdf`` - PyMuPDF, page by page
* DOCX - python-docx, paragraph by paragraph

Everything else is rejected with :class:`UnsupportedMediaTypeError` before
any parsing happens.

# ─── TOPIC HEURISTIC (Junior Developer Guide) ─────────────────────────
#
#   Topics are read from the RAW text, before whitespace is collapsed,
#   because the heuristic is line-based:
#
#     1. take the first 20 lines
#     2. keep lines longer than 10 characters (after strip) that contain
#        chapter / unit / topic / module / part (case-insensitive)
#     3. truncate each to 100 characters, drop duplicates, keep 10
#
#   "Chapter 1 introduces vectors." → topic "Chapter 1 introduces vectors."
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import io
from pathlib import PurePath

import docx
import fitz  # PyMuPDF -- the "fitz" import name is a PyMuPDF convention
import structlog
from pydantic import BaseModel, ConfigDict

from studylens.models.document import DocumentMetadata
from studylens.utils.errors import ExtractionError, UnsupportedMediaTypeError, ValidationError
from studylens.utils.text_normalizer import collapse_whitespace, count_words

logger = structlog.get_logger(logger_name=__name__)

MEDIA_PDF = "application/pdf"
MEDIA_TEXT = "text/plain"
MEDIA_MARKDOWN = "text/markdown"
MEDIA_DOCX = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

SUPPORTED_MEDIA_TYPES = frozenset({MEDIA_PDF, MEDIA_TEXT, MEDIA_MARKDOWN, MEDIA_DOCX})

_EXTENSION_MEDIA_TYPES: dict[str, str] = {
    ".pdf": MEDIA_PDF,
    ".txt": MEDIA_TEXT,
    ".md": MEDIA_MARKDOWN,
    ".markdown": MEDIA_MARKDOWN,
    ".docx": MEDIA_DOCX,
}

MAX_UPLOAD_BYTES = 10 * 1024 * 1024

_TOPIC_KEYWORDS = ("chapter", "unit", "topic", "module", "part")
_TOPIC_SCAN_LINES = 20
_TOPIC_MIN_CHARS = 10
_TOPIC_MAX_CHARS = 100
_MAX_TOPICS = 10


class ExtractionResult(BaseModel):
    """Normalised text and metadata for one document."""

    model_config = ConfigDict(frozen=True)

    text: str
    metadata: DocumentMetadata


def normalize_media_type(media_type: str | None) -> str:
    """Lower-case a media type and drop parameters such as ``charset``."""
    if not media_type:
        return ""
    return media_type.split(";", 1)[0].strip().lower()


def resolve_media_type(declared: str | None, filename: str | None = None) -> str:
    """Return the declared media type, or one inferred from the file extension.

    Browsers often send ``application/octet-stream`` for Markdown and DOCX
    files; the extension is used only when the declared type is not
    already supported.
    """
    media_type = normalize_media_type(declared)
    if media_type in SUPPORTED_MEDIA_TYPES or not filename:
        return media_type
    return _EXTENSION_MEDIA_TYPES.get(PurePath(filename).suffix.lower(), media_type)


def validate_upload(media_type: str, size: int, max_bytes: int = MAX_UPLOAD_BYTES) -> None:
    """Reject an upload before a record is created for it.

    Raises
    ------
    UnsupportedMediaTypeError
        If *media_type* is outside the allow-list.
    ValidationError
        If the upload is empty or larger than *max_bytes*.
    """
    if normalize_media_type(media_type) not in SUPPORTED_MEDIA_TYPES:
        raise UnsupportedMediaTypeError(message=f"Unsupported file type: {media_type}")
    if size <= 0:
        raise ValidationError(message="Uploaded file is empty")
    if size > max_bytes:
        raise ValidationError(
            message=f"File size exceeds {max_bytes // (1024 * 1024)}MB limit"
        )


def extract_topics(raw_text: str) -> list[str]:
    """Pick heading-like lines from the start of a document."""
    topics: list[str] = []
    for line in raw_text.splitlines()[:_TOPIC_SCAN_LINES]:
        stripped = line.strip()
        if len(stripped) <= _TOPIC_MIN_CHARS:
            continue
        lowered = stripped.lower()
        if not any(keyword in lowered for keyword in _TOPIC_KEYWORDS):
            continue
        topic = stripped[:_TOPIC_MAX_CHARS]
        if topic not in topics:
            topics.append(topic)
    return topics[:_MAX_TOPICS]


class ContentExtractor:
    """Extracts text and metadata from supported document formats.

    Parsing is CPU-bound and synchronous; async callers run
    :meth:`extract` in a worker thread.
    """

    def extract(self, data: bytes, media_type: str) -> ExtractionResult:
        """Extract normalised text and metadata from *data*.

        Raises
        ------
        UnsupportedMediaTypeError
            If *media_type* is not in the allow-list.
        ExtractionError
            If the parser fails or the document contains no text.
        """
        normalized = normalize_media_type(media_type)
        if normalized not in SUPPORTED_MEDIA_TYPES:
            raise UnsupportedMediaTypeError(message=f"Unsupported file type: {media_type}")

        if normalized == MEDIA_PDF:
            raw_text, page_count = self._extract_pdf(data)
        elif normalized == MEDIA_DOCX:
            raw_text, page_count = self._extract_docx(data), None
        else:
            raw_text, page_count = data.decode("utf-8", errors="replace"), None

        text = collapse_whitespace(raw_text)
        if not text:
            raise ExtractionError(message="Document contains no extractable text")

        metadata = DocumentMetadata(
            page_count=page_count,
            word_count=count_words(text),
            topics=extract_topics(raw_text),
        )
        logger.info(
            "content_extracted",
            media_type=normalized,
            pages=page_count,
            words=metadata.word_count,
            topics=len(metadata.topics),
        )
        return ExtractionResult(text=text, metadata=metadata)

    # ------------------------------------------------------------------
    # Format handlers
    # ------------------------------------------------------------------

    @staticmethod
    def _extract_pdf(data: bytes) -> tuple[str, int]:
        try:
            doc = fitz.open(stream=data, filetype="pdf")
        except Exception as exc:
            raise ExtractionError(message=f"PDF processing failed: {exc}") from exc

        try:
            page_count = doc.page_count
            pages = [doc[i].get_text("text") for i in range(page_count)]
        except Exception as exc:
            raise ExtractionError(message=f"PDF processing failed: {exc}") from exc
        finally:
            doc.close()
        return "\n".join(pages), page_count

    @staticmethod
    def _extract_docx(data: bytes) -> str:
        try:
            document = docx.Document(io.BytesIO(data))
        except Exception as exc:
            raise ExtractionError(message=f"DOCX processing failed: {exc}") from exc
        return "\n".join(para.text for para in document.paragraphs if para.text.strip())
