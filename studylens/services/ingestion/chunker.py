"""Character-window chunking for completed documents.

Extracted content is whitespace-collapsed, so there are no paragraph
boundaries left to respect.  Windows of ``chunk_size`` characters are cut
at the last sentence end (or, failing that, the last space) inside the
window, and consecutive windows overlap by ``overlap`` characters so a
definition straddling a boundary is retrievable from at least one chunk.

Chunk ids are ``{document_id}:{index}``, so re-indexing a document
overwrites its previous vectors instead of duplicating them.
"""

from __future__ import annotations

import structlog

from studylens.models.document import Document
from studylens.models.rag import DocumentChunk

logger = structlog.get_logger(logger_name=__name__)

_SENTENCE_ENDS = (". ", "? ", "! ")


class TextChunker:
    """Splits document text into overlapping character windows.

    Parameters
    ----------
    chunk_size:
        Maximum characters per chunk.
    overlap:
        Characters shared between consecutive chunks.
    """

    def __init__(self, chunk_size: int = 1500, overlap: int = 200) -> None:
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        if not 0 <= overlap < chunk_size:
            raise ValueError("overlap must be in [0, chunk_size)")
        self._chunk_size = chunk_size
        self._overlap = overlap

    def split(self, text: str) -> list[str]:
        """Split *text* into window strings; empty input gives ``[]``."""
        text = text.strip()
        if not text:
            return []

        windows: list[str] = []
        start = 0
        length = len(text)
        while start < length:
            end = min(start + self._chunk_size, length)
            if end < length:
                end = self._find_break(text, start, end)
            window = text[start:end].strip()
            if window:
                windows.append(window)
            if end >= length:
                break
            start = max(end - self._overlap, start + 1)
        return windows

    def chunk_document(self, document: Document) -> list[DocumentChunk]:
        """Build :class:`DocumentChunk` objects for a completed document."""
        chunks = [
            DocumentChunk(
                chunk_id=f"{document.id}:{index}",
                text=window,
                document_id=document.id,
                subject_id=document.subject_id,
                document_type=document.document_type.value,
                original_name=document.original_name,
                uploaded_at=document.uploaded_at.isoformat(),
                chunk_index=index,
            )
            for index, window in enumerate(self.split(document.content))
        ]
        logger.debug("chunking_complete", document_id=document.id, num_chunks=len(chunks))
        return chunks

    def _find_break(self, text: str, start: int, end: int) -> int:
        # Only accept a break in the second half of the window.
        floor = start + self._chunk_size // 2
        best = max(text.rfind(mark, floor, end) for mark in _SENTENCE_ENDS)
        if best != -1:
            return best + 1
        space = text.rfind(" ", floor, end)
        return space if space != -1 else end
