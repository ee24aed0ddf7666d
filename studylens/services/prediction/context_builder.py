"""Bounded prompt context for a subject analysis.

Sections are added in a fixed order (subject header, syllabus, notes,
previous-year papers, textbooks) and each document is truncated to its
type's budget before being appended, so one long upload cannot crowd the
others out.  The whole context is finally capped at ``total_chars``.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from studylens.models.document import Document, DocumentType, Subject
from studylens.utils.text_normalizer import truncate

DEFAULT_BUDGETS: dict[str, int] = {
    "syllabus_chars": 2000,
    "note_chars": 1000,
    "pyq_chars": 1500,
    "total_chars": 12000,
}

_SECTION_ORDER: list[tuple[DocumentType, str, str]] = [
    (DocumentType.SYLLABUS, "SYLLABUS", "syllabus_chars"),
    (DocumentType.NOTES, "STUDY NOTES", "note_chars"),
    (DocumentType.PYQ, "PREVIOUS YEAR QUESTIONS", "pyq_chars"),
    (DocumentType.TEXTBOOK, "TEXTBOOK EXCERPTS", "note_chars"),
]


class PredictionContext(BaseModel):
    """Everything a prediction strategy needs to know about one subject."""

    model_config = ConfigDict(frozen=True)

    subject_id: str
    subject_name: str
    subject_description: str = ""
    text: str = ""
    document_topics: list[str] = Field(default_factory=list)
    document_count: int = 0


def build_context(
    subject: Subject,
    documents: list[Document],
    budgets: dict[str, int] | None = None,
) -> PredictionContext:
    """Assemble the bounded textual context for *subject* from *documents*."""
    limits = {**DEFAULT_BUDGETS, **(budgets or {})}

    parts = [f"Subject: {subject.name}"]
    if subject.description:
        parts.append(f"Description: {subject.description}")

    for document_type, heading, budget_key in _SECTION_ORDER:
        members = [d for d in documents if d.document_type == document_type and d.content]
        if not members:
            continue
        parts.append(f"\n{heading}:")
        for index, document in enumerate(members, start=1):
            excerpt = truncate(document.content, limits[budget_key])
            if len(members) > 1:
                parts.append(f"[{index}] {document.original_name}\n{excerpt}")
            else:
                parts.append(excerpt)

    topics: list[str] = []
    for document in documents:
        for topic in document.metadata.topics if document.metadata else []:
            if topic not in topics:
                topics.append(topic)

    return PredictionContext(
        subject_id=subject.id,
        subject_name=subject.name,
        subject_description=subject.description,
        text=truncate("\n".join(parts), limits["total_chars"]),
        document_topics=topics,
        document_count=len(documents),
    )
