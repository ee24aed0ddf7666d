"""Deterministic statistics over retrieved study-material passages.

Used by the retrieval strategy to ground its prompt and by the fallback
path to produce questions without any generation provider:

* **topic frequency** - heading phrases ("Unit 3 Thermodynamics") counted
  across passages, near-duplicates folded with rapidfuzz
* **question types** - keyword classification of each passage
* **marks distribution** - ``N marks`` occurrences
"""

from __future__ import annotations

import re
from collections import Counter

from pydantic import BaseModel, ConfigDict, Field

from studylens.models.analysis import (
    GeneratedQuestion,
    ImportantTopic,
    QuestionType,
)
from studylens.models.rag import RetrievedChunk
from studylens.utils.text_normalizer import dedupe_topics, normalize_topic

_HEADING_RE = re.compile(
    r"\b(?:chapter|unit|topic|module|part)\b[^.?!\n]{3,90}",
    re.IGNORECASE,
)
_MARKS_RE = re.compile(r"(\d+)\s*marks?\b", re.IGNORECASE)
_MAX_TOPIC_CHARS = 100
_MAX_MARKS = 100

# Order matters: the first matching keyword group wins.
_TYPE_KEYWORDS: list[tuple[QuestionType, tuple[str, ...]]] = [
    ("definition", ("define", "definition")),
    ("derivation", ("derive", "derivation", "prove")),
    ("problem", ("calculate", "solve", "compute", "find the value")),
]


class RetrievalStatistics(BaseModel):
    """Heuristic statistics derived from retrieved passages."""

    model_config = ConfigDict(frozen=True)

    vector_available: bool = False
    topic_counts: list[tuple[str, int]] = Field(default_factory=list)
    question_types: dict[str, int] = Field(default_factory=dict)
    marks_distribution: dict[int, int] = Field(default_factory=dict)
    exemplars: list[str] = Field(default_factory=list)

    @property
    def has_exemplars(self) -> bool:
        return bool(self.exemplars)


def classify_question_type(text: str) -> QuestionType:
    """Map a passage or question to one of the four question types.

    Explanatory wording ("explain", "describe") and anything unmatched
    counts as ``application``.
    """
    lowered = text.lower()
    for question_type, keywords in _TYPE_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return question_type
    return "application"


def extract_heading_topics(text: str) -> list[str]:
    return [match.group(0).strip()[:_MAX_TOPIC_CHARS] for match in _HEADING_RE.finditer(text)]


def topic_frequency(chunks: list[RetrievedChunk]) -> list[tuple[str, int]]:
    """Count heading phrases across passages, most frequent first."""
    counts: Counter[str] = Counter()
    spellings: dict[str, str] = {}
    for chunk in chunks:
        for topic in extract_heading_topics(chunk.text):
            key = normalize_topic(topic)
            if len(key) <= 10:
                continue
            spellings.setdefault(key, topic)
            counts[key] += 1

    ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    keep = set(dedupe_topics([spellings[key] for key, _ in ranked]))
    return [(spellings[key], count) for key, count in ranked if spellings[key] in keep]


def question_type_distribution(chunks: list[RetrievedChunk]) -> dict[str, int]:
    return dict(Counter(classify_question_type(chunk.text) for chunk in chunks))


def marks_distribution(chunks: list[RetrievedChunk]) -> dict[int, int]:
    counts: Counter[int] = Counter()
    for chunk in chunks:
        for match in _MARKS_RE.finditer(chunk.text):
            marks = int(match.group(1))
            if 0 < marks <= _MAX_MARKS:
                counts[marks] += 1
    return dict(sorted(counts.items()))


def build_statistics(
    topic_chunks: list[RetrievedChunk],
    pattern_chunks: list[RetrievedChunk],
    vector_available: bool,
    max_exemplars: int = 5,
    exemplar_chars: int = 500,
) -> RetrievalStatistics:
    """Combine topic-indicative and pattern-indicative results into statistics."""
    everything = topic_chunks + pattern_chunks
    return RetrievalStatistics(
        vector_available=vector_available,
        topic_counts=topic_frequency(everything),
        question_types=question_type_distribution(pattern_chunks or topic_chunks),
        marks_distribution=marks_distribution(pattern_chunks or topic_chunks),
        exemplars=[chunk.text[:exemplar_chars] for chunk in everything[:max_exemplars]],
    )


# ---------------------------------------------------------------------------
# Topic ranking and the deterministic fallback
# ---------------------------------------------------------------------------

def _priority_for_rank(rank: int) -> str:
    if rank < 2:
        return "high"
    if rank < 5:
        return "medium"
    return "low"


def rank_topics(topic_counts: list[tuple[str, int]], limit: int = 8) -> list[ImportantTopic]:
    """Turn ``(topic, count)`` pairs into scored :class:`ImportantTopic` entries.

    ``frequency`` is relative to the most frequent topic, ``weightage`` is
    the topic's share of all counted occurrences.
    """
    selected = topic_counts[:limit]
    if not selected:
        return []
    top = max(count for _, count in selected) or 1
    total = sum(count for _, count in selected) or 1
    return [
        ImportantTopic(
            topic=topic,
            frequency=round(100 * count / top, 1),
            weightage=round(100 * count / total, 1),
            priority=_priority_for_rank(rank),
            confidence=round(min(1.0, 0.4 + 0.1 * count), 2),
            trend="stable",
        )
        for rank, (topic, count) in enumerate(selected)
    ]


def fallback_questions(topics: list[str], count: int = 5) -> list[GeneratedQuestion]:
    """Template questions for the top *count* topics."""
    return [
        GeneratedQuestion(
            question=f"Explain {topic} with suitable examples.",
            type="application",
            marks=5,
            difficulty="medium",
            estimated_time=10,
            topic=topic,
        )
        for topic in topics[:count]
    ]
