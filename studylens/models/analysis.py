"""Analysis models: predicted topics, generated questions and summaries.

An :class:`Analysis` is created in ``processing`` state by
``AnalysisOrchestrator.request_analysis`` and receives exactly one terminal
write from the background continuation.  Its payload fields
(``important_topics``, ``generated_questions``, ``summary``) are filled from
a :class:`~studylens.models.prediction.PredictionResult`.

The payload sub-models accept both snake_case and camelCase keys
(``estimated_time`` / ``estimatedTime``) because generation providers do not
reliably honour one convention.  They always serialise as snake_case.
"""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from typing import Any, Literal

from pydantic import AliasGenerator, BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from studylens.models.status import AnalysisStatus
from studylens.utils.text_normalizer import stable_hash

QuestionType = Literal["definition", "application", "derivation", "problem"]
Difficulty = Literal["easy", "medium", "hard"]
Priority = Literal["high", "medium", "low"]
Trend = Literal["increasing", "decreasing", "stable"]

# Analyses are garbage-collected this long after creation.
RETENTION_WINDOW = timedelta(days=7)

_PAYLOAD_CONFIG = ConfigDict(
    frozen=True,
    alias_generator=AliasGenerator(validation_alias=to_camel),
    populate_by_name=True,
)


class ImportantTopic(BaseModel):
    """One ranked topic with its predicted exam weight."""

    model_config = _PAYLOAD_CONFIG

    topic: str = Field(min_length=1)
    frequency: float = Field(ge=0, le=100)
    weightage: float = Field(ge=0, le=100)
    priority: Priority
    confidence: float = Field(ge=0, le=1)
    trend: Trend = "stable"


class GeneratedQuestion(BaseModel):
    """A predicted exam question."""

    model_config = _PAYLOAD_CONFIG

    question: str = Field(min_length=1)
    type: QuestionType
    marks: int = Field(ge=1)
    difficulty: Difficulty
    estimated_time: int = Field(ge=1, description="Minutes to answer.")
    topic: str = ""


class AnalysisSummary(BaseModel):
    """Structured study summary for a subject."""

    model_config = _PAYLOAD_CONFIG

    overview: str = ""
    key_concepts: list[str] = Field(default_factory=list)
    study_recommendations: list[str] = Field(default_factory=list)
    estimated_preparation_time: str = ""


class AnalysisMetadata(BaseModel):
    """Run bookkeeping written alongside the terminal status."""

    model_config = ConfigDict(frozen=True)

    processing_time_ms: int = Field(default=0, ge=0)
    tokens_used: int = Field(default=0, ge=0)
    cache_hit: bool = False
    strategy: str | None = None
    model: str | None = None
    total_documents: int = Field(default=0, ge=0)
    vector_available: bool = False
    error: str | None = None


class AnalysisOptions(BaseModel):
    """Caller-tunable knobs; part of the analysis cache key."""

    model_config = ConfigDict(frozen=True)

    question_count: int = Field(default=10, ge=1, le=30)
    focus_topics: list[str] = Field(default_factory=list)
    difficulty: Difficulty | None = None
    include_summary: bool = True

    def options_hash(self) -> str:
        """Deterministic digest of the option set.

        Keys are sorted and focus topics are order-insensitive, so two
        requests with the same options always map to the same cache entry.
        """
        payload = self.model_dump()
        payload["focus_topics"] = sorted(t.strip().lower() for t in self.focus_topics)
        return stable_hash(json.dumps(payload, sort_keys=True))


class Analysis(BaseModel):
    """A subject analysis and its lifecycle state."""

    model_config = ConfigDict(frozen=True)

    id: str
    owner_id: str
    subject_id: str
    document_ids: list[str] = Field(default_factory=list)
    status: AnalysisStatus = AnalysisStatus.PROCESSING
    options: AnalysisOptions = Field(default_factory=AnalysisOptions)
    important_topics: list[ImportantTopic] = Field(default_factory=list)
    generated_questions: list[GeneratedQuestion] = Field(default_factory=list)
    summary: AnalysisSummary | None = None
    metadata: AnalysisMetadata = Field(default_factory=AnalysisMetadata)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(tz=timezone.utc)  # noqa: UP017
    )
    expires_at: datetime | None = None
    completed_at: datetime | None = None

    @model_validator(mode="before")
    @classmethod
    def _default_expiry(cls, data: Any) -> Any:
        """Derive ``expires_at`` from ``created_at`` when not supplied."""
        if isinstance(data, dict) and data.get("expires_at") is None:
            data = dict(data)
            created = data.get("created_at") or datetime.now(tz=timezone.utc)  # noqa: UP017
            if isinstance(created, str):
                created = datetime.fromisoformat(created)
            data["created_at"] = created
            data["expires_at"] = created + RETENTION_WINDOW
        return data
