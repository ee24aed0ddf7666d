"""Prediction engine contracts.

:class:`PredictionPayload` is the schema generated JSON must satisfy; the
response parser validates against it and raises ``PredictionParseError``
on any mismatch.  :class:`PredictionResult` is what the engine hands back
to the orchestrator, whichever strategy produced it.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from studylens.models.analysis import AnalysisSummary, GeneratedQuestion, ImportantTopic


class PredictionStrategy(str, Enum):  # noqa: UP042 - StrEnum requires Python 3.11+
    """Which path produced a prediction."""

    DIRECT = "direct"          # Strategy A: one prompt over the assembled context
    RETRIEVAL = "retrieval"    # Strategy B: vector exemplars + heuristic statistics
    FALLBACK = "fallback"      # deterministic template questions
    CACHED = "cached"          # served from the analysis cache


class PredictionPayload(BaseModel):
    """Shape of the JSON object a generation provider must return."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    important_topics: list[ImportantTopic] = Field(
        default_factory=list,
        validation_alias=AliasChoices("important_topics", "importantTopics"),
    )
    generated_questions: list[GeneratedQuestion] = Field(
        min_length=1,
        validation_alias=AliasChoices(
            "generated_questions", "generatedQuestions", "predictions", "questions"
        ),
    )
    summary: AnalysisSummary | None = None


class PredictionResult(BaseModel):
    """Outcome of one prediction run."""

    model_config = ConfigDict(frozen=True)

    important_topics: list[ImportantTopic] = Field(default_factory=list)
    generated_questions: list[GeneratedQuestion] = Field(default_factory=list)
    summary: AnalysisSummary | None = None
    strategy: PredictionStrategy
    vector_available: bool = False
    tokens_used: int = Field(default=0, ge=0)
    model: str | None = None


class QuickPrediction(BaseModel):
    """Synchronous single-topic prediction returned by the quick-predict endpoint."""

    model_config = ConfigDict(frozen=True)

    subject_id: str
    topic: str
    important_topics: list[ImportantTopic] = Field(default_factory=list)
    generated_questions: list[GeneratedQuestion] = Field(default_factory=list)
    strategy: PredictionStrategy
    vector_available: bool = False
    cache_hit: bool = False
    generated_at: datetime = Field(
        default_factory=lambda: datetime.now(tz=timezone.utc)  # noqa: UP017
    )
