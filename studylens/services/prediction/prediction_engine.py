"""Prediction engine: strategy selection with a deterministic floor.

# ─── STRATEGY ORDER (Junior Developer Guide) ──────────────────────────
#
#   full analysis                          quick predict (one topic)
#   ─────────────                          ─────────────────────────
#   gather retrieval statistics            gather statistics for topic
#   Strategy A  direct context ──fail─┐    Strategy B ──fail──┐
#   Strategy B  (if exemplars) ─fail─┤                        │
#   Fallback  ←──────────────────────┘    Fallback ←─────────┘
#
#   "fail" means LLMError or PredictionParseError.  The fallback needs no
#   generation provider and no vector index, so a prediction is always
#   produced: completed analyses always carry at least one question.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from typing import Any

from studylens.interfaces.llm_provider import ILLMProvider
from studylens.interfaces.vector_store_provider import IVectorStoreProvider
from studylens.models.analysis import AnalysisOptions, AnalysisSummary
from studylens.models.prediction import PredictionResult, PredictionStrategy
from studylens.services.prediction.context_builder import PredictionContext
from studylens.services.prediction.direct_strategy import DirectPredictionStrategy
from studylens.services.prediction.heuristics import (
    RetrievalStatistics,
    fallback_questions,
    rank_topics,
)
from studylens.services.prediction.retrieval_strategy import RetrievalPredictionStrategy
from studylens.utils.errors import LLMError, PredictionParseError
from studylens.utils.logging import get_logger
from studylens.utils.text_normalizer import estimate_tokens

DEFAULT_PREDICTION_CONFIG: dict[str, Any] = {
    "fallback_question_count": 5,
    "retrieval_k": 10,
    "max_topics": 8,
    "temperature": 0.3,
    "max_tokens": 2048,
}


class PredictionEngine:
    """Produces topics, questions and a summary for a subject.

    Parameters
    ----------
    llm:
        Generation provider.  ``None`` means every prediction uses the
        deterministic fallback.
    vector_store:
        Vector index for Strategy B.  ``None`` or unreachable means
        ``vector_available=False`` on every result.
    config:
        The ``prediction`` section of ``config/config.yaml``.
    """

    def __init__(
        self,
        llm: ILLMProvider | None,
        vector_store: IVectorStoreProvider | None,
        config: dict[str, Any] | None = None,
    ) -> None:
        cfg = {**DEFAULT_PREDICTION_CONFIG, **(config or {})}
        self._llm = llm
        self._fallback_count = int(cfg["fallback_question_count"])
        self._max_topics = int(cfg["max_topics"])
        self._direct = (
            DirectPredictionStrategy(
                llm, temperature=cfg["temperature"], max_tokens=cfg["max_tokens"]
            )
            if llm is not None
            else None
        )
        self._retrieval = RetrievalPredictionStrategy(
            vector_store,
            llm,
            top_k=int(cfg["retrieval_k"]),
            max_topics=self._max_topics,
            temperature=cfg["temperature"],
            max_tokens=cfg["max_tokens"],
        )
        self._logger = get_logger(__name__)

    async def predict(
        self, context: PredictionContext, options: AnalysisOptions
    ) -> PredictionResult:
        """Full subject prediction: A, then B, then the fallback."""
        statistics = await self._retrieval.gather_statistics(context.subject_id)

        if self._direct is not None:
            try:
                result = await self._direct.predict(context, options)
                return result.model_copy(
                    update={
                        "vector_available": statistics.vector_available,
                        "important_topics": result.important_topics
                        or rank_topics(statistics.topic_counts, self._max_topics),
                    }
                )
            except (LLMError, PredictionParseError) as exc:
                self._logger.warning(
                    "direct_prediction_failed",
                    subject_id=context.subject_id,
                    error_type=type(exc).__name__,
                    error=str(exc),
                )

            if statistics.has_exemplars:
                try:
                    return await self._retrieval.predict(
                        context.subject_id, context.subject_name, options, statistics
                    )
                except (LLMError, PredictionParseError) as exc:
                    self._logger.warning(
                        "retrieval_prediction_failed",
                        subject_id=context.subject_id,
                        error_type=type(exc).__name__,
                        error=str(exc),
                    )

        return self.fallback(
            subject_name=context.subject_name,
            statistics=statistics,
            document_topics=context.document_topics,
            options=options,
            source_text=context.text,
        )

    async def quick_predict(
        self,
        subject_id: str,
        subject_name: str,
        topic: str,
        document_topics: list[str] | None = None,
        options: AnalysisOptions | None = None,
    ) -> PredictionResult:
        """Predict questions for a single topic: B, then the fallback."""
        options = options or AnalysisOptions(question_count=self._fallback_count)
        if topic not in options.focus_topics:
            options = options.model_copy(update={"focus_topics": [topic, *options.focus_topics]})
        statistics = await self._retrieval.gather_statistics(subject_id, focus_topic=topic)

        if self._llm is not None:
            try:
                return await self._retrieval.predict(
                    subject_id, subject_name, options, statistics, focus_topic=topic
                )
            except (LLMError, PredictionParseError) as exc:
                self._logger.warning(
                    "quick_prediction_failed",
                    subject_id=subject_id,
                    error_type=type(exc).__name__,
                    error=str(exc),
                )

        return self.fallback(
            subject_name=subject_name,
            statistics=statistics,
            document_topics=document_topics or [],
            options=options,
            source_text=topic,
        )

    def fallback(
        self,
        subject_name: str,
        statistics: RetrievalStatistics,
        document_topics: list[str],
        options: AnalysisOptions,
        source_text: str = "",
    ) -> PredictionResult:
        """Deterministic prediction from whatever topics are known.

        Topic sources, first non-empty wins: retrieval statistics, document
        metadata topics, the subject name.
        """
        if statistics.topic_counts:
            topic_counts = statistics.topic_counts
        else:
            names = list(dict.fromkeys(document_topics)) or [subject_name]
            topic_counts = [(name, len(names) - i) for i, name in enumerate(names)]

        # Caller-supplied focus topics lead the list.
        if options.focus_topics:
            focus = [(t, topic_counts[0][1] + 1) for t in dict.fromkeys(options.focus_topics)]
            topic_counts = focus + [tc for tc in topic_counts if tc[0] not in options.focus_topics]

        topics = rank_topics(topic_counts, self._max_topics)
        count = min(self._fallback_count, options.question_count)
        questions = fallback_questions([t.topic for t in topics], count)

        summary = None
        if options.include_summary:
            summary = AnalysisSummary(
                overview=(
                    f"Study plan for {subject_name} built from the most frequent "
                    f"topics in the uploaded material."
                ),
                key_concepts=[t.topic for t in topics[:5]],
                study_recommendations=[
                    "Revise the high-priority topics first.",
                    "Practise answering each predicted question within its time estimate.",
                ],
                estimated_preparation_time=f"{max(2, 2 * len(questions))} hours",
            )

        self._logger.info(
            "fallback_prediction",
            subject=subject_name,
            topics=len(topics),
            questions=len(questions),
            vector_available=statistics.vector_available,
        )
        return PredictionResult(
            important_topics=topics,
            generated_questions=questions,
            summary=summary,
            strategy=PredictionStrategy.FALLBACK,
            vector_available=statistics.vector_available,
            tokens_used=estimate_tokens(source_text),
            model=None,
        )
