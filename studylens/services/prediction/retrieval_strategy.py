"""Strategy B: retrieval-augmented prediction.

Queries the vector index for two kinds of exemplars scoped to the subject:

1. topic-indicative passages - ``"important topics concepts frequently
   asked questions"`` across every document type
2. pattern-indicative passages - ``"question pattern marks distribution
   important topics"`` restricted to previous-year papers

Heuristic statistics over those passages (see ``heuristics.py``) are then
embedded in a second prompt.  When the index is unreachable the statistics
come back empty with ``vector_available=False``; the strategy never raises
for index problems.
"""

from __future__ import annotations

import asyncio

from studylens.interfaces.llm_provider import ILLMProvider
from studylens.interfaces.vector_store_provider import IVectorStoreProvider
from studylens.models.analysis import AnalysisOptions
from studylens.models.document import DocumentType
from studylens.models.prediction import PredictionResult, PredictionStrategy
from studylens.models.rag import RetrievedChunk
from studylens.services.prediction.heuristics import (
    RetrievalStatistics,
    build_statistics,
    rank_topics,
)
from studylens.services.prediction.prompts import SYSTEM_PROMPT, build_retrieval_prompt
from studylens.services.prediction.response_parser import parse_prediction
from studylens.utils.concurrency import throttled_gather
from studylens.utils.errors import LLMError
from studylens.utils.logging import get_logger
from studylens.utils.text_normalizer import estimate_tokens

TOPIC_QUERY = "important topics concepts frequently asked questions"
PATTERN_QUERY = "question pattern marks distribution important topics"


class RetrievalPredictionStrategy:
    """Vector exemplars plus heuristic statistics, then generation."""

    def __init__(
        self,
        vector_store: IVectorStoreProvider | None,
        llm: ILLMProvider | None,
        top_k: int = 10,
        max_topics: int = 8,
        temperature: float = 0.3,
        max_tokens: int = 2048,
    ) -> None:
        self._vector_store = vector_store
        self._llm = llm
        self._top_k = top_k
        self._max_topics = max_topics
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._semaphore = asyncio.Semaphore(2)
        self._logger = get_logger(__name__)

    async def gather_statistics(
        self, subject_id: str, focus_topic: str | None = None
    ) -> RetrievalStatistics:
        """Run both exemplar queries and summarise them; never raises."""
        if self._vector_store is None or not await self._vector_store.initialize():
            self._logger.info("retrieval_skipped_vector_unavailable", subject_id=subject_id)
            return RetrievalStatistics(vector_available=False)

        topic_query = f"{focus_topic} {TOPIC_QUERY}" if focus_topic else TOPIC_QUERY
        results = await throttled_gather(
            [
                self._vector_store.query(topic_query, subject_id=subject_id, top_k=self._top_k),
                self._vector_store.query(
                    PATTERN_QUERY,
                    subject_id=subject_id,
                    top_k=self._top_k,
                    document_type=DocumentType.PYQ.value,
                ),
            ],
            semaphore=self._semaphore,
        )
        topic_chunks, pattern_chunks = (self._as_chunks(r) for r in results)
        # The store drops its handles when a query fails after a good initialize().
        vector_available = self._vector_store.is_available() and not all(
            isinstance(r, BaseException) for r in results
        )
        statistics = build_statistics(
            topic_chunks, pattern_chunks, vector_available=vector_available
        )
        self._logger.info(
            "retrieval_statistics",
            subject_id=subject_id,
            topic_chunks=len(topic_chunks),
            pattern_chunks=len(pattern_chunks),
            topics=len(statistics.topic_counts),
        )
        return statistics

    async def predict(
        self,
        subject_id: str,
        subject_name: str,
        options: AnalysisOptions,
        statistics: RetrievalStatistics | None = None,
        focus_topic: str | None = None,
    ) -> PredictionResult:
        """Generate a ranked prediction from retrieval statistics.

        Raises ``LLMError`` / ``PredictionParseError`` like the direct
        strategy; with no generation provider it raises ``LLMError``.
        """
        if self._llm is None:
            raise LLMError(message="No generation provider configured")

        if statistics is None:
            statistics = await self.gather_statistics(subject_id, focus_topic)

        prompt = build_retrieval_prompt(subject_name, statistics, options, focus_topic)
        response = await self._llm.complete(
            system_prompt=SYSTEM_PROMPT,
            user_prompt=prompt,
            temperature=self._temperature,
            max_tokens=self._max_tokens,
        )
        payload = parse_prediction(response, provider_name=self._llm.get_provider_name())

        topics = payload.important_topics or rank_topics(statistics.topic_counts, self._max_topics)
        return PredictionResult(
            important_topics=topics,
            generated_questions=payload.generated_questions[: options.question_count],
            summary=payload.summary if options.include_summary else None,
            strategy=(
                PredictionStrategy.RETRIEVAL if statistics.has_exemplars else PredictionStrategy.DIRECT
            ),
            vector_available=statistics.vector_available,
            tokens_used=estimate_tokens(SYSTEM_PROMPT + prompt + response),
            model=self._llm.model_name,
        )

    def _as_chunks(self, result: list[RetrievedChunk] | BaseException) -> list[RetrievedChunk]:
        if isinstance(result, BaseException):
            self._logger.warning("retrieval_query_failed", error=str(result))
            return []
        return result
