"""Unit tests for PredictionEngine strategy selection and the fallback floor."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from studylens.models.analysis import AnalysisOptions
from studylens.models.prediction import PredictionStrategy
from studylens.models.rag import RetrievedChunk
from studylens.providers.embedding.fallback_embedding_provider import FallbackEmbeddingProvider
from studylens.providers.vector_store.chromadb_provider import ChromaDBProvider
from studylens.services.prediction.context_builder import PredictionContext
from studylens.services.prediction.heuristics import RetrievalStatistics
from studylens.services.prediction.prediction_engine import PredictionEngine
from studylens.utils.errors import LLMError
from tests.conftest import VALID_PREDICTION


@pytest.fixture
def context() -> PredictionContext:
    return PredictionContext(
        subject_id="subj-1",
        subject_name="Physics",
        text="Subject: Physics\nSTUDY NOTES:\nChapter 1 Thermodynamics",
        document_topics=["Chapter 1 Thermodynamics", "Chapter 2 Optics"],
        document_count=2,
    )


class TestPredict:
    @pytest.mark.asyncio
    async def test_direct_success(
        self, mock_llm: MagicMock, mock_vector_store: MagicMock, context: PredictionContext
    ) -> None:
        engine = PredictionEngine(mock_llm, mock_vector_store)

        result = await engine.predict(context, AnalysisOptions())

        assert result.strategy == PredictionStrategy.DIRECT
        assert result.vector_available is True
        assert [t.topic for t in result.important_topics] == ["Thermodynamics", "Kinematics"]
        assert len(result.generated_questions) == 2
        assert result.model == "mock-model"
        assert result.tokens_used > 0
        assert mock_llm.complete.await_count == 1

    @pytest.mark.asyncio
    async def test_question_count_respected(
        self, mock_llm: MagicMock, mock_vector_store: MagicMock, context: PredictionContext
    ) -> None:
        engine = PredictionEngine(mock_llm, mock_vector_store)
        result = await engine.predict(context, AnalysisOptions(question_count=1))
        assert len(result.generated_questions) == 1

    @pytest.mark.asyncio
    async def test_summary_dropped_when_not_requested(
        self, mock_llm: MagicMock, mock_vector_store: MagicMock, context: PredictionContext
    ) -> None:
        engine = PredictionEngine(mock_llm, mock_vector_store)
        result = await engine.predict(context, AnalysisOptions(include_summary=False))
        assert result.summary is None

    @pytest.mark.asyncio
    async def test_parse_failure_moves_to_retrieval(
        self,
        mock_llm: MagicMock,
        mock_vector_store: MagicMock,
        pyq_chunks: list[RetrievedChunk],
        context: PredictionContext,
    ) -> None:
        mock_llm.complete = AsyncMock(
            side_effect=["this is not json", json.dumps(VALID_PREDICTION)]
        )
        mock_vector_store.query = AsyncMock(return_value=pyq_chunks)
        engine = PredictionEngine(mock_llm, mock_vector_store)

        result = await engine.predict(context, AnalysisOptions())

        assert result.strategy == PredictionStrategy.RETRIEVAL
        assert mock_llm.complete.await_count == 2
        retrieval_prompt = mock_llm.complete.await_args_list[1].kwargs["user_prompt"]
        assert "Unit 3 Thermodynamics (seen 4x)" in retrieval_prompt

    @pytest.mark.asyncio
    async def test_without_exemplars_falls_back(
        self, mock_llm: MagicMock, mock_vector_store: MagicMock, context: PredictionContext
    ) -> None:
        mock_llm.complete = AsyncMock(side_effect=LLMError("rate limited", provider_name="mock"))
        engine = PredictionEngine(mock_llm, mock_vector_store)

        result = await engine.predict(context, AnalysisOptions())

        assert result.strategy == PredictionStrategy.FALLBACK
        assert mock_llm.complete.await_count == 1
        assert [q.topic for q in result.generated_questions] == [
            "Chapter 1 Thermodynamics",
            "Chapter 2 Optics",
        ]
        assert result.model is None

    @pytest.mark.asyncio
    async def test_no_llm_uses_fallback(
        self, unavailable_vector_store: MagicMock, context: PredictionContext
    ) -> None:
        engine = PredictionEngine(None, unavailable_vector_store)

        result = await engine.predict(context, AnalysisOptions())

        assert result.strategy == PredictionStrategy.FALLBACK
        assert result.vector_available is False
        assert result.generated_questions
        assert result.summary is not None

    @pytest.mark.asyncio
    async def test_vector_query_errors_absorbed(
        self, mock_llm: MagicMock, mock_vector_store: MagicMock, context: PredictionContext
    ) -> None:
        mock_vector_store.query = AsyncMock(side_effect=RuntimeError("chroma down"))
        engine = PredictionEngine(mock_llm, mock_vector_store)

        result = await engine.predict(context, AnalysisOptions())

        assert result.strategy == PredictionStrategy.DIRECT
        assert result.vector_available is False


class TestQuickPredict:
    @pytest.mark.asyncio
    async def test_vector_unreachable_still_predicts(
        self, mock_llm: MagicMock, unavailable_vector_store: MagicMock
    ) -> None:
        mock_llm.complete = AsyncMock(return_value="no json here")
        engine = PredictionEngine(mock_llm, unavailable_vector_store)

        result = await engine.quick_predict("subj-1", "Physics", "Optics")

        assert result.strategy == PredictionStrategy.FALLBACK
        assert result.vector_available is False
        assert result.generated_questions
        assert result.generated_questions[0].topic == "Optics"

    @pytest.mark.asyncio
    async def test_index_lost_after_startup(self) -> None:
        collection = MagicMock()
        collection.count.return_value = 0
        client = MagicMock()
        client.get_or_create_collection.return_value = collection
        store = ChromaDBProvider(
            FallbackEmbeddingProvider(None), client_factory=lambda: client
        )
        assert await store.initialize() is True

        client.heartbeat.side_effect = ConnectionError("refused")
        collection.count.side_effect = ConnectionError("refused")
        collection.query.side_effect = ConnectionError("refused")
        engine = PredictionEngine(None, store)

        result = await engine.quick_predict("subj-1", "Physics", "Optics")

        assert result.strategy == PredictionStrategy.FALLBACK
        assert result.vector_available is False
        assert result.generated_questions
        assert store.is_available() is False

    @pytest.mark.asyncio
    async def test_focus_topic_in_retrieval_query(
        self, mock_llm: MagicMock, mock_vector_store: MagicMock
    ) -> None:
        engine = PredictionEngine(mock_llm, mock_vector_store)

        result = await engine.quick_predict("subj-1", "Physics", "Optics")

        queries = [call.args[0] for call in mock_vector_store.query.await_args_list]
        assert any(q.startswith("Optics ") for q in queries)
        assert result.generated_questions

    @pytest.mark.asyncio
    async def test_no_llm(self, mock_vector_store: MagicMock) -> None:
        engine = PredictionEngine(None, mock_vector_store)
        result = await engine.quick_predict(
            "subj-1", "Physics", "Waves", document_topics=["Unit 4 Waves and sound"]
        )
        assert result.strategy == PredictionStrategy.FALLBACK
        assert len(result.generated_questions) <= 5


class TestFallback:
    def test_topic_sources(self) -> None:
        engine = PredictionEngine(None, None)
        options = AnalysisOptions()

        from_stats = engine.fallback(
            "Physics",
            RetrievalStatistics(topic_counts=[("Unit 3 Heat", 3)]),
            ["Unit 1 Sets"],
            options,
        )
        from_docs = engine.fallback("Physics", RetrievalStatistics(), ["Unit 1 Sets"], options)
        from_name = engine.fallback("Physics", RetrievalStatistics(), [], options)

        assert from_stats.important_topics[0].topic == "Unit 3 Heat"
        assert from_docs.important_topics[0].topic == "Unit 1 Sets"
        assert from_name.important_topics[0].topic == "Physics"

    def test_focus_topics_lead(self) -> None:
        engine = PredictionEngine(None, None)
        result = engine.fallback(
            "Physics",
            RetrievalStatistics(topic_counts=[("Unit 3 Heat", 3)]),
            [],
            AnalysisOptions(focus_topics=["Optics"]),
        )
        assert [t.topic for t in result.important_topics] == ["Optics", "Unit 3 Heat"]

    def test_question_count_capped(self) -> None:
        engine = PredictionEngine(None, None, config={"fallback_question_count": 3})
        topics = [f"Unit {i} topic" for i in range(10)]
        result = engine.fallback("Physics", RetrievalStatistics(), topics, AnalysisOptions())
        assert len(result.generated_questions) == 3
        assert result.summary is not None
        assert result.summary.estimated_preparation_time == "6 hours"

    def test_tokens_estimated_from_source(self) -> None:
        engine = PredictionEngine(None, None)
        result = engine.fallback(
            "Physics", RetrievalStatistics(), [], AnalysisOptions(), source_text="x" * 40
        )
        assert result.tokens_used == 10
