"""Unit tests for the retrieval heuristics and the deterministic fallback."""

from __future__ import annotations

import pytest

from studylens.models.rag import RetrievedChunk
from studylens.services.prediction.heuristics import (
    build_statistics,
    classify_question_type,
    extract_heading_topics,
    fallback_questions,
    marks_distribution,
    question_type_distribution,
    rank_topics,
    topic_frequency,
)


class TestClassifyQuestionType:
    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("Define specific heat.", "definition"),
            ("Derive the lens formula.", "derivation"),
            ("Prove that entropy never decreases.", "derivation"),
            ("Calculate the work done.", "problem"),
            ("Find the value of x.", "problem"),
            ("Explain the photoelectric effect.", "application"),
            ("Describe a heat engine.", "application"),
            ("List three examples.", "application"),
        ],
    )
    def test_keywords(self, text: str, expected: str) -> None:
        assert classify_question_type(text) == expected


class TestTopicFrequency:
    def test_heading_extraction_stops_at_sentence_end(self) -> None:
        assert extract_heading_topics("Unit 3 Thermodynamics. Q1 define") == [
            "Unit 3 Thermodynamics"
        ]

    def test_counts_across_chunks(self, pyq_chunks: list[RetrievedChunk]) -> None:
        counts = topic_frequency(pyq_chunks)
        assert counts[0] == ("Unit 3 Thermodynamics", 2)
        assert ("Unit 1 Kinematics", 1) in counts

    def test_spelling_variants_folded(self) -> None:
        chunks = [
            RetrievedChunk(text="Chapter 2 Matrices and determinants."),
            RetrievedChunk(text="CHAPTER 2 MATRICES AND DETERMINANTS."),
        ]
        assert topic_frequency(chunks) == [("Chapter 2 Matrices and determinants", 2)]

    def test_short_headings_ignored(self) -> None:
        assert topic_frequency([RetrievedChunk(text="unit abc.")]) == []


class TestDistributions:
    def test_question_types(self, pyq_chunks: list[RetrievedChunk]) -> None:
        assert question_type_distribution(pyq_chunks) == {
            "definition": 1,
            "problem": 1,
            "derivation": 1,
        }

    def test_marks(self, pyq_chunks: list[RetrievedChunk]) -> None:
        assert marks_distribution(pyq_chunks) == {2: 1, 5: 1, 10: 1}

    def test_marks_out_of_range_dropped(self) -> None:
        chunks = [RetrievedChunk(text="0 marks, 250 marks, 1 mark")]
        assert marks_distribution(chunks) == {1: 1}

    def test_build_statistics(self, pyq_chunks: list[RetrievedChunk]) -> None:
        stats = build_statistics(pyq_chunks[:1], pyq_chunks[1:], vector_available=True)
        assert stats.vector_available is True
        assert stats.has_exemplars is True
        assert len(stats.exemplars) == 3
        # Patterns come from the previous-year passages only.
        assert stats.question_types == {"problem": 1, "derivation": 1}

    def test_empty_statistics(self) -> None:
        stats = build_statistics([], [], vector_available=False)
        assert stats.has_exemplars is False
        assert stats.topic_counts == []


class TestRankTopics:
    def test_scores(self) -> None:
        ranked = rank_topics([("A", 3), ("B", 1)])
        assert ranked[0].frequency == 100.0
        assert ranked[0].weightage == 75.0
        assert ranked[1].frequency == pytest.approx(33.3)
        assert ranked[0].confidence == pytest.approx(0.7)

    def test_priorities_by_rank(self) -> None:
        ranked = rank_topics([(f"T{i}", 10 - i) for i in range(6)])
        assert [t.priority for t in ranked] == ["high", "high", "medium", "medium", "medium", "low"]

    def test_limit(self) -> None:
        assert len(rank_topics([(f"T{i}", 1) for i in range(20)], limit=8)) == 8

    def test_empty(self) -> None:
        assert rank_topics([]) == []


class TestFallbackQuestions:
    def test_templates(self) -> None:
        questions = fallback_questions(["Optics", "Waves"], count=5)
        assert [q.question for q in questions] == [
            "Explain Optics with suitable examples.",
            "Explain Waves with suitable examples.",
        ]
        assert all(q.type == "application" and q.marks == 5 for q in questions)

    def test_count_limit(self) -> None:
        assert len(fallback_questions(["a", "b", "c"], count=2)) == 2
