"""Unit tests for the studylens domain models and status state machines."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from studylens.models import (
    RETENTION_WINDOW,
    Analysis,
    AnalysisOptions,
    AnalysisStatus,
    DocumentType,
    GeneratedQuestion,
    ImportantTopic,
    PredictionPayload,
    ProcessingStatus,
    is_terminal,
    validate_transition,
)
from studylens.utils.errors import InvalidTransitionError
from tests.conftest import make_document


# ======================================================================
# Status transitions
# ======================================================================


class TestProcessingStatusTransitions:
    @pytest.mark.parametrize(
        ("current", "target"),
        [
            (ProcessingStatus.PENDING, ProcessingStatus.PROCESSING),
            (ProcessingStatus.PENDING, ProcessingStatus.FAILED),
            (ProcessingStatus.PROCESSING, ProcessingStatus.COMPLETED),
            (ProcessingStatus.PROCESSING, ProcessingStatus.FAILED),
        ],
    )
    def test_forward_moves_allowed(self, current, target) -> None:
        validate_transition(current, target)

    @pytest.mark.parametrize(
        ("current", "target"),
        [
            (ProcessingStatus.COMPLETED, ProcessingStatus.PROCESSING),
            (ProcessingStatus.COMPLETED, ProcessingStatus.PENDING),
            (ProcessingStatus.FAILED, ProcessingStatus.PROCESSING),
            (ProcessingStatus.PROCESSING, ProcessingStatus.PENDING),
            (ProcessingStatus.PENDING, ProcessingStatus.COMPLETED),
        ],
    )
    def test_backward_or_skipping_moves_rejected(self, current, target) -> None:
        with pytest.raises(InvalidTransitionError):
            validate_transition(current, target)

    def test_terminal_states(self) -> None:
        assert is_terminal(ProcessingStatus.COMPLETED)
        assert is_terminal(ProcessingStatus.FAILED)
        assert not is_terminal(ProcessingStatus.PENDING)
        assert not is_terminal(ProcessingStatus.PROCESSING)


class TestAnalysisStatusTransitions:
    def test_processing_to_terminal(self) -> None:
        validate_transition(AnalysisStatus.PROCESSING, AnalysisStatus.COMPLETED)
        validate_transition(AnalysisStatus.PROCESSING, AnalysisStatus.FAILED)

    def test_completed_is_final(self) -> None:
        with pytest.raises(InvalidTransitionError):
            validate_transition(AnalysisStatus.COMPLETED, AnalysisStatus.FAILED)

    def test_mixed_enum_types_rejected(self) -> None:
        # Same string value, different state machine.
        with pytest.raises(InvalidTransitionError):
            validate_transition(ProcessingStatus.PROCESSING, AnalysisStatus.COMPLETED)


# ======================================================================
# Document
# ======================================================================


class TestDocument:
    def test_status_snapshot_carries_word_count(self) -> None:
        doc = make_document(content="one two three four")
        snapshot = doc.status_snapshot()
        assert snapshot.document_id == doc.id
        assert snapshot.status == ProcessingStatus.COMPLETED
        assert snapshot.word_count == 4

    def test_pending_snapshot_has_no_word_count(self) -> None:
        doc = make_document(status=ProcessingStatus.PENDING)
        assert doc.status_snapshot().word_count is None

    def test_frozen(self) -> None:
        doc = make_document()
        with pytest.raises(ValidationError):
            doc.status = ProcessingStatus.FAILED  # type: ignore[misc]

    def test_document_type_values(self) -> None:
        assert {t.value for t in DocumentType} == {"syllabus", "notes", "pyq", "textbook"}


# ======================================================================
# Analysis payload
# ======================================================================


class TestAnalysisPayload:
    def test_question_accepts_camel_case(self) -> None:
        question = GeneratedQuestion.model_validate(
            {
                "question": "Define work.",
                "type": "definition",
                "marks": 2,
                "difficulty": "easy",
                "estimatedTime": 3,
            }
        )
        assert question.estimated_time == 3
        assert "estimated_time" in question.model_dump()

    def test_question_rejects_unknown_type(self) -> None:
        with pytest.raises(ValidationError):
            GeneratedQuestion(
                question="Explain x.",
                type="essay",  # type: ignore[arg-type]
                marks=5,
                difficulty="medium",
                estimated_time=10,
            )

    def test_topic_bounds(self) -> None:
        with pytest.raises(ValidationError):
            ImportantTopic(topic="x", frequency=120, weightage=10, priority="high", confidence=0.5)
        with pytest.raises(ValidationError):
            ImportantTopic(topic="x", frequency=10, weightage=10, priority="high", confidence=1.5)

    def test_prediction_payload_requires_a_question(self) -> None:
        with pytest.raises(ValidationError):
            PredictionPayload.model_validate({"important_topics": [], "generated_questions": []})

    def test_prediction_payload_accepts_predictions_alias(self) -> None:
        payload = PredictionPayload.model_validate(
            {
                "predictions": [
                    {
                        "question": "Solve x.",
                        "type": "problem",
                        "marks": 4,
                        "difficulty": "medium",
                        "estimated_time": 8,
                    }
                ]
            }
        )
        assert len(payload.generated_questions) == 1


class TestAnalysisOptions:
    def test_hash_ignores_focus_topic_order_and_case(self) -> None:
        a = AnalysisOptions(focus_topics=["Optics", "waves"])
        b = AnalysisOptions(focus_topics=["Waves", "optics"])
        assert a.options_hash() == b.options_hash()

    def test_hash_changes_with_options(self) -> None:
        assert (
            AnalysisOptions(question_count=5).options_hash()
            != AnalysisOptions(question_count=6).options_hash()
        )

    def test_question_count_bounds(self) -> None:
        with pytest.raises(ValidationError):
            AnalysisOptions(question_count=0)
        with pytest.raises(ValidationError):
            AnalysisOptions(question_count=31)


class TestAnalysis:
    def test_expiry_defaults_to_retention_window(self) -> None:
        created = datetime(2026, 1, 1, tzinfo=timezone.utc)
        analysis = Analysis(id="a1", owner_id="u", subject_id="s", created_at=created)
        assert analysis.expires_at == created + RETENTION_WINDOW
        assert analysis.status == AnalysisStatus.PROCESSING

    def test_explicit_expiry_kept(self) -> None:
        created = datetime(2026, 1, 1, tzinfo=timezone.utc)
        analysis = Analysis(
            id="a1",
            owner_id="u",
            subject_id="s",
            created_at=created,
            expires_at=created + timedelta(days=1),
        )
        assert analysis.expires_at == created + timedelta(days=1)

    def test_json_round_trip_preserves_expiry(self) -> None:
        analysis = Analysis(id="a1", owner_id="u", subject_id="s")
        restored = Analysis.model_validate_json(analysis.model_dump_json())
        assert restored.expires_at == analysis.expires_at
