"""Analysis orchestrator: request, background continuation and reads.

ARCHITECTURE NOTE (for junior developers):
    An analysis is split into TWO entry points, like an upload:

        - request_analysis()  → synchronous checks + record creation (202)
        - run_analysis()      → background continuation on the supervisor

    Anything that can be checked before the record exists (ownership, at
    least two completed documents) fails the request itself.  Anything that
    goes wrong afterwards lands on the record as ``status=failed`` with the
    error text in ``metadata.error``.

    run_analysis() makes exactly ONE terminal write.  It first computes the
    terminal snapshot (completed or failed) and only then persists it, so a
    failure can never leave a record half-updated or written twice.

    Results are cached per subject, option set and exact document set.  A
    second request with identical options over the same documents completes
    from that entry without calling the prediction engine and reports
    ``metadata.cache_hit=True``.  An unreadable cache entry is treated as a
    miss, never as a failure.
"""

from __future__ import annotations

import time
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

import structlog

from studylens.interfaces.record_store import IRecordStore
from studylens.models.analysis import (
    Analysis,
    AnalysisMetadata,
    AnalysisOptions,
    AnalysisSummary,
    GeneratedQuestion,
    ImportantTopic,
)
from studylens.models.document import Document, Subject
from studylens.models.prediction import PredictionStrategy, QuickPrediction
from studylens.models.status import AnalysisStatus, ProcessingStatus, validate_transition
from studylens.services.cache_aside import CacheAside
from studylens.services.cache_keys import CacheKeys
from studylens.services.prediction.context_builder import build_context
from studylens.services.prediction.prediction_engine import PredictionEngine
from studylens.utils.concurrency import TaskSupervisor
from studylens.utils.errors import NotFoundError, ValidationError
from studylens.utils.logging import get_logger

DEFAULT_ANALYSIS_CONFIG: dict[str, Any] = {
    "min_completed_documents": 2,
    "retention_days": 7,
    "list_limit": 20,
    "context": {},
}


class AnalysisOrchestrator:
    """Coordinates subject analyses from request to terminal write.

    Parameters
    ----------
    record_store:
        Source of truth for subjects, documents and analyses.
    cache:
        Cache-aside wrapper for results, status snapshots and lists.
    engine:
        Produces the topics, questions and summary.
    supervisor:
        Runs the background continuation.
    config:
        The ``analysis`` section of ``config/config.yaml``.
    """

    def __init__(
        self,
        record_store: IRecordStore,
        cache: CacheAside,
        engine: PredictionEngine,
        supervisor: TaskSupervisor,
        config: dict[str, Any] | None = None,
    ) -> None:
        cfg = {**DEFAULT_ANALYSIS_CONFIG, **(config or {})}
        self._records = record_store
        self._cache = cache
        self._engine = engine
        self._supervisor = supervisor
        self._min_documents = int(cfg["min_completed_documents"])
        self._list_limit = int(cfg["list_limit"])
        self._retention = timedelta(days=int(cfg["retention_days"]))
        self._budgets: dict[str, int] = dict(cfg.get("context") or {})
        self._logger: structlog.BoundLogger = get_logger(__name__)

    # ------------------------------------------------------------------
    # Request (synchronous part)
    # ------------------------------------------------------------------

    async def request_analysis(
        self,
        user_id: str,
        subject_id: str,
        options: AnalysisOptions | None = None,
    ) -> Analysis:
        """Create a processing analysis and schedule its continuation.

        Raises
        ------
        NotFoundError
            If the subject does not exist or belongs to another user.
        ValidationError
            If fewer than two completed documents exist for the subject.
            No record is created in that case.
        """
        options = options or AnalysisOptions()
        await self._require_subject(user_id, subject_id)

        documents = await self._completed_documents(user_id, subject_id)
        if len(documents) < self._min_documents:
            raise ValidationError(
                message=(
                    f"At least {self._min_documents} processed documents are required "
                    f"for analysis (found {len(documents)})"
                )
            )

        created_at = datetime.now(tz=timezone.utc)  # noqa: UP017
        analysis = Analysis(
            id=uuid.uuid4().hex,
            owner_id=user_id,
            subject_id=subject_id,
            document_ids=[d.id for d in documents],
            options=options,
            created_at=created_at,
            expires_at=created_at + self._retention,
        )
        await self._records.create_analysis(analysis)
        await self._cache.set_json(
            CacheKeys.analysis_status(analysis.id),
            analysis.model_dump(mode="json"),
            self._cache.ttl("analysis_in_flight"),
        )
        await self._cache.delete_many(CacheKeys.analysis_lists(user_id, subject_id))

        self._supervisor.submit(self.run_analysis(analysis.id), name=f"analysis:{analysis.id}")
        self._logger.info(
            "analysis_requested",
            analysis_id=analysis.id,
            subject_id=subject_id,
            documents=len(documents),
            options_hash=options.options_hash(),
        )
        return analysis

    # ------------------------------------------------------------------
    # Continuation (background)
    # ------------------------------------------------------------------

    async def run_analysis(self, analysis_id: str) -> Analysis | None:
        """Compute and persist the terminal state of *analysis_id*."""
        analysis = await self._records.get_analysis(analysis_id)
        if analysis is None:
            self._logger.warning("analysis_missing", analysis_id=analysis_id)
            return None
        if analysis.status != AnalysisStatus.PROCESSING:
            self._logger.warning(
                "analysis_already_terminal",
                analysis_id=analysis_id,
                status=analysis.status.value,
            )
            return None

        started = time.perf_counter()
        result_key = CacheKeys.analysis_result(
            analysis.subject_id, analysis.options.options_hash(), analysis.document_ids
        )
        try:
            terminal, from_cache = await self._complete(analysis, result_key, started)
        except Exception as exc:
            error = str(exc) or type(exc).__name__
            self._logger.error(
                "analysis_failed",
                analysis_id=analysis_id,
                error_type=type(exc).__name__,
                error=error,
            )
            terminal, from_cache = self._fail(analysis, error, started), False

        validate_transition(analysis.status, terminal.status)
        stored = await self._records.update_analysis(terminal)

        if stored.status == AnalysisStatus.COMPLETED:
            if not from_cache:
                await self._cache.set_json(
                    result_key,
                    self._result_payload(stored),
                    self._cache.ttl("analysis_completed"),
                )
            status_ttl = self._cache.ttl("analysis_completed")
        else:
            status_ttl = self._cache.ttl("analysis_in_flight")
        await self._cache.set_json(
            CacheKeys.analysis_status(stored.id), stored.model_dump(mode="json"), status_ttl
        )
        await self._cache.delete_many(CacheKeys.analysis_lists(stored.owner_id, stored.subject_id))

        self._logger.info(
            "analysis_finished",
            analysis_id=stored.id,
            status=stored.status.value,
            cache_hit=stored.metadata.cache_hit,
            strategy=stored.metadata.strategy,
            questions=len(stored.generated_questions),
            processing_time_ms=stored.metadata.processing_time_ms,
        )
        return stored

    async def _complete(
        self, analysis: Analysis, result_key: str, started: float
    ) -> tuple[Analysis, bool]:
        cached = await self._cache.get_validated(result_key, _parse_result_payload)
        if cached is not None:
            self._logger.info("analysis_cache_hit", analysis_id=analysis.id, key=result_key)
            return (
                analysis.model_copy(
                    update={
                        **cached,
                        "status": AnalysisStatus.COMPLETED,
                        "metadata": cached["metadata"].model_copy(
                            update={
                                "cache_hit": True,
                                "tokens_used": 0,
                                "strategy": PredictionStrategy.CACHED.value,
                                "processing_time_ms": _elapsed_ms(started),
                                "total_documents": len(analysis.document_ids),
                            }
                        ),
                        "completed_at": datetime.now(tz=timezone.utc),  # noqa: UP017
                    }
                ),
                True,
            )

        subject = await self._records.get_subject(analysis.subject_id)
        if subject is None:
            raise NotFoundError(message=f"Subject {analysis.subject_id} not found")
        documents = [
            d
            for d in await self._completed_documents(analysis.owner_id, analysis.subject_id)
            if d.id in analysis.document_ids
        ]

        context = build_context(subject, documents, self._budgets)
        result = await self._engine.predict(context, analysis.options)
        if not result.generated_questions:
            raise ValidationError(message="Prediction produced no questions")

        return (
            analysis.model_copy(
                update={
                    "status": AnalysisStatus.COMPLETED,
                    "important_topics": result.important_topics,
                    "generated_questions": result.generated_questions,
                    "summary": result.summary if analysis.options.include_summary else None,
                    "metadata": AnalysisMetadata(
                        processing_time_ms=_elapsed_ms(started),
                        tokens_used=result.tokens_used,
                        cache_hit=False,
                        strategy=result.strategy.value,
                        model=result.model,
                        total_documents=len(documents),
                        vector_available=result.vector_available,
                    ),
                    "completed_at": datetime.now(tz=timezone.utc),  # noqa: UP017
                }
            ),
            False,
        )

    @staticmethod
    def _fail(analysis: Analysis, error: str, started: float) -> Analysis:
        return analysis.model_copy(
            update={
                "status": AnalysisStatus.FAILED,
                "metadata": AnalysisMetadata(
                    processing_time_ms=_elapsed_ms(started),
                    total_documents=len(analysis.document_ids),
                    error=error,
                ),
                "completed_at": datetime.now(tz=timezone.utc),  # noqa: UP017
            }
        )

    @staticmethod
    def _result_payload(analysis: Analysis) -> dict[str, Any]:
        return analysis.model_dump(
            mode="json",
            include={"important_topics", "generated_questions", "summary", "metadata"},
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_analysis(self, user_id: str, analysis_id: str) -> Analysis:
        """Return the caller's analysis, cache first; ``NotFoundError`` otherwise."""
        key = CacheKeys.analysis_status(analysis_id)
        cached = await self._cache.get_validated(key, Analysis.model_validate)
        if cached is not None and cached.owner_id == user_id:
            return cached

        analysis = await self._records.get_analysis(analysis_id)
        if analysis is None or analysis.owner_id != user_id:
            raise NotFoundError(message=f"Analysis {analysis_id} not found")

        tier = (
            "analysis_in_flight"
            if analysis.status == AnalysisStatus.PROCESSING
            else "analysis_completed"
        )
        await self._cache.set_json(key, analysis.model_dump(mode="json"), self._cache.ttl(tier))
        return analysis

    async def list_analyses(self, user_id: str, subject_id: str | None = None) -> list[Analysis]:
        """Newest analyses for the caller, optionally scoped to one subject."""
        key = CacheKeys.analysis_list(user_id, subject_id)
        cached = await self._cache.get_validated(key, _parse_analysis_list)
        if cached is not None:
            return cached

        analyses = await self._records.list_analyses(
            user_id, subject_id=subject_id, limit=self._list_limit
        )
        await self._cache.set_json(
            key,
            [a.model_dump(mode="json") for a in analyses],
            self._cache.ttl("analysis_list"),
        )
        return analyses

    # ------------------------------------------------------------------
    # Quick predict (synchronous)
    # ------------------------------------------------------------------

    async def quick_predict(self, user_id: str, subject_id: str, topic: str) -> QuickPrediction:
        """Predict questions for one topic within the request.

        Never fails because a dependency is down: the engine falls back to
        deterministic questions and reports ``vector_available=False``.
        """
        topic = topic.strip()
        if not topic:
            raise ValidationError(message="Topic is required")
        subject = await self._require_subject(user_id, subject_id)

        key = CacheKeys.quick_predict(subject_id, topic)
        cached = await self._cache.get_validated(key, QuickPrediction.model_validate)
        if cached is not None:
            return cached.model_copy(update={"cache_hit": True})

        documents = await self._completed_documents(user_id, subject_id)
        document_topics: list[str] = []
        for document in documents:
            for item in document.metadata.topics if document.metadata else []:
                if item not in document_topics:
                    document_topics.append(item)

        result = await self._engine.quick_predict(
            subject_id, subject.name, topic, document_topics
        )
        prediction = QuickPrediction(
            subject_id=subject_id,
            topic=topic,
            important_topics=result.important_topics,
            generated_questions=result.generated_questions,
            strategy=result.strategy,
            vector_available=result.vector_available,
        )
        await self._cache.set_json(
            key, prediction.model_dump(mode="json"), self._cache.ttl("quick_predict")
        )
        self._logger.info(
            "quick_prediction",
            subject_id=subject_id,
            strategy=result.strategy.value,
            questions=len(prediction.generated_questions),
            vector_available=result.vector_available,
        )
        return prediction

    # ------------------------------------------------------------------
    # Retention
    # ------------------------------------------------------------------

    async def purge_expired(self, now: datetime | None = None) -> int:
        """Delete analyses past their retention window; returns how many."""
        now = now or datetime.now(tz=timezone.utc)  # noqa: UP017
        removed = await self._records.delete_expired_analyses(now)
        self._logger.info("expired_analyses_purged", removed=removed)
        return removed

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _require_subject(self, user_id: str, subject_id: str) -> Subject:
        subject = await self._records.get_subject(subject_id)
        if subject is None or subject.owner_id != user_id or not subject.is_active:
            raise NotFoundError(message=f"Subject {subject_id} not found")
        return subject

    async def _completed_documents(self, user_id: str, subject_id: str) -> list[Document]:
        return await self._records.list_documents(
            user_id, subject_id=subject_id, status=ProcessingStatus.COMPLETED
        )


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


def _parse_result_payload(cached: dict[str, Any]) -> dict[str, Any]:
    """Rebuild the payload fields of a cached result; raises on any mismatch."""
    questions = [GeneratedQuestion.model_validate(q) for q in cached.get("generated_questions") or []]
    if not questions:
        raise ValueError("cached result has no questions")
    return {
        "important_topics": [
            ImportantTopic.model_validate(t) for t in cached.get("important_topics") or []
        ],
        "generated_questions": questions,
        "summary": (
            AnalysisSummary.model_validate(cached["summary"]) if cached.get("summary") else None
        ),
        "metadata": AnalysisMetadata.model_validate(cached.get("metadata") or {}),
    }


def _parse_analysis_list(cached: list[Any]) -> list[Analysis]:
    return [Analysis.model_validate(item) for item in cached]
