"""Central builder for every cache key studylens writes.

All keys follow ``{entity_type}:{scope_id}:{variant}``.  Keeping them in
one place is what makes invalidation reliable: the ingestion coordinator
and document service delete exactly the keys this module produces, one by
one, with no pattern scans.
"""

from __future__ import annotations

from studylens.utils.text_normalizer import stable_hash

ALL = "all"


class CacheKeys:
    """Namespaced cache key constructors."""

    @staticmethod
    def document_detail(document_id: str) -> str:
        return f"document:{document_id}:detail"

    @staticmethod
    def document_list(user_id: str, subject_id: str | None = None) -> str:
        return f"documents:{user_id}:{subject_id or ALL}"

    @staticmethod
    def document_list_by_type(user_id: str, document_type: str) -> str:
        return f"documents:{user_id}:{ALL}:{document_type}"

    @staticmethod
    def document_status(document_id: str) -> str:
        return f"doc_status:{document_id}:current"

    @staticmethod
    def document_stats(user_id: str, subject_id: str | None = None) -> str:
        return f"doc_stats:{user_id}:{subject_id or ALL}"

    @staticmethod
    def analysis_result(subject_id: str, options_hash: str, document_ids: list[str]) -> str:
        """Result key for one option set over one exact set of source documents.

        A document completing or being deleted changes the set, so an entry
        computed before that change is never matched again.
        """
        documents_hash = stable_hash(",".join(sorted(document_ids)))
        return f"analysis:{subject_id}:{options_hash}.{documents_hash}"

    @staticmethod
    def analysis_status(analysis_id: str) -> str:
        return f"analysis_status:{analysis_id}:current"

    @staticmethod
    def analysis_list(user_id: str, subject_id: str | None = None) -> str:
        return f"analyses:{user_id}:{subject_id or ALL}"

    @staticmethod
    def quick_predict(subject_id: str, topic: str) -> str:
        return f"quick_predict:{subject_id}:{stable_hash(topic.strip().lower())}"

    @staticmethod
    def vector_stats() -> str:
        return "vector_stats:global:current"

    @classmethod
    def document_derived(
        cls, document_id: str, user_id: str, subject_id: str, document_type: str
    ) -> list[str]:
        """Every key whose value depends on one document's record."""
        return [
            cls.document_detail(document_id),
            cls.document_list(user_id, subject_id),
            cls.document_list(user_id),
            cls.document_list_by_type(user_id, document_type),
            cls.document_status(document_id),
            cls.document_stats(user_id, subject_id),
            cls.document_stats(user_id),
        ]

    @classmethod
    def analysis_lists(cls, user_id: str, subject_id: str) -> list[str]:
        return [cls.analysis_list(user_id, subject_id), cls.analysis_list(user_id)]
