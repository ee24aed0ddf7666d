"""studylens domain models - re-exports all public model classes.

Import from ``studylens.models`` rather than the individual submodules:
    - status.py     - ProcessingStatus / AnalysisStatus and transition checks
    - document.py   - Document, Subject, status snapshots and stats
    - analysis.py   - Analysis and its topic/question/summary payload
    - prediction.py - Prediction engine contracts
    - rag.py        - Vector index chunks, retrieval results and stats
"""

from __future__ import annotations

from studylens.models.analysis import (
    RETENTION_WINDOW,
    Analysis,
    AnalysisMetadata,
    AnalysisOptions,
    AnalysisSummary,
    GeneratedQuestion,
    ImportantTopic,
)
from studylens.models.document import (
    Document,
    DocumentMetadata,
    DocumentStats,
    DocumentStatusSnapshot,
    DocumentType,
    Subject,
)
from studylens.models.prediction import (
    PredictionPayload,
    PredictionResult,
    PredictionStrategy,
    QuickPrediction,
)
from studylens.models.rag import DocumentChunk, IndexStats, RetrievedChunk
from studylens.models.status import (
    AnalysisStatus,
    ProcessingStatus,
    is_terminal,
    validate_transition,
)

__all__ = [
    "RETENTION_WINDOW",
    "Analysis",
    "AnalysisMetadata",
    "AnalysisOptions",
    "AnalysisStatus",
    "AnalysisSummary",
    "Document",
    "DocumentChunk",
    "DocumentMetadata",
    "DocumentStats",
    "DocumentStatusSnapshot",
    "DocumentType",
    "GeneratedQuestion",
    "ImportantTopic",
    "IndexStats",
    "PredictionPayload",
    "PredictionResult",
    "PredictionStrategy",
    "ProcessingStatus",
    "QuickPrediction",
    "RetrievedChunk",
    "Subject",
    "is_terminal",
    "validate_transition",
]
