"""Background pipelines coordinated across services."""

from studylens.pipeline.analysis_orchestrator import AnalysisOrchestrator

__all__ = ["AnalysisOrchestrator"]
