"""Exam prediction: strategies, heuristics and the engine that picks between them."""

from studylens.services.prediction.context_builder import PredictionContext, build_context
from studylens.services.prediction.prediction_engine import PredictionEngine

__all__ = ["PredictionContext", "PredictionEngine", "build_context"]
