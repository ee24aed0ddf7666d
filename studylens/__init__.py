"""studylens: study-material ingestion, semantic indexing and exam prediction."""

__version__ = "0.1.0"
