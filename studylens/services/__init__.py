"""Application services: caching, ingestion, prediction and document operations."""
