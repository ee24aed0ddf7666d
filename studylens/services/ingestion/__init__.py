"""Document ingestion: extraction, chunking and the background coordinator."""

from studylens.services.ingestion.chunker import TextChunker
from studylens.services.ingestion.content_extractor import ContentExtractor, ExtractionResult
from studylens.services.ingestion.ingestion_coordinator import IngestionCoordinator

__all__ = ["ContentExtractor", "ExtractionResult", "IngestionCoordinator", "TextChunker"]
