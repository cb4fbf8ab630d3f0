"""Document ingestion: extract -> chunk -> embed -> store."""

from docqa.services.ingestion.chunker import TextChunker
from docqa.services.ingestion.format_extractor import SUPPORTED_TYPES, FormatExtractor
from docqa.services.ingestion.ingestion_service import IngestionService

__all__ = ["SUPPORTED_TYPES", "FormatExtractor", "IngestionService", "TextChunker"]
