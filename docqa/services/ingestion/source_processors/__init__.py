"""Per-format processors that turn an uploaded file into extracted documents."""

from docqa.services.ingestion.source_processors.pdf_processor import PDFProcessor
from docqa.services.ingestion.source_processors.text_processor import TextProcessor

__all__ = ["PDFProcessor", "TextProcessor"]
