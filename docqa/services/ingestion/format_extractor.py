"""Dispatches an uploaded file to the processor for its declared type.

Only ``pdf`` and ``txt`` are accepted.  Other office formats are refused
up front with a message asking the user to convert to PDF, before any
download happens.
"""

from __future__ import annotations

from typing import Protocol

import structlog

from docqa.models.documents import ExtractedDocument
from docqa.services.ingestion.source_processors import PDFProcessor, TextProcessor
from docqa.utils.errors import UnsupportedFormatError

logger = structlog.get_logger(logger_name=__name__)

SUPPORTED_TYPES: tuple[str, ...] = ("pdf", "txt")


class _SourceProcessor(Protocol):
    def process(self, file_path: str) -> list[ExtractedDocument]: ...


class FormatExtractor:
    """Maps declared file types to source processors."""

    def __init__(self, processors: dict[str, _SourceProcessor] | None = None) -> None:
        self._processors: dict[str, _SourceProcessor] = processors or {
            "pdf": PDFProcessor(),
            "txt": TextProcessor(),
        }

    @property
    def supported_types(self) -> tuple[str, ...]:
        return tuple(self._processors)

    def ensure_supported(self, declared_type: str) -> str:
        """Return the normalized type, or raise :class:`UnsupportedFormatError`."""
        file_type = declared_type.lower()
        if file_type not in self._processors:
            logger.info("unsupported_file_type", file_type=file_type)
            raise UnsupportedFormatError(
                message=(
                    f"Currently supporting only {', '.join(self._processors)} files "
                    "for faster processing. Please convert other formats to PDF."
                )
            )
        return file_type

    def extract(self, file_path: str, declared_type: str) -> list[ExtractedDocument]:
        """Extract documents from *file_path*.

        Raises
        ------
        UnsupportedFormatError
            If *declared_type* has no processor.
        ExtractionError
            If the processor cannot read the file or finds no text.
        """
        file_type = self.ensure_supported(declared_type)
        return self._processors[file_type].process(file_path)
