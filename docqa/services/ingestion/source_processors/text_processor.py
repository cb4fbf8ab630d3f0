"""Source processor for plain-text uploads."""

from __future__ import annotations

from pathlib import Path

import structlog

from docqa.models.documents import ExtractedDocument
from docqa.utils.errors import ExtractionError

logger = structlog.get_logger(logger_name=__name__)


class TextProcessor:
    """Reads a UTF-8 text file as a single document.

    Undecodable bytes are replaced rather than rejected.  Whitespace-only
    files yield no documents.
    """

    def process(self, file_path: str) -> list[ExtractedDocument]:
        try:
            text = Path(file_path).read_text(encoding="utf-8", errors="replace")
        except OSError as exc:
            raise ExtractionError(message=f"Could not read text file: {exc}") from exc

        if not text.strip():
            logger.warning("text_file_empty", file_path=file_path)
            return []

        logger.info("text_processed", file_path=file_path, chars=len(text))
        return [ExtractedDocument(text=text, metadata={"fileType": "txt"})]
