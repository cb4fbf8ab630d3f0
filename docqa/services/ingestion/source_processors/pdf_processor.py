"""Source processor for PDF uploads.

Reads PDF files using PyMuPDF (fitz), joins the text of every page, strips
PDF object syntax that some producers leak into the text layer, and keeps
only paragraphs long enough to be real content.
"""

from __future__ import annotations

import re
from typing import Any

import fitz  # PyMuPDF -- the "fitz" import name is a PyMuPDF convention
import structlog

from docqa.models.documents import ExtractedDocument
from docqa.utils.errors import ExtractionError

logger = structlog.get_logger(logger_name=__name__)

# Applied in order.  Dictionary markers go first so references and object
# headers inside them are removed in one pass.
_PDF_SYNTAX_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"<<[^>]*>>"),
    re.compile(r"\[\d+ \d+ R\]"),
    re.compile(r"/?[0-9]+ [0-9]+ obj"),
    re.compile(r"endobj|endstream|startxref|xref|trailer"),
]

_PARAGRAPH_SPLIT = re.compile(r"\n\s*\n")

# Paragraphs shorter than this are page numbers, headers and similar noise.
_MIN_PARAGRAPH_CHARS = 10


def clean_pdf_text(raw: str) -> str:
    """Remove leaked PDF object syntax from extracted text."""
    text = raw
    for pattern in _PDF_SYNTAX_PATTERNS:
        text = pattern.sub("", text)
    return text.strip()


def split_paragraphs(text: str, min_chars: int = _MIN_PARAGRAPH_CHARS) -> list[str]:
    """Split on blank lines, strip, and drop paragraphs under *min_chars*."""
    paragraphs = (p.strip() for p in _PARAGRAPH_SPLIT.split(text))
    return [p for p in paragraphs if len(p) >= min_chars]


class PDFProcessor:
    """Processes a PDF file into a single :class:`ExtractedDocument`."""

    def process(self, file_path: str) -> list[ExtractedDocument]:
        """Extract cleaned paragraph text from *file_path*.

        Returns
        -------
        list[ExtractedDocument]
            One document whose text is the surviving paragraphs joined by
            blank lines.

        Raises
        ------
        ExtractionError
            If the file cannot be opened as a PDF, or if no paragraph
            survives cleanup.
        """
        pages, page_count, info = self._read(file_path)

        paragraphs = split_paragraphs(clean_pdf_text("\n\n".join(pages)))
        if not paragraphs:
            logger.warning("pdf_no_text_extracted", file_path=file_path, pages=page_count)
            raise ExtractionError(
                message="No readable text content found in PDF",
                provider_name="pymupdf",
            )

        logger.info(
            "pdf_processed",
            file_path=file_path,
            pages=page_count,
            paragraphs=len(paragraphs),
            preview=paragraphs[0][:200],
        )
        return [
            ExtractedDocument(
                text="\n\n".join(paragraphs),
                metadata={"fileType": "pdf", "pageCount": page_count, "pdfInfo": info},
            )
        ]

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _read(file_path: str) -> tuple[list[str], int, dict[str, Any]]:
        """Return ``(page_texts, page_count, document_info)`` for the PDF."""
        try:
            doc = fitz.open(file_path)
        except Exception as exc:
            logger.error("pdf_open_failed", file_path=file_path, error=str(exc))
            raise ExtractionError(
                message=f"Could not read PDF: {exc}",
                provider_name="pymupdf",
            ) from exc

        try:
            pages = [doc[page_num].get_text("text") for page_num in range(len(doc))]
            info = {k: v for k, v in (doc.metadata or {}).items() if v}
            return pages, len(pages), info
        finally:
            doc.close()
