"""Unit tests for the PDF/text source processors and the FormatExtractor."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from docqa.models.documents import ExtractedDocument
from docqa.services.ingestion.format_extractor import SUPPORTED_TYPES, FormatExtractor
from docqa.services.ingestion.source_processors.pdf_processor import (
    PDFProcessor,
    clean_pdf_text,
    split_paragraphs,
)
from docqa.services.ingestion.source_processors.text_processor import TextProcessor
from docqa.utils.errors import ExtractionError, UnsupportedFormatError

# ======================================================================
# PDF helpers
# ======================================================================


class TestCleanPdfText:
    def test_strips_object_syntax(self) -> None:
        raw = "Intro text << /Type /Page /Parent 3 0 R >> more 12 0 obj body endobj [4 0 R] end"
        cleaned = clean_pdf_text(raw)
        assert "<<" not in cleaned
        assert "obj" not in cleaned
        assert "R]" not in cleaned
        assert cleaned.startswith("Intro text")
        assert cleaned.endswith("end")

    def test_strips_trailer_keywords(self) -> None:
        cleaned = clean_pdf_text("xref\ntrailer\nstartxref\nReal words remain")
        assert cleaned == "Real words remain"

    def test_plain_text_is_unchanged(self) -> None:
        assert clean_pdf_text("  Nothing to clean here.  ") == "Nothing to clean here."


class TestSplitParagraphs:
    def test_drops_short_fragments(self) -> None:
        text = "7\n\nThis paragraph is long enough.\n   \nok\n\nAnother real paragraph."
        assert split_paragraphs(text) == [
            "This paragraph is long enough.",
            "Another real paragraph.",
        ]

    def test_min_chars_boundary(self) -> None:
        assert split_paragraphs("exactly10!") == ["exactly10!"]
        assert split_paragraphs("nine char") == []


# ======================================================================
# PDFProcessor
# ======================================================================


class TestPDFProcessor:
    def test_extracts_pages_as_paragraphs(self, make_pdf, tmp_path: Path) -> None:
        make_pdf(
            ["The sky is blue over the harbour.", "The second page talks about tides."],
            name="notes.pdf",
        )
        docs = PDFProcessor().process(str(tmp_path / "notes.pdf"))

        assert len(docs) == 1
        doc = docs[0]
        assert "The sky is blue over the harbour." in doc.text
        assert "The second page talks about tides." in doc.text
        assert "\n\n" in doc.text
        assert doc.metadata["fileType"] == "pdf"
        assert doc.metadata["pageCount"] == 2
        assert isinstance(doc.metadata["pdfInfo"], dict)

    def test_blank_pdf_raises(self, make_pdf, tmp_path: Path) -> None:
        make_pdf([""], name="blank.pdf")
        with pytest.raises(ExtractionError, match="No readable text content found in PDF"):
            PDFProcessor().process(str(tmp_path / "blank.pdf"))

    def test_only_noise_raises(self, make_pdf, tmp_path: Path) -> None:
        make_pdf(["p. 1", "2"], name="noise.pdf")
        with pytest.raises(ExtractionError):
            PDFProcessor().process(str(tmp_path / "noise.pdf"))

    def test_corrupt_file_raises(self, tmp_path: Path) -> None:
        path = tmp_path / "broken.pdf"
        path.write_bytes(b"this is not a pdf at all")
        with pytest.raises(ExtractionError):
            PDFProcessor().process(str(path))

    def test_document_is_closed_after_read(self, monkeypatch: pytest.MonkeyPatch) -> None:
        page = MagicMock()
        page.get_text.return_value = "A single page with enough text."
        fake_doc = MagicMock()
        fake_doc.__len__.return_value = 1
        fake_doc.__getitem__.return_value = page
        fake_doc.metadata = {"title": "Notes", "author": ""}

        monkeypatch.setattr(
            "docqa.services.ingestion.source_processors.pdf_processor.fitz.open",
            MagicMock(return_value=fake_doc),
        )
        docs = PDFProcessor().process("ignored.pdf")

        fake_doc.close.assert_called_once()
        assert docs[0].metadata["pdfInfo"] == {"title": "Notes"}


# ======================================================================
# TextProcessor
# ======================================================================


class TestTextProcessor:
    def test_reads_utf8(self, tmp_path: Path) -> None:
        path = tmp_path / "a.txt"
        path.write_text("The sky is blue.", encoding="utf-8")
        docs = TextProcessor().process(str(path))
        assert docs == [ExtractedDocument(text="The sky is blue.", metadata={"fileType": "txt"})]

    def test_invalid_bytes_are_replaced(self, tmp_path: Path) -> None:
        path = tmp_path / "latin.txt"
        path.write_bytes(b"caf\xe9 au lait")
        docs = TextProcessor().process(str(path))
        assert docs[0].text.startswith("caf")
        assert "\ufffd" in docs[0].text

    def test_whitespace_only_yields_nothing(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.txt"
        path.write_text(" \n\t\n ")
        assert TextProcessor().process(str(path)) == []

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(ExtractionError):
            TextProcessor().process(str(tmp_path / "nope.txt"))


# ======================================================================
# FormatExtractor
# ======================================================================


class TestFormatExtractor:
    def test_supported_types(self) -> None:
        assert FormatExtractor().supported_types == SUPPORTED_TYPES == ("pdf", "txt")

    @pytest.mark.parametrize("declared", ["pdf", "PDF", "txt", "Txt"])
    def test_ensure_supported_normalizes(self, declared: str) -> None:
        assert FormatExtractor().ensure_supported(declared) == declared.lower()

    @pytest.mark.parametrize("declared", ["docx", "pptx", "xlsx", "png", ""])
    def test_unsupported_types_are_refused(self, declared: str) -> None:
        with pytest.raises(UnsupportedFormatError) as exc_info:
            FormatExtractor().ensure_supported(declared)
        assert "pdf, txt" in exc_info.value.message
        assert "convert" in exc_info.value.message

    def test_extract_dispatches_by_type(self) -> None:
        txt = MagicMock()
        txt.process.return_value = [ExtractedDocument(text="from txt")]
        pdf = MagicMock()
        extractor = FormatExtractor(processors={"pdf": pdf, "txt": txt})

        docs = extractor.extract("/tmp/whatever", "TXT")

        txt.process.assert_called_once_with("/tmp/whatever")
        pdf.process.assert_not_called()
        assert docs[0].text == "from txt"

    def test_extract_refuses_before_reading(self) -> None:
        pdf = MagicMock()
        extractor = FormatExtractor(processors={"pdf": pdf})
        with pytest.raises(UnsupportedFormatError):
            extractor.extract("/tmp/file.txt", "txt")
        pdf.process.assert_not_called()

    def test_extract_real_text_file(self, tmp_path: Path) -> None:
        path = tmp_path / "doc.txt"
        path.write_text("Plain text body.")
        docs = FormatExtractor().extract(str(path), "txt")
        assert docs[0].text == "Plain text body."
