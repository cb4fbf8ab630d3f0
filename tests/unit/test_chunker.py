"""Unit tests for TextChunker -- size bound, overlap, determinism, validation."""

from __future__ import annotations

import pytest

from docqa.models.documents import ExtractedDocument
from docqa.services.ingestion.chunker import TextChunker


def _words(n: int) -> str:
    return " ".join(f"word{i}" for i in range(n))


class TestTextChunker:
    def test_short_text_is_one_chunk(self) -> None:
        chunker = TextChunker()
        assert chunker.split("The sky is blue.") == ["The sky is blue."]

    def test_blank_text_yields_nothing(self) -> None:
        chunker = TextChunker()
        assert chunker.split("") == []
        assert chunker.split("   \n\n\t ") == []

    def test_defaults(self) -> None:
        chunker = TextChunker()
        assert chunker.chunk_size == 2000
        assert chunker.chunk_overlap == 20

    def test_every_chunk_respects_size(self) -> None:
        chunker = TextChunker(chunk_size=200, chunk_overlap=20)
        text = "\n\n".join(_words(40) for _ in range(10))
        chunks = chunker.split(text)
        assert len(chunks) > 1
        assert all(0 < len(c) <= 200 for c in chunks)

    def test_paragraphs_are_kept_together_when_they_fit(self) -> None:
        chunker = TextChunker(chunk_size=50, chunk_overlap=0)
        text = "First paragraph here.\n\nSecond paragraph here.\n\nThird one."
        chunks = chunker.split(text)
        assert chunks[0] == "First paragraph here.\n\nSecond paragraph here."
        assert chunks[-1] == "Third one."

    def test_overlap_carries_trailing_words(self) -> None:
        chunker = TextChunker(chunk_size=60, chunk_overlap=15)
        text = _words(40)
        chunks = chunker.split(text)
        assert len(chunks) > 2
        for previous, current in zip(chunks, chunks[1:]):
            carried = previous.split(" ")[-1]
            words = current.split(" ")
            assert carried in words[:3]
            overlap = " ".join(words[: words.index(carried) + 1])
            assert len(overlap) <= 15

    def test_zero_overlap_shares_nothing(self) -> None:
        chunker = TextChunker(chunk_size=60, chunk_overlap=0)
        chunks = chunker.split(_words(40))
        joined = " ".join(chunks)
        assert joined == _words(40)

    def test_unbroken_text_falls_back_to_characters(self) -> None:
        chunker = TextChunker(chunk_size=100, chunk_overlap=10)
        chunks = chunker.split("x" * 450)
        assert all(len(c) <= 100 for c in chunks)
        assert "".join(chunks).count("x") >= 450

    def test_deterministic(self) -> None:
        chunker = TextChunker(chunk_size=120, chunk_overlap=20)
        text = "\n".join(_words(15) for _ in range(20))
        assert chunker.split(text) == chunker.split(text)

    def test_no_empty_chunks(self) -> None:
        chunker = TextChunker(chunk_size=30, chunk_overlap=5)
        text = "alpha\n\n\n\n   \n\nbeta gamma delta epsilon zeta eta theta\n\n \n"
        assert all(c.strip() for c in chunker.split(text))

    def test_split_documents_pairs_metadata(self) -> None:
        chunker = TextChunker(chunk_size=50, chunk_overlap=0)
        docs = [
            ExtractedDocument(text=_words(20), metadata={"fileType": "txt"}),
            ExtractedDocument(text="short", metadata={"fileType": "pdf", "pageCount": 1}),
        ]
        pairs = chunker.split_documents(docs)
        assert len(pairs) > 2
        assert all(meta == {"fileType": "txt"} for _, meta in pairs[:-1])
        assert pairs[-1] == ("short", {"fileType": "pdf", "pageCount": 1})

    def test_split_documents_copies_metadata(self) -> None:
        chunker = TextChunker(chunk_size=30, chunk_overlap=0)
        pairs = chunker.split_documents([ExtractedDocument(text=_words(20), metadata={"a": 1})])
        pairs[0][1]["a"] = 2
        assert pairs[1][1]["a"] == 1

    @pytest.mark.parametrize(
        ("size", "overlap"),
        [(0, 0), (-5, 0), (100, -1), (100, 100), (100, 150)],
    )
    def test_invalid_parameters(self, size: int, overlap: int) -> None:
        with pytest.raises(ValueError):
            TextChunker(chunk_size=size, chunk_overlap=overlap)
