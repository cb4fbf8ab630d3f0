"""Recursive character text splitting with a small overlap.

Splits extracted document text into chunks of at most ``chunk_size``
characters (2000 by default) sized for a single embedding call.

The splitter tries the coarsest separator first (blank lines, i.e.
paragraphs), then falls back to single newlines, spaces, and finally
individual characters for any piece that is still too long.  Adjacent
pieces are greedily merged up to the size limit; when a chunk is emitted,
its trailing pieces totalling at most ``chunk_overlap`` characters are
carried into the next chunk so a phrase cut at a boundary still appears
whole in one of them.

Output is a pure function of the input text and the two parameters: the
same text always yields the same chunks in the same order, and no chunk is
ever empty.
"""

from __future__ import annotations

import structlog

from docqa.models.documents import ExtractedDocument

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_SEPARATORS: tuple[str, ...] = ("\n\n", "\n", " ", "")


class TextChunker:
    """Splits text into overlapping, order-preserving chunks.

    Parameters
    ----------
    chunk_size:
        Maximum characters per chunk (default 2000).
    chunk_overlap:
        Maximum characters carried over between consecutive chunks
        (default 20).
    separators:
        Separators tried from coarsest to finest.  The empty string means
        "split into characters" and should stay last.
    """

    def __init__(
        self,
        chunk_size: int = 2000,
        chunk_overlap: int = 20,
        separators: tuple[str, ...] = _DEFAULT_SEPARATORS,
    ) -> None:
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        if chunk_overlap < 0 or chunk_overlap >= chunk_size:
            raise ValueError(
                f"chunk_overlap ({chunk_overlap}) must be >= 0 and smaller "
                f"than chunk_size ({chunk_size})"
            )
        self._chunk_size = chunk_size
        self._chunk_overlap = chunk_overlap
        self._separators = separators

    @property
    def chunk_size(self) -> int:
        return self._chunk_size

    @property
    def chunk_overlap(self) -> int:
        return self._chunk_overlap

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def split(self, text: str) -> list[str]:
        """Split *text* into chunks.  Blank input returns an empty list."""
        if not text or not text.strip():
            return []
        return self._split_text(text, list(self._separators))

    def split_documents(self, documents: list[ExtractedDocument]) -> list[tuple[str, dict]]:
        """Split every document, pairing each chunk with a copy of its metadata.

        Returns
        -------
        list[tuple[str, dict]]
            ``(chunk_text, metadata)`` pairs in document order, then chunk
            order within each document.
        """
        pairs: list[tuple[str, dict]] = []
        for document in documents:
            for chunk in self.split(document.text):
                pairs.append((chunk, dict(document.metadata)))

        logger.debug(
            "chunking_complete",
            documents=len(documents),
            num_chunks=len(pairs),
            avg_chars=(sum(len(c) for c, _ in pairs) // len(pairs)) if pairs else 0,
        )
        return pairs

    # ------------------------------------------------------------------
    # Recursive splitting
    # ------------------------------------------------------------------

    def _split_text(self, text: str, separators: list[str]) -> list[str]:
        # Pick the first separator present in the text; "" always matches.
        separator = separators[-1]
        finer: list[str] = []
        for i, candidate in enumerate(separators):
            if candidate == "":
                separator = candidate
                break
            if candidate in text:
                separator = candidate
                finer = separators[i + 1 :]
                break

        pieces = text.split(separator) if separator else list(text)
        pieces = [p for p in pieces if p]

        chunks: list[str] = []
        fitting: list[str] = []
        for piece in pieces:
            if len(piece) < self._chunk_size:
                fitting.append(piece)
                continue
            if fitting:
                chunks.extend(self._merge_pieces(fitting, separator))
                fitting = []
            if finer:
                chunks.extend(self._split_text(piece, finer))
            else:
                stripped = piece.strip()
                if stripped:
                    chunks.append(stripped)
        if fitting:
            chunks.extend(self._merge_pieces(fitting, separator))
        return chunks

    def _merge_pieces(self, pieces: list[str], separator: str) -> list[str]:
        """Greedily join *pieces* into chunks, carrying a small overlap forward."""
        sep_len = len(separator)
        chunks: list[str] = []
        window: list[str] = []
        total = 0

        for piece in pieces:
            piece_len = len(piece)
            if total + piece_len + (sep_len if window else 0) > self._chunk_size and window:
                joined = separator.join(window).strip()
                if joined:
                    chunks.append(joined)
                # Shrink the window to the overlap budget, and further if the
                # next piece would still not fit.
                while window and (
                    total > self._chunk_overlap
                    or total + piece_len + (sep_len if window else 0) > self._chunk_size
                ):
                    total -= len(window[0]) + (sep_len if len(window) > 1 else 0)
                    window.pop(0)
            window.append(piece)
            total += piece_len + (sep_len if len(window) > 1 else 0)

        joined = separator.join(window).strip()
        if joined:
            chunks.append(joined)
        return chunks
