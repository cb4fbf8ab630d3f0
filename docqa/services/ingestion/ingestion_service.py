"""Orchestrator for the document ingestion pipeline.

Pipeline stages: **download -> extract -> chunk -> embed -> store**.

:class:`IngestionService` coordinates its collaborators (format extractor,
chunker, embedding provider, document store) without any of them knowing
about each other.  All dependencies are injected via the constructor.

Per file:

    1. Clean the declared name (drop ``?query``), derive the type from the
       extension, and refuse unsupported types before any network I/O.
    2. Download the signed URL with the shared ``httpx.AsyncClient``.
    3. Write the bytes to a temp file unique to this call.
    4. FormatExtractor -- plain text plus format metadata.
    5. TextChunker -- ~2000-character chunks with a 20-character overlap.
    6. For each chunk, in order: embed, then insert with numbering metadata.

The temp file is removed on every exit path.  A failure on any chunk aborts
the file; chunks already written stay in the store until the next batch
clears it.
"""

from __future__ import annotations

import asyncio
import re
import time
import uuid
from contextlib import aclosing, contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any, Iterator

import httpx
import structlog

from docqa.models.documents import IngestionResult
from docqa.services.ingestion.chunker import TextChunker
from docqa.services.ingestion.format_extractor import FormatExtractor
from docqa.utils.concurrency import ordered_bounded_map
from docqa.utils.errors import DownloadError, ErrorKind, NoContentError, ProcessingLimitError

if TYPE_CHECKING:
    from docqa.interfaces.document_store import IDocumentStore
    from docqa.interfaces.embedding_provider import IEmbeddingProvider

logger = structlog.get_logger(logger_name=__name__)

_UNSAFE_NAME_CHARS = re.compile(r"[^A-Za-z0-9._-]")


def clean_file_name(file_name: str) -> str:
    """Strip a URL query string from a declared file name."""
    return file_name.split("?")[0]


def file_type_of(file_name: str) -> str:
    """Return the lower-cased text after the last ``.`` (the whole name if none)."""
    return file_name.rsplit(".", 1)[-1].lower()


def _sanitize(file_name: str) -> str:
    return _UNSAFE_NAME_CHARS.sub("_", Path(file_name).name)[:100] or "upload"


@contextmanager
def _scoped_temp_file(path: Path) -> Iterator[Path]:
    """Yield *path* and remove it afterwards, whatever happened inside."""
    try:
        yield path
    finally:
        try:
            path.unlink(missing_ok=True)
            logger.debug("temp_file_removed", path=str(path))
        except OSError as exc:
            logger.error("temp_file_cleanup_failed", path=str(path), error=str(exc))


class IngestionService:
    """Orchestrates download -> extract -> chunk -> embed -> store.

    Parameters
    ----------
    extractor:
        Turns a local file of a declared type into extracted documents.
    chunker:
        Splits document text into embedding-sized chunks.
    embedding_provider:
        Embeds one chunk per call.
    document_store:
        Persists chunks with their vectors and metadata.
    http_client:
        Shared async client used to download uploads.
    temp_dir:
        Directory for per-call download files.  Must exist and be writable.
    embedding_concurrency:
        Maximum embedding calls in flight for one file.  ``1`` embeds and
        stores strictly one chunk after another.  Higher values overlap
        the embedding calls but still insert in chunk order.
    max_chunks_per_file:
        A file producing more chunks than this is refused.
    max_files_per_batch:
        A batch with more files than this is refused.
    """

    def __init__(
        self,
        extractor: FormatExtractor,
        chunker: TextChunker,
        embedding_provider: IEmbeddingProvider,
        document_store: IDocumentStore,
        http_client: httpx.AsyncClient,
        temp_dir: str | Path,
        embedding_concurrency: int = 1,
        max_chunks_per_file: int = 500,
        max_files_per_batch: int = 10,
    ) -> None:
        if embedding_concurrency < 1:
            raise ValueError(f"embedding_concurrency must be >= 1, got {embedding_concurrency}")
        self._extractor = extractor
        self._chunker = chunker
        self._embedding_provider = embedding_provider
        self._document_store = document_store
        self._http = http_client
        self._temp_dir = Path(temp_dir)
        self._embedding_concurrency = embedding_concurrency
        self._max_chunks_per_file = max_chunks_per_file
        self._max_files_per_batch = max_files_per_batch

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def ingest(
        self,
        file_url: str,
        file_name: str,
        *,
        uploaded_by: str | None = None,
    ) -> IngestionResult:
        """Ingest one uploaded file.

        Returns
        -------
        IngestionResult
            ``chunks`` is the number of chunks embedded and stored.

        Raises
        ------
        UnsupportedFormatError
            Before any download, if the extension is not accepted.
        DownloadError
            If the file URL answers with a non-2xx status or is unreachable.
        ExtractionError, NoContentError
            If the file holds no usable text.
        ProcessingLimitError
            If the file splits into more than ``max_chunks_per_file`` chunks.
        EmbeddingError, DocumentStoreError
            If any chunk fails; earlier chunks are not rolled back.
        """
        start = time.monotonic()
        clean_name = clean_file_name(file_name)
        file_type = self._extractor.ensure_supported(file_type_of(clean_name))

        logger.info("ingestion_started", file_name=clean_name, file_type=file_type)

        content = await self._download(file_url)
        temp_path = self._temp_dir / (
            f"temp_{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}_{_sanitize(clean_name)}"
        )

        with _scoped_temp_file(temp_path):
            await asyncio.to_thread(temp_path.write_bytes, content)
            documents = await asyncio.to_thread(self._extractor.extract, str(temp_path), file_type)
            if not documents:
                raise NoContentError(message="No content could be extracted from the document")

            pairs = self._chunker.split_documents(documents)
            if len(pairs) > self._max_chunks_per_file:
                raise ProcessingLimitError(
                    message=(
                        f"{clean_name} produced {len(pairs)} chunks, "
                        f"more than the limit of {self._max_chunks_per_file}"
                    ),
                    hint="Try uploading a smaller file or splitting it into parts.",
                )
            if not pairs:
                raise NoContentError(message="No content could be extracted from the document")

            stored = await self._embed_and_store(pairs, clean_name, uploaded_by)

        logger.info(
            "ingestion_complete",
            file_name=clean_name,
            chunks=stored,
            elapsed_s=round(time.monotonic() - start, 2),
        )
        return IngestionResult(
            success=True,
            message=f"Processed {stored} chunks from {clean_name}",
            chunks=stored,
            status="complete",
        )

    def validate_batch(self, file_names: list[str]) -> None:
        """Refuse a batch before anything is cleared or downloaded.

        Raises
        ------
        ProcessingLimitError
            If the batch holds more than ``max_files_per_batch`` files.
        UnsupportedFormatError
            If any file has an unsupported extension.
        """
        if len(file_names) > self._max_files_per_batch:
            raise ProcessingLimitError(
                message=(
                    f"Received {len(file_names)} files, more than the limit of "
                    f"{self._max_files_per_batch} per request"
                ),
            )
        for file_name in file_names:
            self._extractor.ensure_supported(file_type_of(clean_file_name(file_name)))

    async def ingest_batch(
        self,
        files: list[tuple[str, str]],
        *,
        uploaded_by: str | None = None,
    ) -> list[IngestionResult]:
        """Ingest ``(url, name)`` pairs one after another.

        The first failing file aborts the batch.  Clearing the store before
        a batch is the caller's responsibility.
        """
        self.validate_batch([file_name for _, file_name in files])

        results: list[IngestionResult] = []
        for file_url, file_name in files:
            results.append(await self.ingest(file_url, file_name, uploaded_by=uploaded_by))
        return results

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _download(self, file_url: str) -> bytes:
        try:
            response = await self._http.get(file_url, follow_redirects=True)
        except httpx.HTTPError as exc:
            logger.warning("file_download_failed", error=str(exc))
            raise DownloadError(
                message=f"Failed to fetch file: {exc}",
                kind=ErrorKind.TRANSIENT,
            ) from exc

        if not response.is_success:
            logger.warning(
                "file_download_failed",
                status=response.status_code,
                reason=response.reason_phrase,
            )
            raise DownloadError(
                message=f"Failed to fetch file: {response.reason_phrase}",
                status_code=response.status_code,
            )

        logger.debug("file_downloaded", bytes=len(response.content))
        return response.content

    async def _embed_and_store(
        self,
        pairs: list[tuple[str, dict[str, Any]]],
        file_name: str,
        uploaded_by: str | None,
    ) -> int:
        total = len(pairs)
        texts = [text for text, _ in pairs]
        stored = 0

        vectors = ordered_bounded_map(
            self._embedding_provider.embed_single,
            texts,
            self._embedding_concurrency,
        )
        async with aclosing(vectors):
            async for embedding in vectors:
                text, extracted_meta = pairs[stored]
                metadata: dict[str, Any] = {
                    **extracted_meta,
                    "fileName": file_name,
                    "chunkNumber": stored + 1,
                    "totalChunks": total,
                    "timestamp": datetime.now(timezone.utc).isoformat(),
                }
                if uploaded_by is not None:
                    metadata["uploadedBy"] = uploaded_by

                chunk_id = await self._document_store.add(text, embedding, metadata)
                stored += 1
                logger.debug(
                    "chunk_stored",
                    file_name=file_name,
                    chunk_number=stored,
                    total_chunks=total,
                    chunk_id=chunk_id,
                )
        return stored
