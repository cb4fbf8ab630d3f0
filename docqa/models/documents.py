"""Data models for the ingestion and retrieval-augmented answering pipeline.

Pydantic v2 models, frozen so values handed between the extractor, chunker,
store and answerer cannot be mutated in transit.

Lifecycle of a document in docqa:

    1. EXTRACTION: an uploaded PDF/TXT becomes one or more
       :class:`ExtractedDocument` objects (plain text + format metadata).
    2. CHUNKING: text is split into ~2000-character overlapping slices.
    3. STORAGE: each slice is embedded and written as a
       :class:`DocumentChunk` (content + vector + metadata).
    4. RETRIEVAL: a question is embedded and the store returns the nearest
       chunks as :class:`RetrievedChunk` objects.
    5. ANSWERING: retrieved text conditions one chat completion; the
       caller receives an :class:`Answer`.

Metadata keys stay camelCase (``fileName``, ``chunkNumber``) because they
are stored as JSON and read back verbatim by the browser client.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ExtractedDocument(BaseModel):
    """Plain text pulled from one uploaded file, before chunking."""

    model_config = ConfigDict(frozen=True)

    text: str = Field(description="Extracted, cleaned text.")
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        description="Format-specific fields (fileType, pageCount, pdfInfo).",
    )


class DocumentChunk(BaseModel):
    """A chunk of a source document, ready for (or returned from) storage."""

    model_config = ConfigDict(frozen=True)

    id: str | None = Field(default=None, description="Store-assigned identifier.")
    content: str = Field(min_length=1, description="The chunk's text.")
    embedding: list[float] = Field(default_factory=list, description="Embedding vector.")
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        description="fileName, chunkNumber, totalChunks, timestamp and extractor fields.",
    )

    @property
    def file_name(self) -> str | None:
        return self.metadata.get("fileName")


class RetrievedChunk(BaseModel):
    """A stored chunk returned by similarity search."""

    model_config = ConfigDict(frozen=True)

    id: str | None = None
    content: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    similarity: float = Field(description="Cosine similarity to the query, 1.0 = identical.")

    @property
    def file_name(self) -> str | None:
        return self.metadata.get("fileName")


class IngestionResult(BaseModel):
    """Outcome of ingesting one file.  Not persisted."""

    model_config = ConfigDict(frozen=True)

    success: bool = True
    message: str
    chunks: int = Field(ge=0, description="Number of chunks embedded and stored.")
    status: str = "complete"


class SourceExcerpt(BaseModel):
    """Shortened chunk shown to the user alongside an answer."""

    model_config = ConfigDict(frozen=True)

    content: str
    metadata: dict[str, Any] = Field(default_factory=dict)


class Answer(BaseModel):
    """Result of a retrieval-augmented question."""

    model_config = ConfigDict(frozen=True)

    answer: str
    sources: list[SourceExcerpt] = Field(default_factory=list)


class ChatTurn(BaseModel):
    """One prior message in the conversation, as sent by the client."""

    model_config = ConfigDict(frozen=True)

    sender: str = "user"
    text: str = ""

    @property
    def role(self) -> str:
        return "user" if self.sender == "user" else "assistant"


class AuthenticatedUser(BaseModel):
    """Identity returned by the identity provider for a verified token."""

    model_config = ConfigDict(frozen=True)

    id: str
    email: str | None = None
