"""docqa domain models -- re-exports the public model classes."""

from __future__ import annotations

from docqa.models.documents import (
    Answer,
    AuthenticatedUser,
    ChatTurn,
    DocumentChunk,
    ExtractedDocument,
    IngestionResult,
    RetrievedChunk,
    SourceExcerpt,
)

__all__ = [
    "Answer",
    "AuthenticatedUser",
    "ChatTurn",
    "DocumentChunk",
    "ExtractedDocument",
    "IngestionResult",
    "RetrievedChunk",
    "SourceExcerpt",
]
