"""Pydantic request/response schemas for the docqa API.

Field names are snake_case in Python; where the browser client expects
camelCase on the wire (``chatHistory``, ``deletedCount``) an alias maps
between the two.  FastAPI serializes responses by alias.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from docqa.models.documents import ChatTurn, IngestionResult, SourceExcerpt


class ProcessRequest(BaseModel):
    """Files to ingest: signed URLs, or object-store paths to sign first."""

    files: list[str] | None = None


class ProcessResponse(BaseModel):
    """Per-file ingestion results for one upload batch."""

    success: bool = True
    message: str = "Files processed successfully"
    results: list[IngestionResult] = Field(default_factory=list)


class AskRequest(BaseModel):
    """A question and the recent conversation it belongs to."""

    model_config = ConfigDict(populate_by_name=True)

    question: str | None = None
    chat_history: list[ChatTurn] = Field(default_factory=list, alias="chatHistory")


class AskResponse(BaseModel):
    """Answer text and the shortened chunks it was grounded on."""

    answer: str
    sources: list[SourceExcerpt] = Field(default_factory=list)


class CleanupResponse(BaseModel):
    """Outcome of force-clearing the document store."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    deleted_count: int = Field(alias="deletedCount")
    remaining_count: int = Field(alias="remainingCount")


class HealthResponse(BaseModel):
    """Liveness response."""

    status: str = "ok"
    version: str
    environment: str
    timestamp: str


class ErrorResponse(BaseModel):
    """Standard error response body."""

    error: str
    message: str
    hint: str | None = None
    details: str | None = None
