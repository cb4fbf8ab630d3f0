"""Abstract base class for the vector-capable document store.

The store itself (pgvector behind Supabase in production, ChromaDB for
local development) is an external system.  This interface is the access
pattern the pipeline relies on: add, similarity search, delete-all, count.

When per-user scoping is enabled, callers pass ``owner_id`` and every
operation only sees chunks whose ``uploadedBy`` metadata matches it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from docqa.models.documents import RetrievedChunk


# Concrete implementations: SupabaseDocumentStore, ChromaDBDocumentStore
# Located in: docqa/providers/document_store/
class IDocumentStore(ABC):
    """Contract for persisting chunks and answering similarity queries."""

    @abstractmethod
    async def add(
        self,
        content: str,
        embedding: list[float],
        metadata: dict[str, Any],
    ) -> str:
        """Insert one chunk and return its store-assigned id.

        Raises
        ------
        docqa.utils.errors.DocumentStoreError
            If the embedding length differs from the store's dimension or
            the write is rejected.
        """

    @abstractmethod
    async def search(
        self,
        query_embedding: list[float],
        k: int = 3,
        threshold: float = 0.5,
        owner_id: str | None = None,
    ) -> list[RetrievedChunk]:
        """Return up to *k* chunks with cosine similarity above *threshold*.

        Results are ordered by descending similarity.
        """

    @abstractmethod
    async def delete_all(self, owner_id: str | None = None) -> int:
        """Delete every chunk (or every chunk of *owner_id*).

        Returns
        -------
        int
            Number of chunks removed.
        """

    @abstractmethod
    async def count(self, owner_id: str | None = None) -> int:
        """Return the number of stored chunks (or of *owner_id*'s chunks)."""

    @abstractmethod
    async def verify(self) -> None:
        """Probe the store once at startup.

        Raises
        ------
        docqa.utils.errors.DocumentStoreError
            If the store is unreachable or the documents table is missing.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"supabase"``."""
