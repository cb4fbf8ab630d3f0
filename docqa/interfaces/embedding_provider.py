"""Abstract base class for text-embedding service providers.

Defines the contract for turning one text into one fixed-length vector.
The ingestion pipeline calls it once per chunk and the answerer once per
question.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementations:
#   OpenAIEmbeddingProvider -- text-embedding-ada-002 (or any OpenAI-compatible model)
# Located in: docqa/providers/embedding/
class IEmbeddingProvider(ABC):
    """Contract for text-embedding services used by the RAG pipeline."""

    @abstractmethod
    async def embed_single(self, text: str) -> list[float]:
        """Generate an embedding vector for a single text string.

        Parameters
        ----------
        text:
            The text string to embed.

        Returns
        -------
        list[float]
            The embedding vector, always exactly :meth:`get_dimension` long.

        Raises
        ------
        docqa.utils.errors.EmbeddingError
            If the API call fails or the response is not a numeric vector
            of the expected length.  The error's ``kind`` tells transient
            failures from permanent ones.
        """

    @abstractmethod
    def get_dimension(self) -> int:
        """Return the dimensionality of the embedding vectors.

        Must stay constant for the provider's lifetime and match the
        dimension of the document store's vector column.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"openai-text-embedding-ada-002"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if credentials are configured (no network call)."""
