"""OpenAI-compatible embedding provider adapter.

Wraps the ``openai`` async client to implement :class:`IEmbeddingProvider`.
One text per request; the returned vector is shape-checked before it can
reach the document store.
"""

from __future__ import annotations

import math
from typing import Any

import openai
import structlog

from docqa.config.settings import Settings
from docqa.interfaces.embedding_provider import IEmbeddingProvider
from docqa.providers.openai_errors import classify_openai_error
from docqa.utils.errors import EmbeddingError, ErrorKind

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_MODEL = "text-embedding-ada-002"

# Known embedding model dimensions.
_MODEL_DIMENSIONS: dict[str, int] = {
    "text-embedding-ada-002": 1536,
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
}

_INVALID_RESPONSE = "Invalid response from OpenAI embeddings API"


def _is_valid_vector(vector: Any, dimension: int) -> bool:
    """Return ``True`` for a list of finite real numbers of length *dimension*."""
    if not isinstance(vector, list) or len(vector) != dimension:
        return False
    return all(
        isinstance(v, (int, float)) and not isinstance(v, bool) and math.isfinite(v)
        for v in vector
    )


class OpenAIEmbeddingProvider(IEmbeddingProvider):
    """Embedding provider backed by an OpenAI-compatible embeddings API.

    Uses ``text-embedding-ada-002`` (1536 dims) by default.  The expected
    dimension comes from ``EMBEDDING_DIMENSION`` when set, otherwise from the
    model name.
    """

    def __init__(self, settings: Settings) -> None:
        self._api_key = settings.openai_api_key

        client_kwargs: dict = {
            "api_key": self._api_key,
            "timeout": openai.Timeout(25.0, connect=5.0),
        }
        if settings.openai_base_url:
            client_kwargs["base_url"] = settings.openai_base_url

        self._client = openai.AsyncOpenAI(**client_kwargs)
        self._model = settings.openai_embedding_model or _DEFAULT_MODEL
        self._dimension = settings.embedding_dimension or _MODEL_DIMENSIONS.get(self._model, 1536)

    # ------------------------------------------------------------------
    # IEmbeddingProvider implementation
    # ------------------------------------------------------------------

    async def embed_single(self, text: str) -> list[float]:
        """Embed *text* with one API call and validate the vector shape."""
        try:
            response = await self._client.embeddings.create(
                model=self._model,
                input=text,
                encoding_format="float",
            )
        except openai.OpenAIError as exc:
            kind = classify_openai_error(exc)
            logger.warning(
                "openai_embedding_failed",
                model=self._model,
                kind=kind.value,
                error=str(exc),
            )
            raise EmbeddingError(
                message=f"OpenAI embeddings API error: {exc}",
                provider_name=self.get_provider_name(),
                kind=kind,
            ) from exc

        data = getattr(response, "data", None)
        vector = getattr(data[0], "embedding", None) if data else None
        if not _is_valid_vector(vector, self._dimension):
            logger.error(
                "openai_embedding_invalid",
                model=self._model,
                expected_dimension=self._dimension,
                received_length=len(vector) if isinstance(vector, list) else None,
            )
            raise EmbeddingError(
                message=_INVALID_RESPONSE,
                provider_name=self.get_provider_name(),
                kind=ErrorKind.PERMANENT,
            )

        logger.debug(
            "openai_embedding",
            model=self._model,
            chars=len(text),
            tokens=response.usage.total_tokens if getattr(response, "usage", None) else None,
        )
        return [float(v) for v in vector]

    def get_dimension(self) -> int:
        return self._dimension

    def get_provider_name(self) -> str:
        return f"openai-{self._model}"

    def is_available(self) -> bool:
        """Return ``True`` if an API key is configured."""
        return bool(self._api_key)
