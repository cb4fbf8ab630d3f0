"""ChromaDB document store adapter for local development.

Wraps ``chromadb.PersistentClient`` to implement :class:`IDocumentStore`
with cosine distance, so the service runs without a hosted database
(``VECTOR_STORE=chromadb``).  ChromaDB's client is synchronous; every call
is pushed to a worker thread.
"""

from __future__ import annotations

import asyncio
import json
import os
import uuid
from typing import Any

# Must be set before chromadb is imported.
os.environ.setdefault("ANONYMIZED_TELEMETRY", "False")

import chromadb
import structlog

from docqa.interfaces.document_store import IDocumentStore
from docqa.models.documents import RetrievedChunk
from docqa.utils.errors import DocumentStoreError

logger = structlog.get_logger(logger_name=__name__)

# Full metadata is kept as one JSON string; chroma only accepts scalar values.
_METADATA_KEY = "_metadata"
_OWNER_KEY = "uploadedBy"


class _NoopEmbeddingFunction(chromadb.EmbeddingFunction[list[str]]):
    """Embedding function that is never called.

    docqa always passes pre-computed embeddings; without this ChromaDB
    would download its default ONNX model on collection creation.
    """

    def __call__(self, input: list[str]) -> list[list[float]]:
        raise NotImplementedError("docqa passes pre-computed embeddings to ChromaDB")

    def name(self) -> str:
        return "noop_precomputed"


def _to_chroma_metadata(metadata: dict[str, Any]) -> dict[str, Any]:
    flat: dict[str, Any] = {_METADATA_KEY: json.dumps(metadata, default=str)}
    owner = metadata.get(_OWNER_KEY)
    if owner is not None:
        flat[_OWNER_KEY] = str(owner)
    return flat


def _from_chroma_metadata(flat: dict[str, Any] | None) -> dict[str, Any]:
    if not flat or _METADATA_KEY not in flat:
        return dict(flat or {})
    return json.loads(flat[_METADATA_KEY])


class ChromaDBDocumentStore(IDocumentStore):
    """Document store backed by a persistent local ChromaDB collection."""

    def __init__(
        self,
        dimension: int,
        persist_directory: str = "./data/chromadb",
        collection_name: str = "docqa_documents",
    ) -> None:
        self._dimension = dimension
        self._client = chromadb.PersistentClient(
            path=persist_directory,
            settings=chromadb.config.Settings(anonymized_telemetry=False),
        )
        try:
            self._collection = self._client.get_or_create_collection(
                name=collection_name,
                metadata={"hnsw:space": "cosine"},
                embedding_function=_NoopEmbeddingFunction(),
            )
        except ValueError:
            # A collection persisted with a different embedding function
            # refuses ours; vectors are always supplied, so open it as is.
            self._collection = self._client.get_or_create_collection(
                name=collection_name,
                metadata={"hnsw:space": "cosine"},
            )

    # ------------------------------------------------------------------
    # IDocumentStore implementation
    # ------------------------------------------------------------------

    async def add(
        self,
        content: str,
        embedding: list[float],
        metadata: dict[str, Any],
    ) -> str:
        if len(embedding) != self._dimension:
            raise DocumentStoreError(
                message=(
                    f"Embedding has {len(embedding)} dimensions, "
                    f"store expects {self._dimension}"
                ),
                provider_name=self.get_provider_name(),
            )
        chunk_id = uuid.uuid4().hex
        try:
            await asyncio.to_thread(
                self._collection.add,
                ids=[chunk_id],
                embeddings=[embedding],
                documents=[content],
                metadatas=[_to_chroma_metadata(metadata)],
            )
        except Exception as exc:
            raise DocumentStoreError(
                message=f"ChromaDB insert failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        return chunk_id

    async def search(
        self,
        query_embedding: list[float],
        k: int = 3,
        threshold: float = 0.5,
        owner_id: str | None = None,
    ) -> list[RetrievedChunk]:
        try:
            total = await self.count(owner_id)
            if total == 0:
                return []
            kwargs: dict[str, Any] = {
                "query_embeddings": [query_embedding],
                "n_results": min(k, total),
            }
            if owner_id is not None:
                kwargs["where"] = {_OWNER_KEY: owner_id}
            results = await asyncio.to_thread(self._collection.query, **kwargs)
        except DocumentStoreError:
            raise
        except Exception as exc:
            raise DocumentStoreError(
                message=f"ChromaDB query failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        if not results["documents"] or not results["documents"][0]:
            return []

        ids = results["ids"][0]
        documents = results["documents"][0]
        metadatas = results["metadatas"][0] if results["metadatas"] else [None] * len(documents)
        distances = results["distances"][0] if results["distances"] else [1.0] * len(documents)

        retrieved: list[RetrievedChunk] = []
        for chunk_id, doc_text, meta, distance in zip(ids, documents, metadatas, distances):
            similarity = 1.0 - distance
            if similarity <= threshold:
                continue
            retrieved.append(
                RetrievedChunk(
                    id=chunk_id,
                    content=doc_text,
                    metadata=_from_chroma_metadata(meta),
                    similarity=similarity,
                )
            )
        retrieved.sort(key=lambda rc: rc.similarity, reverse=True)

        logger.info(
            "chromadb_query",
            requested=k,
            results_count=len(retrieved),
            top_score=retrieved[0].similarity if retrieved else 0.0,
        )
        return retrieved

    async def delete_all(self, owner_id: str | None = None) -> int:
        try:
            if owner_id is None:
                existing = await asyncio.to_thread(self._collection.get, include=[])
            else:
                existing = await asyncio.to_thread(
                    self._collection.get, where={_OWNER_KEY: owner_id}, include=[]
                )
            ids = existing["ids"] or []
            if ids:
                await asyncio.to_thread(self._collection.delete, ids=ids)
        except Exception as exc:
            raise DocumentStoreError(
                message=f"ChromaDB delete failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        logger.info("chromadb_delete_all", deleted_count=len(ids), owner=owner_id)
        return len(ids)

    async def count(self, owner_id: str | None = None) -> int:
        try:
            if owner_id is None:
                return await asyncio.to_thread(self._collection.count)
            existing = await asyncio.to_thread(
                self._collection.get, where={_OWNER_KEY: owner_id}, include=[]
            )
            return len(existing["ids"] or [])
        except Exception as exc:
            raise DocumentStoreError(
                message=f"ChromaDB count failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    async def verify(self) -> None:
        await self.count()

    def get_provider_name(self) -> str:
        return "chromadb"
