"""Supabase (Postgres + pgvector) document store adapter.

Talks to the database's PostgREST gateway over the shared
``httpx.AsyncClient``.  Expects a ``documents`` table with ``content``,
``embedding vector(N)`` and ``metadata jsonb`` columns, and a
``match_documents(query_embedding, match_threshold, match_count, filter)``
SQL function returning ``id, content, metadata, similarity`` ordered by
cosine similarity.  ``filter`` defaults to ``'{}'`` (no restriction) and is
only sent when searches are scoped to one uploader.  The function is
defined in :data:`MATCH_DOCUMENTS_SQL`; databases created with the older
three-argument version must run it before enabling per-user scoping.
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from docqa.interfaces.document_store import IDocumentStore
from docqa.models.documents import RetrievedChunk
from docqa.utils.errors import DocumentStoreError, ErrorKind, kind_for_status

logger = structlog.get_logger(logger_name=__name__)

_OWNER_FILTER_COLUMN = "metadata->>uploadedBy"

MATCH_DOCUMENTS_SQL = """
drop function if exists match_documents (vector, float, int);

create or replace function match_documents (
  query_embedding vector(1536),
  match_threshold float,
  match_count int,
  filter jsonb default '{}'
) returns table (
  id bigint,
  content text,
  metadata jsonb,
  similarity float
)
language sql stable
as $$
  select
    documents.id,
    documents.content,
    documents.metadata,
    1 - (documents.embedding <=> query_embedding) as similarity
  from documents
  where documents.metadata @> filter
    and 1 - (documents.embedding <=> query_embedding) > match_threshold
  order by documents.embedding <=> query_embedding
  limit match_count;
$$;
"""


def _parse_content_range(header: str | None) -> int:
    """Return the total from a PostgREST ``Content-Range`` header (``0-9/42``, ``*/0``)."""
    if not header or "/" not in header:
        raise ValueError(f"Missing count in Content-Range header: {header!r}")
    total = header.rsplit("/", 1)[1]
    if total == "*":
        raise ValueError("Content-Range total is unknown ('*')")
    return int(total)


def _error_detail(response: httpx.Response) -> str:
    """Return PostgREST's ``message`` field when the body is a JSON object."""
    if response.headers.get("content-type", "").startswith("application/json"):
        body = response.json()
        if isinstance(body, dict) and body.get("message"):
            return str(body["message"])
    return response.text


class SupabaseDocumentStore(IDocumentStore):
    """Document store backed by a Supabase ``documents`` table.

    Parameters
    ----------
    http_client:
        Shared async HTTP client (connection pooling, timeouts).
    supabase_url:
        Project URL, e.g. ``https://abc.supabase.co``.
    service_key:
        Service-role key; bypasses row-level security.
    dimension:
        Expected embedding length; inserts of any other length are refused.
    table:
        Table holding the chunks.
    match_function:
        Name of the similarity-search SQL function exposed as an RPC.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        supabase_url: str,
        service_key: str,
        dimension: int,
        table: str = "documents",
        match_function: str = "match_documents",
    ) -> None:
        self._http = http_client
        self._rest_url = f"{supabase_url.rstrip('/')}/rest/v1"
        self._service_key = service_key
        self._dimension = dimension
        self._table = table
        self._match_function = match_function

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

        response = await self._request(
            "POST",
            f"/{self._table}",
            params={"select": "id"},
            json={"content": content, "embedding": embedding, "metadata": metadata},
            prefer="return=representation",
        )
        rows = response.json()
        if not rows or "id" not in rows[0]:
            raise DocumentStoreError(
                message="Insert returned no row id",
                provider_name=self.get_provider_name(),
            )
        return str(rows[0]["id"])

    async def search(
        self,
        query_embedding: list[float],
        k: int = 3,
        threshold: float = 0.5,
        owner_id: str | None = None,
    ) -> list[RetrievedChunk]:
        payload: dict[str, Any] = {
            "query_embedding": query_embedding,
            "match_threshold": threshold,
            "match_count": k,
        }
        if owner_id is not None:
            payload["filter"] = {"uploadedBy": owner_id}

        response = await self._request("POST", f"/rpc/{self._match_function}", json=payload)
        rows = response.json() or []

        retrieved = [
            RetrievedChunk(
                id=str(row["id"]) if row.get("id") is not None else None,
                content=row.get("content") or "",
                metadata=row.get("metadata") or {},
                similarity=float(row.get("similarity", 0.0)),
            )
            for row in rows
            if row.get("content")
        ]
        retrieved = [rc for rc in retrieved if rc.similarity > threshold]
        retrieved.sort(key=lambda rc: rc.similarity, reverse=True)
        retrieved = retrieved[:k]

        logger.info(
            "supabase_match_documents",
            requested=k,
            results_count=len(retrieved),
            top_score=retrieved[0].similarity if retrieved else 0.0,
        )
        return retrieved

    async def delete_all(self, owner_id: str | None = None) -> int:
        response = await self._request(
            "DELETE",
            f"/{self._table}",
            params=self._scope_params({"id": "neq.0"}, owner_id),
            prefer="return=minimal,count=exact",
        )
        deleted = self._read_count(response)
        logger.info("supabase_delete_all", deleted_count=deleted, owner=owner_id)
        return deleted

    async def count(self, owner_id: str | None = None) -> int:
        response = await self._request(
            "HEAD",
            f"/{self._table}",
            params=self._scope_params({"select": "id"}, owner_id),
            prefer="count=exact",
        )
        return self._read_count(response)

    async def verify(self) -> None:
        await self._request("GET", f"/{self._table}", params={"select": "id", "limit": "1"})
        logger.info("supabase_store_ready", table=self._table)

    def get_provider_name(self) -> str:
        return "supabase"

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _scope_params(params: dict[str, str], owner_id: str | None) -> dict[str, str]:
        if owner_id is None:
            return params
        return {**params, _OWNER_FILTER_COLUMN: f"eq.{owner_id}"}

    def _read_count(self, response: httpx.Response) -> int:
        try:
            return _parse_content_range(response.headers.get("content-range"))
        except ValueError as exc:
            raise DocumentStoreError(
                message=str(exc),
                provider_name=self.get_provider_name(),
            ) from exc

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, str] | None = None,
        json: Any = None,
        prefer: str | None = None,
    ) -> httpx.Response:
        headers = {
            "apikey": self._service_key,
            "Authorization": f"Bearer {self._service_key}",
        }
        if prefer:
            headers["Prefer"] = prefer

        try:
            response = await self._http.request(
                method,
                f"{self._rest_url}{path}",
                params=params,
                json=json,
                headers=headers,
            )
        except httpx.HTTPError as exc:
            raise DocumentStoreError(
                message=f"Supabase request failed: {exc}",
                provider_name=self.get_provider_name(),
                kind=ErrorKind.TRANSIENT,
            ) from exc

        if response.status_code >= 400:
            detail = _error_detail(response)
            logger.warning(
                "supabase_http_error",
                method=method,
                path=path,
                status=response.status_code,
                detail=detail,
            )
            raise DocumentStoreError(
                message=f"Supabase {method} {path} failed ({response.status_code}): {detail}",
                provider_name=self.get_provider_name(),
                kind=kind_for_status(response.status_code),
            )
        return response
