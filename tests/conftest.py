"""Shared pytest fixtures for the docqa test suite.

The fakes here implement the provider interfaces in memory so services and
routes can be exercised end to end without OpenAI or Supabase.
"""

from __future__ import annotations

import hashlib
import math
import re
import uuid
from typing import Any

import fitz
import pytest

from docqa.interfaces.document_store import IDocumentStore
from docqa.interfaces.embedding_provider import IEmbeddingProvider
from docqa.interfaces.identity_provider import IIdentityProvider
from docqa.interfaces.llm_provider import ILLMProvider
from docqa.interfaces.object_store import IObjectStore
from docqa.models.documents import AuthenticatedUser, RetrievedChunk
from docqa.utils.errors import AuthError

_TOKEN_RE = re.compile(r"[a-z0-9]+")


# ---------------------------------------------------------------------------
# Fake providers
# ---------------------------------------------------------------------------


class FakeEmbeddingProvider(IEmbeddingProvider):
    """Deterministic bag-of-words embedding.

    Each lower-cased token is hashed into one of ``dimension`` buckets and
    the counts are L2-normalised, so texts sharing words have a high cosine
    similarity and unrelated texts score near zero.
    """

    def __init__(self, dimension: int = 256) -> None:
        self._dimension = dimension
        self.calls: list[str] = []

    async def embed_single(self, text: str) -> list[float]:
        self.calls.append(text)
        vector = [0.0] * self._dimension
        for token in _TOKEN_RE.findall(text.lower()):
            bucket = int(hashlib.md5(token.encode()).hexdigest(), 16) % self._dimension
            vector[bucket] += 1.0
        norm = math.sqrt(sum(v * v for v in vector))
        if norm == 0:
            vector[0] = 1.0
            return vector
        return [v / norm for v in vector]

    def get_dimension(self) -> int:
        return self._dimension

    def get_provider_name(self) -> str:
        return "fake-embedding"

    def is_available(self) -> bool:
        return True


class InMemoryDocumentStore(IDocumentStore):
    """Document store over a Python list with exact cosine search."""

    def __init__(self) -> None:
        self.rows: list[dict[str, Any]] = []

    async def add(self, content: str, embedding: list[float], metadata: dict[str, Any]) -> str:
        chunk_id = uuid.uuid4().hex
        self.rows.append(
            {"id": chunk_id, "content": content, "embedding": embedding, "metadata": dict(metadata)}
        )
        return chunk_id

    async def search(
        self,
        query_embedding: list[float],
        k: int = 3,
        threshold: float = 0.5,
        owner_id: str | None = None,
    ) -> list[RetrievedChunk]:
        scored = [
            RetrievedChunk(
                id=row["id"],
                content=row["content"],
                metadata=row["metadata"],
                similarity=_cosine(query_embedding, row["embedding"]),
            )
            for row in self._scoped(owner_id)
        ]
        scored = [chunk for chunk in scored if chunk.similarity > threshold]
        scored.sort(key=lambda chunk: chunk.similarity, reverse=True)
        return scored[:k]

    async def delete_all(self, owner_id: str | None = None) -> int:
        doomed = self._scoped(owner_id)
        self.rows = [row for row in self.rows if row not in doomed]
        return len(doomed)

    async def count(self, owner_id: str | None = None) -> int:
        return len(self._scoped(owner_id))

    async def verify(self) -> None:
        return None

    def get_provider_name(self) -> str:
        return "memory"

    def _scoped(self, owner_id: str | None) -> list[dict[str, Any]]:
        if owner_id is None:
            return list(self.rows)
        return [row for row in self.rows if row["metadata"].get("uploadedBy") == owner_id]


class ScriptedLLM(ILLMProvider):
    """Chat provider that returns a fixed reply and records every call."""

    def __init__(self, reply: str = "Scripted answer.") -> None:
        self.reply = reply
        self.calls: list[dict[str, Any]] = []

    async def chat(
        self,
        messages: list[dict[str, str]],
        temperature: float = 0.3,
        max_tokens: int = 500,
    ) -> str:
        self.calls.append(
            {"messages": messages, "temperature": temperature, "max_tokens": max_tokens}
        )
        return self.reply

    def get_provider_name(self) -> str:
        return "scripted"

    def is_available(self) -> bool:
        return True


class StaticIdentityProvider(IIdentityProvider):
    """Accepts exactly the tokens it was given."""

    def __init__(self, users: dict[str, AuthenticatedUser]) -> None:
        self._users = users

    async def verify_token(self, token: str) -> AuthenticatedUser:
        if token not in self._users:
            raise AuthError(message="Invalid or expired token", provider_name="static")
        return self._users[token]

    def get_provider_name(self) -> str:
        return "static"


class PrefixObjectStore(IObjectStore):
    """Signs a path by prefixing a fixed download base URL."""

    def __init__(self, base_url: str = "https://files.test/signed/") -> None:
        self._base_url = base_url
        self.signed: list[str] = []

    async def get_signed_url(self, path: str, expires_in: int = 3600) -> str:
        self.signed.append(path)
        return f"{self._base_url}{path}?token=abc"

    def get_provider_name(self) -> str:
        return "prefix"


def _cosine(a: list[float], b: list[float]) -> float:
    dot = sum(x * y for x, y in zip(a, b))
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    return dot / norm if norm else 0.0


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def embedding_provider() -> FakeEmbeddingProvider:
    return FakeEmbeddingProvider()


@pytest.fixture
def document_store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def llm_provider() -> ScriptedLLM:
    return ScriptedLLM()


@pytest.fixture
def alice() -> AuthenticatedUser:
    return AuthenticatedUser(id="user-alice", email="alice@example.com")


@pytest.fixture
def bob() -> AuthenticatedUser:
    return AuthenticatedUser(id="user-bob", email="bob@example.com")


@pytest.fixture
def identity_provider(alice: AuthenticatedUser, bob: AuthenticatedUser) -> StaticIdentityProvider:
    return StaticIdentityProvider({"alice-token": alice, "bob-token": bob})


@pytest.fixture
def object_store() -> PrefixObjectStore:
    return PrefixObjectStore()


@pytest.fixture
def make_pdf(tmp_path):
    """Return a factory writing a PDF with one page per given text."""

    def _make(pages: list[str], name: str = "sample.pdf") -> bytes:
        path = tmp_path / name
        doc = fitz.open()
        for text in pages:
            page = doc.new_page()
            if text:
                page.insert_text((72, 72), text, fontsize=11)
        doc.save(str(path))
        doc.close()
        return path.read_bytes()

    return _make
