"""Interface definitions for every external service docqa consumes.

Business logic depends only on these ABCs; concrete adapters live in
``docqa/providers/`` and are wired together in ``docqa/main.py``.  Tests
swap in fakes without touching the services.

    Interface            ->  Concrete implementations
    -----------------------------------------------------------------
    IEmbeddingProvider   ->  OpenAIEmbeddingProvider
    ILLMProvider         ->  OpenAILLMProvider
    IDocumentStore       ->  SupabaseDocumentStore, ChromaDBDocumentStore
    IIdentityProvider    ->  SupabaseIdentityProvider
    IObjectStore         ->  SupabaseStorageProvider
"""

from docqa.interfaces.document_store import IDocumentStore
from docqa.interfaces.embedding_provider import IEmbeddingProvider
from docqa.interfaces.identity_provider import IIdentityProvider
from docqa.interfaces.llm_provider import ILLMProvider
from docqa.interfaces.object_store import IObjectStore

__all__ = [
    "IDocumentStore",
    "IEmbeddingProvider",
    "IIdentityProvider",
    "ILLMProvider",
    "IObjectStore",
]
