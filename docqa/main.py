"""docqa FastAPI application entry point.

Wires providers, services and routes together via dependency injection.
Loads secrets from ``.env``/environment and tuning from
``config/config.yaml``, configures structured logging, and exposes the
ASGI ``app`` for uvicorn.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

import httpx
import structlog
import uvicorn
from fastapi import FastAPI

from docqa import __version__
from docqa.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
    register_validation_handler,
)
from docqa.api.routes import health_router
from docqa.api.routes import router as api_router
from docqa.config.loader import load_config, section
from docqa.config.settings import Settings
from docqa.interfaces.document_store import IDocumentStore
from docqa.providers.document_store.chromadb_store import ChromaDBDocumentStore
from docqa.providers.document_store.supabase_store import SupabaseDocumentStore
from docqa.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
from docqa.providers.identity.supabase_identity_provider import SupabaseIdentityProvider
from docqa.providers.llm.openai_provider import OpenAILLMProvider
from docqa.providers.storage.supabase_storage_provider import SupabaseStorageProvider
from docqa.services.ingestion.chunker import TextChunker
from docqa.services.ingestion.format_extractor import FormatExtractor
from docqa.services.ingestion.ingestion_service import IngestionService
from docqa.services.qa_service import QAService
from docqa.utils.errors import ConfigurationError, DocQAError
from docqa.utils.logging import configure_logging, get_logger

# ---------------------------------------------------------------------------
# Module-level settings & logging
# ---------------------------------------------------------------------------

settings = Settings()

configure_logging(
    log_level=settings.log_level,
    json_output=settings.is_production,
)
_logger: structlog.BoundLogger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Component builders
# ---------------------------------------------------------------------------


def _prepare_temp_dir(path: str) -> Path:
    """Create the download directory and prove it is writable."""
    temp_dir = Path(path)
    try:
        temp_dir.mkdir(parents=True, exist_ok=True)
        probe = temp_dir / ".docqa_write_test"
        probe.write_text("test")
        probe.unlink()
    except OSError as exc:
        raise ConfigurationError(message=f"Temp directory {temp_dir} is not writable: {exc}") from exc
    _logger.info("temp_dir_ready", path=str(temp_dir.resolve()))
    return temp_dir


def _build_document_store(
    app_settings: Settings,
    http_client: httpx.AsyncClient,
    dimension: int,
) -> IDocumentStore:
    """Select the document store named by ``VECTOR_STORE``."""
    backend = app_settings.vector_store.lower()
    if backend == "chromadb":
        return ChromaDBDocumentStore(
            dimension=dimension,
            persist_directory=app_settings.chromadb_persist_dir,
            collection_name=app_settings.chromadb_collection,
        )
    if backend == "supabase":
        if not (app_settings.supabase_url and app_settings.supabase_service_key):
            raise ConfigurationError(
                message="SUPABASE_URL and SUPABASE_SERVICE_KEY are required when VECTOR_STORE=supabase",
            )
        return SupabaseDocumentStore(
            http_client=http_client,
            supabase_url=app_settings.supabase_url,
            service_key=app_settings.supabase_service_key,
            dimension=dimension,
            table=app_settings.documents_table,
            match_function=app_settings.match_function,
        )
    raise ConfigurationError(message=f"Unknown VECTOR_STORE '{app_settings.vector_store}'")


def _build_all(app_settings: Settings, app_config: dict[str, Any]) -> dict[str, Any]:
    """Construct every provider and service instance for the application.

    Returns a flat dict of named components to be stored on ``app.state``.
    """
    chunking = section(app_config, "chunking")
    retrieval = section(app_config, "retrieval")
    answer = section(app_config, "answer")
    ingestion = section(app_config, "ingestion")
    limits = section(app_config, "limits")

    # -- Shared resources --
    http_client = httpx.AsyncClient(timeout=30.0)
    temp_dir = _prepare_temp_dir(ingestion.get("temp_dir") or app_settings.resolve_temp_dir())

    # -- OpenAI --
    embedding_provider = OpenAIEmbeddingProvider(settings=app_settings)
    llm_provider = OpenAILLMProvider(settings=app_settings)
    if not embedding_provider.is_available():
        _logger.warning("openai_api_key_missing", message="Embedding and chat calls will fail")

    # -- Supabase --
    document_store = _build_document_store(
        app_settings, http_client, embedding_provider.get_dimension()
    )
    identity_provider = None
    object_store = None
    if app_settings.supabase_url and app_settings.supabase_service_key:
        identity_provider = SupabaseIdentityProvider(
            http_client=http_client,
            supabase_url=app_settings.supabase_url,
            api_key=app_settings.supabase_service_key,
        )
        object_store = SupabaseStorageProvider(
            http_client=http_client,
            supabase_url=app_settings.supabase_url,
            service_key=app_settings.supabase_service_key,
            bucket=app_settings.supabase_storage_bucket,
        )

    # -- Services --
    ingestion_service = IngestionService(
        extractor=FormatExtractor(),
        chunker=TextChunker(
            chunk_size=chunking.get("chunk_size", 2000),
            chunk_overlap=chunking.get("chunk_overlap", 20),
        ),
        embedding_provider=embedding_provider,
        document_store=document_store,
        http_client=http_client,
        temp_dir=temp_dir,
        embedding_concurrency=ingestion.get("embedding_concurrency", 1),
        max_chunks_per_file=limits.get("max_chunks_per_file", 500),
        max_files_per_batch=limits.get("max_files_per_batch", 10),
    )
    qa_service = QAService(
        embedding_provider=embedding_provider,
        document_store=document_store,
        llm_provider=llm_provider,
        top_k=retrieval.get("top_k", 3),
        similarity_threshold=retrieval.get("similarity_threshold", 0.5),
        max_chunk_chars=answer.get("max_chunk_chars", 1000),
        max_context_chars=answer.get("max_context_chars", 3000),
        max_sources=answer.get("max_sources", 2),
        source_excerpt_chars=answer.get("source_excerpt_chars", 200),
        history_turns=answer.get("history_turns", 3),
        temperature=answer.get("temperature", 0.3),
        max_tokens=answer.get("max_tokens", 500),
    )

    return {
        "http_client": http_client,
        "embedding_provider": embedding_provider,
        "llm_provider": llm_provider,
        "document_store": document_store,
        "identity_provider": identity_provider,
        "object_store": object_store,
        "ingestion_service": ingestion_service,
        "qa_service": qa_service,
    }


# ---------------------------------------------------------------------------
# Application lifespan (startup / shutdown)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def _lifespan(application: FastAPI):  # noqa: ANN201
    """Initialise providers and services on startup, clean up on shutdown."""
    app_settings: Settings = application.state.settings
    components = application.state.prebuilt_components
    if components is None:
        components = _build_all(app_settings, load_config(settings=app_settings))

    for key, value in components.items():
        setattr(application.state, key, value)
    application.state.ingestion_lock = asyncio.Lock()

    document_store: IDocumentStore = components["document_store"]
    try:
        await document_store.verify()
    except DocQAError as exc:
        # The service still starts so /health answers; requests touching
        # the store will surface the error.
        _logger.error("document_store_unavailable", error=str(exc))

    _logger.info(
        "app_startup",
        version=__version__,
        environment=app_settings.app_env,
        document_store=document_store.get_provider_name(),
        auth=components.get("identity_provider") is not None,
    )

    yield

    http_client: httpx.AsyncClient | None = components.get("http_client")
    if http_client is not None:
        await http_client.aclose()
    _logger.info("app_shutdown", message="HTTP client closed")


# ---------------------------------------------------------------------------
# FastAPI application factory
# ---------------------------------------------------------------------------


def create_app(
    app_settings: Settings | None = None,
    components: dict[str, Any] | None = None,
) -> FastAPI:
    """Build and configure the FastAPI application.

    Parameters
    ----------
    app_settings:
        Settings to use; defaults to the module-level instance.
    components:
        Pre-built ``app.state`` components.  When given, the lifespan uses
        them instead of building real providers.
    """
    app_settings = app_settings or settings
    application = FastAPI(
        title="docqa API",
        version=__version__,
        description=(
            "Upload PDF or text notes, then ask questions answered from "
            "their content with retrieval-augmented generation."
        ),
        lifespan=_lifespan,
    )
    application.state.settings = app_settings
    application.state.prebuilt_components = components

    # -- Middleware (order matters: last added = first executed) --
    application.add_middleware(
        ErrorHandlingMiddleware,
        expose_details=(app_settings.app_env == "development"),
    )
    application.add_middleware(RequestLoggingMiddleware)
    configure_cors(application, allowed_origins=app_settings.get_cors_origins())
    register_validation_handler(application)

    application.include_router(api_router)
    application.include_router(health_router)
    return application


app = create_app()

# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    uvicorn.run(
        "docqa.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=(settings.app_env == "development"),
    )
