"""FastAPI routes for document processing, question answering and cleanup.

Service dependencies are resolved from ``app.state`` via ``Depends`` using
the ``Annotated`` pattern; ``app.state`` is populated at startup in
``main.py``.

    Endpoint        Method  Auth  Description
    -----------------------------------------------------------------
    /api/process    POST    yes   Clear the store, ingest a batch of files
    /api/ask        POST    yes   Answer a question from stored chunks
    /api/cleanup    POST    yes   Force-clear the store
    /health         GET     no    Liveness
    /               GET     no    Banner
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, Request

from docqa import __version__
from docqa.api.auth import CurrentUserDep
from docqa.api.schemas import (
    AskRequest,
    AskResponse,
    CleanupResponse,
    HealthResponse,
    ProcessRequest,
    ProcessResponse,
)
from docqa.config.settings import Settings
from docqa.interfaces.document_store import IDocumentStore
from docqa.interfaces.object_store import IObjectStore
from docqa.models.documents import AuthenticatedUser
from docqa.services.ingestion.ingestion_service import IngestionService
from docqa.services.qa_service import QAService
from docqa.utils.errors import BadRequestError, DocumentStoreError
from docqa.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

router = APIRouter(prefix="/api")
health_router = APIRouter()


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------


def _get_settings(request: Request) -> Settings:
    return request.app.state.settings


def _get_ingestion_service(request: Request) -> IngestionService:
    return request.app.state.ingestion_service


def _get_qa_service(request: Request) -> QAService:
    return request.app.state.qa_service


def _get_document_store(request: Request) -> IDocumentStore:
    return request.app.state.document_store


def _get_object_store(request: Request) -> IObjectStore | None:
    return getattr(request.app.state, "object_store", None)


def _get_ingestion_lock(request: Request) -> asyncio.Lock:
    return request.app.state.ingestion_lock


SettingsDep = Annotated[Settings, Depends(_get_settings)]
IngestionDep = Annotated[IngestionService, Depends(_get_ingestion_service)]
QAServiceDep = Annotated[QAService, Depends(_get_qa_service)]
DocumentStoreDep = Annotated[IDocumentStore, Depends(_get_document_store)]
ObjectStoreDep = Annotated[IObjectStore | None, Depends(_get_object_store)]
IngestionLockDep = Annotated[asyncio.Lock, Depends(_get_ingestion_lock)]


def _owner_scope(settings: Settings, user: AuthenticatedUser) -> str | None:
    """Return the user id to scope store operations by, or ``None`` for store-wide."""
    return user.id if settings.scope_documents_per_user else None


async def _resolve_download_url(
    entry: str, object_store: IObjectStore | None, user: AuthenticatedUser
) -> str:
    """Return ``entry`` if it is a URL, otherwise a signed URL for the storage path.

    Signing uses the service key, which bypasses bucket policies, so only
    paths inside the caller's own ``<user id>/`` folder are accepted.
    """
    if entry.startswith(("http://", "https://")):
        return entry
    owner, _, rest = entry.partition("/")
    if owner != user.id or any(part in ("", ".", "..") for part in rest.split("/")):
        raise BadRequestError(message=f"Storage path '{entry}' is outside your folder '{user.id}/'")
    if object_store is None:
        raise BadRequestError(message=f"'{entry}' is not a URL and object storage is not configured")
    return await object_store.get_signed_url(entry)


async def _clear_store(document_store: IDocumentStore, owner_id: str | None) -> tuple[int, int]:
    deleted = await document_store.delete_all(owner_id=owner_id)
    remaining = await document_store.count(owner_id=owner_id)
    return deleted, remaining


# ---------------------------------------------------------------------------
# Document routes
# ---------------------------------------------------------------------------


@router.post("/process", response_model=ProcessResponse)
async def process_files(
    body: ProcessRequest,
    user: CurrentUserDep,
    settings: SettingsDep,
    ingestion: IngestionDep,
    document_store: DocumentStoreDep,
    object_store: ObjectStoreDep,
    lock: IngestionLockDep,
) -> ProcessResponse:
    """Replace the stored documents with the chunks of the uploaded files.

    The store is cleared and verified empty before the first file is
    ingested, so answers never mix chunks from different upload batches.
    Concurrent calls in this process are serialized.
    """
    if not body.files:
        raise BadRequestError(message="No files provided")

    # The file name is the last path segment; its ?query is dropped later.
    names = [entry.split("/")[-1] for entry in body.files]
    ingestion.validate_batch(names)
    owner_id = _owner_scope(settings, user)

    async with lock:
        urls = [await _resolve_download_url(entry, object_store, user) for entry in body.files]

        deleted, remaining = await _clear_store(document_store, owner_id)
        if remaining:
            raise DocumentStoreError(
                message=f"Document store still holds {remaining} chunks after clearing",
                provider_name=document_store.get_provider_name(),
            )
        _logger.info("store_cleared_for_batch", deleted=deleted, files=len(urls), user_id=user.id)

        results = await ingestion.ingest_batch(list(zip(urls, names)), uploaded_by=user.id)

    return ProcessResponse(results=results)


@router.post("/ask", response_model=AskResponse)
async def ask_question(
    body: AskRequest,
    user: CurrentUserDep,
    settings: SettingsDep,
    qa_service: QAServiceDep,
) -> AskResponse:
    """Answer a question from the currently stored documents."""
    question = (body.question or "").strip()
    if not question:
        raise BadRequestError(message="No question provided")

    answer = await qa_service.answer(
        question,
        body.chat_history,
        owner_id=_owner_scope(settings, user),
    )
    return AskResponse(answer=answer.answer, sources=answer.sources)


@router.post("/cleanup", response_model=CleanupResponse)
async def cleanup_documents(
    user: CurrentUserDep,
    settings: SettingsDep,
    document_store: DocumentStoreDep,
    lock: IngestionLockDep,
) -> CleanupResponse:
    """Delete every stored chunk and report what is left."""
    async with lock:
        deleted, remaining = await _clear_store(document_store, _owner_scope(settings, user))

    _logger.info("store_cleanup", deleted=deleted, remaining=remaining, user_id=user.id)
    return CleanupResponse(
        success=remaining == 0,
        deleted_count=deleted,
        remaining_count=remaining,
    )


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


@health_router.get("/health", response_model=HealthResponse)
async def health_check(settings: SettingsDep) -> HealthResponse:
    """Liveness only; no downstream service is contacted."""
    return HealthResponse(
        status="ok",
        version=__version__,
        environment=settings.app_env,
        timestamp=datetime.now(timezone.utc).isoformat(),
    )


@health_router.get("/", include_in_schema=False)
async def root() -> dict[str, str]:
    return {"message": "API is running"}
