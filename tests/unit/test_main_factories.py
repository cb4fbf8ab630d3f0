"""Unit tests for the component builders and app factory in docqa/main.py."""

from __future__ import annotations

import asyncio
from pathlib import Path

import httpx
import pytest
from fastapi import FastAPI

from docqa.config.settings import Settings
from docqa.main import _build_all, _build_document_store, _prepare_temp_dir, create_app
from docqa.providers.document_store.chromadb_store import ChromaDBDocumentStore
from docqa.providers.document_store.supabase_store import SupabaseDocumentStore
from docqa.providers.identity.supabase_identity_provider import SupabaseIdentityProvider
from docqa.providers.storage.supabase_storage_provider import SupabaseStorageProvider
from docqa.services.ingestion.ingestion_service import IngestionService
from docqa.services.qa_service import QAService
from docqa.utils.errors import ConfigurationError


def _settings(**overrides) -> Settings:
    defaults = {
        "openai_api_key": "sk-test",
        "openai_base_url": "",
        "supabase_url": "",
        "supabase_service_key": "",
        "vector_store": "supabase",
        "app_env": "development",
    }
    defaults.update(overrides)
    return Settings(_env_file=None, **defaults)


# ======================================================================
# _prepare_temp_dir
# ======================================================================


class TestPrepareTempDir:
    def test_creates_missing_directory(self, tmp_path: Path) -> None:
        target = tmp_path / "nested" / "downloads"
        assert _prepare_temp_dir(str(target)) == target
        assert target.is_dir()
        assert list(target.iterdir()) == []

    def test_unusable_path_raises(self, tmp_path: Path) -> None:
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")
        with pytest.raises(ConfigurationError, match="not writable"):
            _prepare_temp_dir(str(blocker / "sub"))


# ======================================================================
# _build_document_store
# ======================================================================


class TestBuildDocumentStore:
    def test_supabase(self) -> None:
        settings = _settings(supabase_url="https://proj.supabase.co", supabase_service_key="k")
        store = _build_document_store(settings, httpx.AsyncClient(), 1536)
        assert isinstance(store, SupabaseDocumentStore)

    def test_supabase_without_credentials(self) -> None:
        with pytest.raises(ConfigurationError, match="SUPABASE_URL"):
            _build_document_store(_settings(), httpx.AsyncClient(), 1536)

    def test_chromadb(self, tmp_path: Path) -> None:
        settings = _settings(
            vector_store="ChromaDB",
            chromadb_persist_dir=str(tmp_path / "chroma"),
        )
        store = _build_document_store(settings, httpx.AsyncClient(), 8)
        assert isinstance(store, ChromaDBDocumentStore)

    def test_unknown_backend(self) -> None:
        with pytest.raises(ConfigurationError, match="Unknown VECTOR_STORE"):
            _build_document_store(_settings(vector_store="pinecone"), httpx.AsyncClient(), 8)


# ======================================================================
# _build_all
# ======================================================================


class TestBuildAll:
    def test_supabase_wiring(self, tmp_path: Path) -> None:
        settings = _settings(supabase_url="https://proj.supabase.co", supabase_service_key="k")
        config = {
            "chunking": {"chunk_size": 500, "chunk_overlap": 10},
            "ingestion": {"temp_dir": str(tmp_path / "dl"), "embedding_concurrency": 2},
        }

        components = _build_all(settings, config)

        try:
            assert isinstance(components["document_store"], SupabaseDocumentStore)
            assert isinstance(components["identity_provider"], SupabaseIdentityProvider)
            assert isinstance(components["object_store"], SupabaseStorageProvider)
            assert isinstance(components["ingestion_service"], IngestionService)
            assert isinstance(components["qa_service"], QAService)
            assert (tmp_path / "dl").is_dir()
        finally:
            asyncio.run(components["http_client"].aclose())

    def test_local_store_without_supabase(self, tmp_path: Path) -> None:
        settings = _settings(
            vector_store="chromadb",
            chromadb_persist_dir=str(tmp_path / "chroma"),
            openai_api_key="",
        )
        components = _build_all(settings, {"ingestion": {"temp_dir": str(tmp_path / "dl")}})

        try:
            assert isinstance(components["document_store"], ChromaDBDocumentStore)
            assert components["identity_provider"] is None
            assert components["object_store"] is None
        finally:
            asyncio.run(components["http_client"].aclose())


# ======================================================================
# create_app
# ======================================================================


class TestCreateApp:
    def test_routes_are_registered(self) -> None:
        app = create_app(_settings())
        assert isinstance(app, FastAPI)
        paths = {route.path for route in app.routes}
        assert {"/api/process", "/api/ask", "/api/cleanup", "/health", "/"} <= paths

    def test_settings_on_state(self) -> None:
        settings = _settings(app_env="production")
        app = create_app(settings)
        assert app.state.settings is settings
        assert app.state.prebuilt_components is None
