"""Unit tests for the error hierarchy, kind classification and HTTP mapping."""

from __future__ import annotations

import pytest

from docqa.api.middleware import status_for
from docqa.utils.errors import (
    AuthError,
    BadRequestError,
    ConfigurationError,
    DocQAError,
    DocumentStoreError,
    DownloadError,
    EmbeddingError,
    ErrorKind,
    ExtractionError,
    LLMError,
    NoContentError,
    ProcessingLimitError,
    StorageError,
    UnsupportedFormatError,
    kind_for_status,
)


class TestKindForStatus:
    @pytest.mark.parametrize(
        ("status", "kind"),
        [
            (429, ErrorKind.RATE_LIMITED),
            (408, ErrorKind.TRANSIENT),
            (500, ErrorKind.TRANSIENT),
            (503, ErrorKind.TRANSIENT),
            (404, ErrorKind.NOT_FOUND),
            (401, ErrorKind.CONFIGURATION),
            (403, ErrorKind.CONFIGURATION),
            (400, ErrorKind.PERMANENT),
            (422, ErrorKind.PERMANENT),
        ],
    )
    def test_mapping(self, status: int, kind: ErrorKind) -> None:
        assert kind_for_status(status) is kind


class TestDocQAError:
    def test_defaults(self) -> None:
        err = EmbeddingError()
        assert err.message == "Embedding request failed"
        assert err.kind is ErrorKind.PERMANENT
        assert err.provider_name is None
        assert err.hint is None
        assert err.retryable is False
        assert str(err) == "Embedding request failed"

    def test_provider_prefix(self) -> None:
        err = LLMError(message="Rate limit exceeded", provider_name="openai")
        assert str(err) == "[openai] Rate limit exceeded"
        assert err.message == "Rate limit exceeded"

    @pytest.mark.parametrize("kind", [ErrorKind.TRANSIENT, ErrorKind.RATE_LIMITED])
    def test_retryable_kinds(self, kind: ErrorKind) -> None:
        assert DocumentStoreError(kind=kind).retryable is True

    def test_all_errors_share_base(self) -> None:
        for cls in (
            BadRequestError,
            UnsupportedFormatError,
            ExtractionError,
            NoContentError,
            DownloadError,
            EmbeddingError,
            LLMError,
            DocumentStoreError,
            StorageError,
            AuthError,
            ProcessingLimitError,
            ConfigurationError,
        ):
            assert issubclass(cls, DocQAError)

    def test_unsupported_format_default_message(self) -> None:
        assert "pdf, txt" in UnsupportedFormatError().message

    def test_processing_limit_has_hint(self) -> None:
        assert ProcessingLimitError().hint == "Try uploading fewer or smaller files at once."
        assert ProcessingLimitError(hint="Smaller, please.").hint == "Smaller, please."

    def test_auth_and_config_default_kind(self) -> None:
        assert AuthError().kind is ErrorKind.CONFIGURATION
        assert ConfigurationError().kind is ErrorKind.CONFIGURATION


class TestDownloadError:
    def test_kind_from_status(self) -> None:
        err = DownloadError(message="Failed to fetch file: Not Found", status_code=404)
        assert err.status_code == 404
        assert err.kind is ErrorKind.NOT_FOUND

    def test_explicit_kind_wins(self) -> None:
        err = DownloadError(status_code=404, kind=ErrorKind.TRANSIENT)
        assert err.kind is ErrorKind.TRANSIENT

    def test_transport_failure_has_no_status(self) -> None:
        err = DownloadError(kind=ErrorKind.TRANSIENT)
        assert err.status_code is None
        assert err.retryable is True


class TestStatusFor:
    @pytest.mark.parametrize(
        ("error", "status"),
        [
            (BadRequestError(), 400),
            (UnsupportedFormatError(), 400),
            (ExtractionError(), 400),
            (NoContentError(), 400),
            (DownloadError(status_code=403), 400),
            (AuthError(), 401),
            (ProcessingLimitError(), 508),
            (EmbeddingError(), 500),
            (LLMError(), 500),
            (DocumentStoreError(), 500),
            (StorageError(), 500),
            (ConfigurationError(), 500),
            (DocQAError(), 500),
        ],
    )
    def test_mapping(self, error: DocQAError, status: int) -> None:
        assert status_for(error) == status
