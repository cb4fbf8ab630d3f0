"""Custom exception hierarchy for docqa.

All application exceptions inherit from :class:`DocQAError`, which carries an
optional ``provider_name`` (e.g. "openai", "supabase") and an
:class:`ErrorKind` tag so callers can branch on *what kind* of failure
happened without inspecting message text.

The hierarchy is organized by pipeline stage:

    DocQAError  (base -- catch-all for any docqa error)
    +-- BadRequestError          (malformed request body)
    +-- UnsupportedFormatError   (file type outside the accepted set)
    +-- ExtractionError          (file could not be parsed into text)
    +-- NoContentError           (parsing produced no usable text)
    +-- DownloadError            (fetching the uploaded file failed)
    +-- EmbeddingError           (embedding call failed or was malformed)
    +-- LLMError                 (chat completion call failed)
    +-- DocumentStoreError       (vector store read/write failed)
    +-- StorageError             (object store signing failed)
    +-- AuthError                (missing or rejected bearer token)
    +-- ProcessingLimitError     (batch or file exceeded processing bounds)
    +-- ConfigurationError       (startup / missing config)

HTTP status mapping lives in :mod:`docqa.api.middleware`.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Classification of an external-call failure."""

    TRANSIENT = "transient"
    RATE_LIMITED = "rate_limited"
    PERMANENT = "permanent"
    NOT_FOUND = "not_found"
    CONFIGURATION = "configuration"


_RETRYABLE_KINDS = frozenset({ErrorKind.TRANSIENT, ErrorKind.RATE_LIMITED})


def kind_for_status(status_code: int) -> ErrorKind:
    """Map an upstream HTTP status code to an :class:`ErrorKind`."""
    if status_code == 429:
        return ErrorKind.RATE_LIMITED
    if status_code == 408 or status_code >= 500:
        return ErrorKind.TRANSIENT
    if status_code == 404:
        return ErrorKind.NOT_FOUND
    if status_code in (401, 403):
        return ErrorKind.CONFIGURATION
    return ErrorKind.PERMANENT


class DocQAError(Exception):
    """Base exception for all docqa errors.

    Every subclass carries a human-readable ``message``, an optional
    ``provider_name`` identifying which external service triggered the
    error, and a ``kind`` tag.  The ``__str__`` method prefixes the provider
    name in brackets, e.g. ``[openai] Rate limit exceeded``.
    """

    default_message = "An unexpected error occurred"
    default_kind = ErrorKind.PERMANENT
    default_hint: str | None = None

    def __init__(
        self,
        message: str | None = None,
        provider_name: str | None = None,
        kind: ErrorKind | None = None,
        hint: str | None = None,
    ) -> None:
        self._message = message or self.default_message
        self._provider_name = provider_name
        self._kind = kind or self.default_kind
        self._hint = hint or self.default_hint
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    @property
    def kind(self) -> ErrorKind:
        return self._kind

    @property
    def hint(self) -> str | None:
        return self._hint

    @property
    def retryable(self) -> bool:
        return self._kind in _RETRYABLE_KINDS

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Request / input errors (client-fixable)
# ---------------------------------------------------------------------------


class BadRequestError(DocQAError):
    """Raised when a request body is missing a required value."""

    default_message = "Bad request"


class UnsupportedFormatError(DocQAError):
    """Raised when an uploaded file's type is not in the accepted set."""

    default_message = (
        "Currently supporting only pdf, txt files for faster processing. "
        "Please convert other formats to PDF."
    )


class ExtractionError(DocQAError):
    """Raised when a file cannot be parsed into readable text."""

    default_message = "No readable text content found"


class NoContentError(DocQAError):
    """Raised when extraction completes but yields no documents."""

    default_message = "No content could be extracted from the document"


class DownloadError(DocQAError):
    """Raised when the uploaded file cannot be fetched from its URL.

    ``status_code`` is the upstream HTTP status, or ``None`` for transport
    failures (DNS, connection reset, timeout).
    """

    default_message = "Failed to fetch file"

    def __init__(
        self,
        message: str | None = None,
        provider_name: str | None = None,
        kind: ErrorKind | None = None,
        hint: str | None = None,
        status_code: int | None = None,
    ) -> None:
        if kind is None and status_code is not None:
            kind = kind_for_status(status_code)
        super().__init__(message=message, provider_name=provider_name, kind=kind, hint=hint)
        self._status_code = status_code

    @property
    def status_code(self) -> int | None:
        return self._status_code


# ---------------------------------------------------------------------------
# Provider errors (service-side)
# ---------------------------------------------------------------------------


class EmbeddingError(DocQAError):
    """Raised when an embedding call fails or returns a malformed vector."""

    default_message = "Embedding request failed"


class LLMError(DocQAError):
    """Raised when a chat completion call fails or returns no content."""

    default_message = "LLM request failed"


class DocumentStoreError(DocQAError):
    """Raised when the vector-capable datastore rejects a read or write."""

    default_message = "Document store operation failed"


class StorageError(DocQAError):
    """Raised when the object store cannot produce a signed URL."""

    default_message = "Object storage request failed"


class AuthError(DocQAError):
    """Raised when a bearer token is missing, malformed, or rejected."""

    default_message = "Missing or invalid authorization header"
    default_kind = ErrorKind.CONFIGURATION


class ProcessingLimitError(DocQAError):
    """Raised when a batch or a single file exceeds processing bounds."""

    default_message = "Processing limit exceeded"
    default_hint = "Try uploading fewer or smaller files at once."


class ConfigurationError(DocQAError):
    """Raised when required configuration is missing or invalid at startup."""

    default_message = "Invalid configuration"
    default_kind = ErrorKind.CONFIGURATION
