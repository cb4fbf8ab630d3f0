"""Utility modules for docqa.

- **errors** -- Exception hierarchy rooted at DocQAError, tagged with an
  ErrorKind so callers can tell retryable failures from permanent ones.
- **concurrency** -- Bounded, order-preserving fan-out for provider calls.
- **logging** -- structlog setup: console output in development, JSON in
  production.
"""

from docqa.utils.concurrency import ordered_bounded_map
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
from docqa.utils.logging import configure_logging, get_logger

__all__ = [
    "AuthError",
    "BadRequestError",
    "ConfigurationError",
    "DocQAError",
    "DocumentStoreError",
    "DownloadError",
    "EmbeddingError",
    "ErrorKind",
    "ExtractionError",
    "LLMError",
    "NoContentError",
    "ProcessingLimitError",
    "StorageError",
    "UnsupportedFormatError",
    "configure_logging",
    "get_logger",
    "kind_for_status",
    "ordered_bounded_map",
]
