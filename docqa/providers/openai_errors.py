"""Classification of ``openai`` SDK exceptions into :class:`ErrorKind` tags.

Shared by the embedding and chat adapters so both report the same kind for
the same failure.  Classification is by exception type, never message text.
"""

from __future__ import annotations

import openai

from docqa.utils.errors import ErrorKind


def classify_openai_error(exc: openai.OpenAIError) -> ErrorKind:
    """Return the :class:`ErrorKind` for an exception raised by the SDK."""
    if isinstance(exc, openai.RateLimitError):
        return ErrorKind.RATE_LIMITED
    # APITimeoutError is a subclass of APIConnectionError.
    if isinstance(exc, (openai.APIConnectionError, openai.InternalServerError)):
        return ErrorKind.TRANSIENT
    if isinstance(exc, (openai.AuthenticationError, openai.PermissionDeniedError)):
        return ErrorKind.CONFIGURATION
    if isinstance(exc, openai.NotFoundError):
        return ErrorKind.NOT_FOUND
    return ErrorKind.PERMANENT
