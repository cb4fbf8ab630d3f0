"""Bearer-token authentication as a FastAPI dependency.

Routes declare ``user: CurrentUserDep``.  The token is verified by the
identity provider stored on ``app.state``.  With ``APP_ENV=development``
and ``AUTH_DEV_BYPASS=true`` a fixed development user is returned instead.
"""

from __future__ import annotations

from typing import Annotated

import structlog
from fastapi import Depends, Request

from docqa.interfaces.identity_provider import IIdentityProvider
from docqa.models.documents import AuthenticatedUser
from docqa.utils.errors import AuthError
from docqa.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

DEV_USER = AuthenticatedUser(id="dev-user", email="dev@example.com")

_BEARER_PREFIX = "Bearer "


def _bearer_token(request: Request) -> str:
    header = request.headers.get("Authorization", "")
    if not header.startswith(_BEARER_PREFIX):
        raise AuthError(message="Missing or invalid authorization header")
    token = header[len(_BEARER_PREFIX):].strip()
    if not token:
        raise AuthError(message="Missing or invalid authorization header")
    return token


async def get_current_user(request: Request) -> AuthenticatedUser:
    """Resolve the request's bearer token to an :class:`AuthenticatedUser`.

    Raises
    ------
    AuthError
        If the header is missing, is not a Bearer token, or the identity
        provider rejects the token.
    """
    settings = request.app.state.settings
    if settings.auth_dev_bypass and settings.app_env == "development":
        return DEV_USER

    token = _bearer_token(request)
    identity_provider: IIdentityProvider | None = getattr(
        request.app.state, "identity_provider", None
    )
    if identity_provider is None:
        raise AuthError(message="Authentication is not configured")

    user = await identity_provider.verify_token(token)
    _logger.debug("request_authenticated", user_id=user.id)
    return user


CurrentUserDep = Annotated[AuthenticatedUser, Depends(get_current_user)]
