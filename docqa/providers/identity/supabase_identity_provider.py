"""Supabase Auth adapter: resolves a user access token to its user."""

from __future__ import annotations

import httpx
import structlog

from docqa.interfaces.identity_provider import IIdentityProvider
from docqa.models.documents import AuthenticatedUser
from docqa.utils.errors import AuthError, ErrorKind

logger = structlog.get_logger(logger_name=__name__)


class SupabaseIdentityProvider(IIdentityProvider):
    """Verifies tokens with ``GET {SUPABASE_URL}/auth/v1/user``.

    The ``httpx.AsyncClient`` is injected so it shares the app's
    connection pool and can be replaced by a mock transport in tests.
    """

    def __init__(self, http_client: httpx.AsyncClient, supabase_url: str, api_key: str) -> None:
        self._http = http_client
        self._user_url = f"{supabase_url.rstrip('/')}/auth/v1/user"
        self._api_key = api_key

    async def verify_token(self, token: str) -> AuthenticatedUser:
        try:
            response = await self._http.get(
                self._user_url,
                headers={"apikey": self._api_key, "Authorization": f"Bearer {token}"},
            )
        except httpx.HTTPError as exc:
            logger.warning("auth_provider_unreachable", error=str(exc))
            raise AuthError(
                message="Authentication service unavailable",
                provider_name=self.get_provider_name(),
                kind=ErrorKind.TRANSIENT,
            ) from exc

        if response.status_code != 200:
            logger.info("auth_token_rejected", status=response.status_code)
            raise AuthError(
                message="Invalid or expired token",
                provider_name=self.get_provider_name(),
            )

        body = response.json()
        if not isinstance(body, dict) or not body.get("id"):
            raise AuthError(
                message="Invalid or expired token",
                provider_name=self.get_provider_name(),
            )
        return AuthenticatedUser(id=str(body["id"]), email=body.get("email"))

    def get_provider_name(self) -> str:
        return "supabase-auth"
