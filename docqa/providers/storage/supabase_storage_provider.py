"""Supabase Storage adapter: turns an object path into a signed download URL."""

from __future__ import annotations

from urllib.parse import quote

import httpx
import structlog

from docqa.interfaces.object_store import IObjectStore
from docqa.utils.errors import ErrorKind, StorageError, kind_for_status

logger = structlog.get_logger(logger_name=__name__)


class SupabaseStorageProvider(IObjectStore):
    """Signs objects with ``POST /storage/v1/object/sign/{bucket}/{path}``."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        supabase_url: str,
        service_key: str,
        bucket: str = "notes",
    ) -> None:
        self._http = http_client
        self._storage_url = f"{supabase_url.rstrip('/')}/storage/v1"
        self._service_key = service_key
        self._bucket = bucket

    async def get_signed_url(self, path: str, expires_in: int = 3600) -> str:
        object_path = quote(path.lstrip("/"), safe="/")
        try:
            response = await self._http.post(
                f"{self._storage_url}/object/sign/{self._bucket}/{object_path}",
                json={"expiresIn": expires_in},
                headers={
                    "apikey": self._service_key,
                    "Authorization": f"Bearer {self._service_key}",
                },
            )
        except httpx.HTTPError as exc:
            raise StorageError(
                message=f"Storage signing request failed: {exc}",
                provider_name=self.get_provider_name(),
                kind=ErrorKind.TRANSIENT,
            ) from exc

        if response.status_code != 200:
            logger.warning("storage_sign_failed", path=path, status=response.status_code)
            raise StorageError(
                message=f"Could not sign '{path}' ({response.status_code})",
                provider_name=self.get_provider_name(),
                kind=kind_for_status(response.status_code),
            )

        signed = response.json().get("signedURL")
        if not signed:
            raise StorageError(
                message="Storage response did not include a signed URL",
                provider_name=self.get_provider_name(),
            )
        if signed.startswith("http"):
            return signed
        return f"{self._storage_url}{signed}"

    def get_provider_name(self) -> str:
        return "supabase-storage"
