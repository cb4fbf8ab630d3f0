"""Abstract base class for the hosted object store holding uploaded files."""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementations: SupabaseStorageProvider
# Located in: docqa/providers/storage/
class IObjectStore(ABC):
    """Produces time-limited download URLs for stored uploads."""

    @abstractmethod
    async def get_signed_url(self, path: str, expires_in: int = 3600) -> str:
        """Return an absolute URL that allows a plain GET of *path*.

        Raises
        ------
        docqa.utils.errors.StorageError
            If the object does not exist or signing is refused.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"supabase-storage"``."""
