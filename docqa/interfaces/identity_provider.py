"""Abstract base class for the hosted identity provider."""

from __future__ import annotations

from abc import ABC, abstractmethod

from docqa.models.documents import AuthenticatedUser


# Concrete implementations: SupabaseIdentityProvider
# Located in: docqa/providers/identity/
class IIdentityProvider(ABC):
    """Verifies bearer tokens issued by the hosted auth service."""

    @abstractmethod
    async def verify_token(self, token: str) -> AuthenticatedUser:
        """Resolve *token* to the user it was issued for.

        Raises
        ------
        docqa.utils.errors.AuthError
            If the token is expired, malformed, or rejected.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"supabase-auth"``."""
