"""Abstract base class for chat-completion providers."""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementations: OpenAILLMProvider
# Located in: docqa/providers/llm/
class ILLMProvider(ABC):
    """Contract for the chat model that writes answers from retrieved context."""

    @abstractmethod
    async def chat(
        self,
        messages: list[dict[str, str]],
        temperature: float = 0.3,
        max_tokens: int = 500,
    ) -> str:
        """Run one chat completion.

        Parameters
        ----------
        messages:
            Ordered ``{"role", "content"}`` dicts: system first, then prior
            turns, then the user's question.
        temperature:
            Sampling temperature (0.0 = deterministic).
        max_tokens:
            Upper bound on the number of tokens in the response.

        Returns
        -------
        str
            The assistant message text.

        Raises
        ------
        docqa.utils.errors.LLMError
            If the API call fails or the response has no message content.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"openai-gpt-3.5-turbo"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if credentials are configured (no network call)."""
