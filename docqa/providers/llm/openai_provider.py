"""OpenAI-compatible chat completion adapter.

Wraps the ``openai`` async client to implement :class:`ILLMProvider`.
When ``OPENAI_BASE_URL`` is set the client points at that gateway instead
of api.openai.com.
"""

from __future__ import annotations

import openai
import structlog

from docqa.config.settings import Settings
from docqa.interfaces.llm_provider import ILLMProvider
from docqa.providers.openai_errors import classify_openai_error
from docqa.utils.errors import ErrorKind, LLMError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_MODEL = "gpt-3.5-turbo"


class OpenAILLMProvider(ILLMProvider):
    """Chat provider backed by an OpenAI-compatible API (``gpt-3.5-turbo`` by default)."""

    def __init__(self, settings: Settings) -> None:
        self._api_key = settings.openai_api_key

        # 25 s overall so a stalled completion fails before typical 30 s
        # proxy timeouts drop the client connection.
        client_kwargs: dict = {
            "api_key": self._api_key,
            "timeout": openai.Timeout(25.0, connect=5.0),
        }
        if settings.openai_base_url:
            client_kwargs["base_url"] = settings.openai_base_url

        self._client = openai.AsyncOpenAI(**client_kwargs)
        self._model = settings.openai_chat_model or _DEFAULT_MODEL

    # ------------------------------------------------------------------
    # ILLMProvider implementation
    # ------------------------------------------------------------------

    async def chat(
        self,
        messages: list[dict[str, str]],
        temperature: float = 0.3,
        max_tokens: int = 500,
    ) -> str:
        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=messages,
                temperature=temperature,
                max_tokens=max_tokens,
                presence_penalty=0,
                frequency_penalty=0,
            )
        except openai.APITimeoutError as exc:
            raise LLMError(
                message="OpenAI chat API timed out after 25s",
                provider_name=self.get_provider_name(),
                kind=ErrorKind.TRANSIENT,
            ) from exc
        except openai.OpenAIError as exc:
            raise LLMError(
                message=f"OpenAI chat API error: {exc}",
                provider_name=self.get_provider_name(),
                kind=classify_openai_error(exc),
            ) from exc

        choices = getattr(response, "choices", None)
        content = choices[0].message.content if choices else None
        if not isinstance(content, str) or not content:
            raise LLMError(
                message="Invalid response from OpenAI chat API",
                provider_name=self.get_provider_name(),
                kind=ErrorKind.PERMANENT,
            )

        logger.info(
            "openai_completion",
            model=self._model,
            messages=len(messages),
            tokens=response.usage.total_tokens if getattr(response, "usage", None) else None,
        )
        return content

    def get_provider_name(self) -> str:
        return f"openai-{self._model}"

    def is_available(self) -> bool:
        """Return ``True`` if an API key is configured."""
        return bool(self._api_key)
