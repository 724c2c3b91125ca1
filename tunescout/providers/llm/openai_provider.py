"""OpenAI-compatible LLM provider adapter.

Wraps the ``openai`` async client to implement :class:`ILLMProvider`.
When a custom ``openai_base_url`` is configured (e.g. TogetherAI, Groq,
Fireworks), the client points at that URL instead of the default OpenAI
endpoint, so this single adapter can talk to any OpenAI-compatible API.
"""

from __future__ import annotations

import openai
import structlog

from tunescout.config.settings import Settings
from tunescout.interfaces.llm_provider import ILLMProvider
from tunescout.utils.errors import LLMError, RateLimitError

logger = structlog.get_logger(logger_name=__name__)

# Must stay below the oracle timeout so the caller sees a clean LLMError.
_REQUEST_TIMEOUT = 10.0


class OpenAILLMProvider(ILLMProvider):
    """LLM provider backed by an OpenAI-compatible chat completions API.

    Uses ``gpt-4o-mini`` unless ``openai_text_model`` overrides it.
    """

    def __init__(self, settings: Settings) -> None:
        self._api_key = settings.openai_api_key

        # base_url is only passed when a custom endpoint is configured.
        client_kwargs: dict = {
            "api_key": self._api_key,
            "timeout": openai.Timeout(_REQUEST_TIMEOUT, connect=5.0),
        }
        if settings.openai_base_url:
            client_kwargs["base_url"] = settings.openai_base_url

        self._client = openai.AsyncOpenAI(**client_kwargs)
        self._text_model = settings.openai_text_model or "gpt-4o-mini"
        self._provider_label = "openai-compatible" if settings.openai_base_url else "openai"

    # ------------------------------------------------------------------
    # ILLMProvider implementation
    # ------------------------------------------------------------------

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.3,
        max_tokens: int = 4000,
    ) -> str:
        """Generate a text completion via the chat completions API."""
        try:
            response = await self._client.chat.completions.create(
                model=self._text_model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except openai.APITimeoutError as exc:
            raise LLMError(
                message=f"{self._provider_label} timed out after {_REQUEST_TIMEOUT:.0f}s",
                provider_name=self.get_provider_name(),
            ) from exc
        except openai.RateLimitError as exc:
            raise RateLimitError(
                message=f"{self._provider_label} rate limit exceeded",
                provider_name=self.get_provider_name(),
            ) from exc
        except openai.APIError as exc:
            # Callers only ever catch LLMError, never SDK exceptions.
            raise LLMError(
                message=f"{self._provider_label} API error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise LLMError(
                message=f"{self._provider_label} returned empty response",
                provider_name=self.get_provider_name(),
            )
        logger.info(
            "openai_completion",
            model=self._text_model,
            provider=self._provider_label,
            tokens=response.usage.total_tokens if response.usage else None,
        )
        return content

    def is_available(self) -> bool:
        """Return ``True`` if an API key is configured (doesn't verify it works)."""
        return bool(self._api_key)

    def get_provider_name(self) -> str:
        """Return 'openai' or 'openai-compatible' depending on configuration."""
        return self._provider_label
