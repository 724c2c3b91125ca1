"""Anthropic LLM provider adapter.

Wraps the ``anthropic`` async client to implement :class:`ILLMProvider`.

Differences from the OpenAI adapter:
    - The system prompt is a separate parameter, not a message in the list
    - Response content is a list of blocks, so text blocks are filtered
      and joined
"""

from __future__ import annotations

import anthropic
import structlog

from tunescout.config.settings import Settings
from tunescout.interfaces.llm_provider import ILLMProvider
from tunescout.utils.errors import LLMError, RateLimitError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_MODEL = "claude-sonnet-4-20250514"
_REQUEST_TIMEOUT = 10.0


class AnthropicLLMProvider(ILLMProvider):
    """LLM provider backed by the Anthropic Messages API."""

    def __init__(self, settings: Settings) -> None:
        self._api_key = settings.anthropic_api_key
        self._client = anthropic.AsyncAnthropic(api_key=self._api_key, timeout=_REQUEST_TIMEOUT)
        self._model = settings.anthropic_model or _DEFAULT_MODEL

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
        """Generate a text completion via the Anthropic Messages API."""
        try:
            response = await self._client.messages.create(
                model=self._model,
                max_tokens=max_tokens,
                system=system_prompt,
                messages=[{"role": "user", "content": user_prompt}],
                temperature=temperature,
            )
        except anthropic.RateLimitError as exc:
            raise RateLimitError(
                message="Anthropic rate limit exceeded",
                provider_name=self.get_provider_name(),
            ) from exc
        except anthropic.APIError as exc:
            raise LLMError(
                message=f"Anthropic API error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        text_blocks = [block.text for block in response.content if block.type == "text"]
        if not text_blocks:
            raise LLMError(
                message="Anthropic returned no text content",
                provider_name=self.get_provider_name(),
            )
        logger.info(
            "anthropic_completion",
            model=self._model,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
        )
        return "\n".join(text_blocks)

    def is_available(self) -> bool:
        """Return ``True`` if an Anthropic API key is configured."""
        return bool(self._api_key)

    def get_provider_name(self) -> str:
        return "anthropic"
