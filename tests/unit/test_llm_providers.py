"""Unit tests for LLM provider adapters -- OpenAI and Anthropic."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import anthropic
import httpx
import openai
import pytest

from tunescout.config.settings import Settings
from tunescout.utils.errors import LLMError, RateLimitError


# ======================================================================
# Shared helpers
# ======================================================================

def _settings(**overrides) -> Settings:
    defaults = {
        "openai_api_key": "sk-test",
        "openai_base_url": "",
        "openai_text_model": "",
        "anthropic_api_key": "test-anthropic",
        "anthropic_model": "",
    }
    defaults.update(overrides)
    return Settings(**defaults)


def _request() -> httpx.Request:
    return httpx.Request("POST", "https://llm.test/v1")


def _openai_response(content: str | None) -> MagicMock:
    mock_response = MagicMock()
    mock_response.choices = [MagicMock(message=MagicMock(content=content))]
    mock_response.usage = MagicMock(total_tokens=100)
    return mock_response


def _anthropic_response(*blocks: tuple[str, str]) -> MagicMock:
    content = []
    for block_type, text in blocks:
        block = MagicMock()
        block.type = block_type
        block.text = text
        content.append(block)
    mock_response = MagicMock()
    mock_response.content = content
    mock_response.usage = MagicMock(input_tokens=50, output_tokens=50)
    return mock_response


# ======================================================================
# OpenAI LLM Provider
# ======================================================================


class TestOpenAILLMProvider:
    @pytest.fixture()
    def settings(self) -> Settings:
        return _settings()

    def test_provider_name_default_endpoint(self, settings: Settings) -> None:
        from tunescout.providers.llm.openai_provider import OpenAILLMProvider
        assert OpenAILLMProvider(settings).get_provider_name() == "openai"

    def test_provider_name_custom_endpoint(self) -> None:
        from tunescout.providers.llm.openai_provider import OpenAILLMProvider

        with patch("tunescout.providers.llm.openai_provider.openai.AsyncOpenAI") as mock_cls:
            provider = OpenAILLMProvider(_settings(openai_base_url="https://api.together.xyz/v1"))

        assert provider.get_provider_name() == "openai-compatible"
        assert mock_cls.call_args.kwargs["base_url"] == "https://api.together.xyz/v1"

    def test_is_available_without_key(self) -> None:
        from tunescout.providers.llm.openai_provider import OpenAILLMProvider
        assert OpenAILLMProvider(_settings(openai_api_key="")).is_available() is False

    @pytest.mark.asyncio
    async def test_complete_success(self, settings: Settings) -> None:
        from tunescout.providers.llm.openai_provider import OpenAILLMProvider

        mock_client = AsyncMock()
        mock_client.chat.completions.create = AsyncMock(
            return_value=_openai_response("LLM response text")
        )

        with patch("tunescout.providers.llm.openai_provider.openai.AsyncOpenAI", return_value=mock_client):
            provider = OpenAILLMProvider(settings)
            result = await provider.complete("system prompt", "user prompt")

        assert result == "LLM response text"
        kwargs = mock_client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["messages"][0] == {"role": "system", "content": "system prompt"}

    @pytest.mark.asyncio
    async def test_empty_content_is_llm_error(self, settings: Settings) -> None:
        from tunescout.providers.llm.openai_provider import OpenAILLMProvider

        mock_client = AsyncMock()
        mock_client.chat.completions.create = AsyncMock(return_value=_openai_response(""))

        with patch("tunescout.providers.llm.openai_provider.openai.AsyncOpenAI", return_value=mock_client):
            provider = OpenAILLMProvider(settings)
            with pytest.raises(LLMError):
                await provider.complete("system", "user")

    @pytest.mark.asyncio
    async def test_api_error_is_llm_error(self, settings: Settings) -> None:
        from tunescout.providers.llm.openai_provider import OpenAILLMProvider

        mock_client = AsyncMock()
        mock_client.chat.completions.create = AsyncMock(
            side_effect=openai.APIError(
                message="Server exploded",
                request=MagicMock(),
                body=None,
            )
        )

        with patch("tunescout.providers.llm.openai_provider.openai.AsyncOpenAI", return_value=mock_client):
            provider = OpenAILLMProvider(settings)
            with pytest.raises(LLMError) as exc_info:
                await provider.complete("system", "user")

        assert exc_info.value.provider_name == "openai"

    @pytest.mark.asyncio
    async def test_timeout_is_llm_error(self, settings: Settings) -> None:
        from tunescout.providers.llm.openai_provider import OpenAILLMProvider

        mock_client = AsyncMock()
        mock_client.chat.completions.create = AsyncMock(
            side_effect=openai.APITimeoutError(request=_request())
        )

        with patch("tunescout.providers.llm.openai_provider.openai.AsyncOpenAI", return_value=mock_client):
            provider = OpenAILLMProvider(settings)
            with pytest.raises(LLMError, match="timed out"):
                await provider.complete("system", "user")

    @pytest.mark.asyncio
    async def test_rate_limit_is_mapped(self, settings: Settings) -> None:
        from tunescout.providers.llm.openai_provider import OpenAILLMProvider

        mock_client = AsyncMock()
        mock_client.chat.completions.create = AsyncMock(
            side_effect=openai.RateLimitError(
                message="Too many requests",
                response=httpx.Response(429, request=_request()),
                body=None,
            )
        )

        with patch("tunescout.providers.llm.openai_provider.openai.AsyncOpenAI", return_value=mock_client):
            provider = OpenAILLMProvider(settings)
            with pytest.raises(RateLimitError):
                await provider.complete("system", "user")


# ======================================================================
# Anthropic LLM Provider
# ======================================================================


class TestAnthropicLLMProvider:
    @pytest.fixture()
    def settings(self) -> Settings:
        return _settings()

    def test_get_provider_name(self, settings: Settings) -> None:
        from tunescout.providers.llm.anthropic_provider import AnthropicLLMProvider
        assert AnthropicLLMProvider(settings).get_provider_name() == "anthropic"

    def test_is_available(self, settings: Settings) -> None:
        from tunescout.providers.llm.anthropic_provider import AnthropicLLMProvider
        assert AnthropicLLMProvider(settings).is_available() is True
        assert AnthropicLLMProvider(_settings(anthropic_api_key="")).is_available() is False

    @pytest.mark.asyncio
    async def test_complete_joins_text_blocks(self, settings: Settings) -> None:
        from tunescout.providers.llm.anthropic_provider import AnthropicLLMProvider

        mock_client = AsyncMock()
        mock_client.messages.create = AsyncMock(
            return_value=_anthropic_response(
                ("text", "first"), ("tool_use", "ignored"), ("text", "second")
            )
        )

        with patch("tunescout.providers.llm.anthropic_provider.anthropic.AsyncAnthropic", return_value=mock_client):
            provider = AnthropicLLMProvider(settings)
            result = await provider.complete("system", "user")

        assert result == "first\nsecond"
        kwargs = mock_client.messages.create.call_args.kwargs
        assert kwargs["system"] == "system"
        assert kwargs["messages"] == [{"role": "user", "content": "user"}]

    @pytest.mark.asyncio
    async def test_no_text_is_llm_error(self, settings: Settings) -> None:
        from tunescout.providers.llm.anthropic_provider import AnthropicLLMProvider

        mock_client = AsyncMock()
        mock_client.messages.create = AsyncMock(return_value=_anthropic_response())

        with patch("tunescout.providers.llm.anthropic_provider.anthropic.AsyncAnthropic", return_value=mock_client):
            provider = AnthropicLLMProvider(settings)
            with pytest.raises(LLMError):
                await provider.complete("system", "user")

    @pytest.mark.asyncio
    async def test_api_error_is_llm_error(self, settings: Settings) -> None:
        from tunescout.providers.llm.anthropic_provider import AnthropicLLMProvider

        mock_client = AsyncMock()
        mock_client.messages.create = AsyncMock(
            side_effect=anthropic.APIError(message="overloaded", request=_request(), body=None)
        )

        with patch("tunescout.providers.llm.anthropic_provider.anthropic.AsyncAnthropic", return_value=mock_client):
            provider = AnthropicLLMProvider(settings)
            with pytest.raises(LLMError):
                await provider.complete("system", "user")

    @pytest.mark.asyncio
    async def test_rate_limit_is_mapped(self, settings: Settings) -> None:
        from tunescout.providers.llm.anthropic_provider import AnthropicLLMProvider

        mock_client = AsyncMock()
        mock_client.messages.create = AsyncMock(
            side_effect=anthropic.RateLimitError(
                message="slow down",
                response=httpx.Response(429, request=_request()),
                body=None,
            )
        )

        with patch("tunescout.providers.llm.anthropic_provider.anthropic.AsyncAnthropic", return_value=mock_client):
            provider = AnthropicLLMProvider(settings)
            with pytest.raises(RateLimitError):
                await provider.complete("system", "user")
