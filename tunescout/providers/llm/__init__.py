"""LLM providers used by the re-ranking oracle."""

from tunescout.providers.llm.anthropic_provider import AnthropicLLMProvider
from tunescout.providers.llm.openai_provider import OpenAILLMProvider

__all__ = ["AnthropicLLMProvider", "OpenAILLMProvider"]
