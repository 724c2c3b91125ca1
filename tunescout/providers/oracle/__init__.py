"""Re-ranking oracle providers."""

from tunescout.providers.oracle.llm_reranking_oracle import LLMRerankingOracle

__all__ = ["LLMRerankingOracle"]
