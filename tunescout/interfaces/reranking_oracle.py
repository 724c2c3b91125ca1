"""Abstract base class for the optional AI re-ranking oracle.

The oracle receives an affinity summary and a bounded candidate list
(track id, title, artist -- never local scores) and returns, for a subset
of those ids, a reason text and a relevance score in ``[0, 1]``.

The oracle is strictly optional.  When no credentials are configured the
application simply runs without one, and any failure of a configured
oracle is absorbed by the caller (tunescout/services/reranker.py).
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from tunescout.models.recommendation import OracleRequest, OracleResponse


# Concrete implementation: LLMRerankingOracle (tunescout/providers/oracle/)
class IRerankingOracle(ABC):
    """Contract for relevance oracles used to re-rank the working set."""

    @abstractmethod
    async def rerank(self, request: OracleRequest) -> OracleResponse:
        """Return relevance opinions for some of the requested candidates.

        Raises
        ------
        tunescout.utils.errors.OracleError
            If the oracle fails or its reply cannot be parsed.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for logs and health checks."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the oracle is configured and may be called."""
