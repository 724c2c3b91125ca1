"""Optional AI re-ranking step.

Given the ranked working set, asks the configured
:class:`IRerankingOracle` for relevance opinions and blends them in:

    new_score = local_weight * local_score + oracle_weight * relevance

for every candidate the oracle opined on (defaults 0.4 / 0.6).  Those
candidates also take the oracle's reason text; their bucket does not
change because routing reads ``Candidate.routing_tag``.  Candidates the
oracle ignored keep their local score.  The list is re-sorted stably.

The step is strictly additive.  It is skipped when no oracle is
configured or the working set is too small to be worth a call, and any
failure (timeout, provider error, malformed reply) returns the local
ranking untouched.
"""

from __future__ import annotations

import asyncio
from dataclasses import replace
from typing import Any, NamedTuple

from tunescout.config.engine import EngineConfig
from tunescout.interfaces.reranking_oracle import IRerankingOracle
from tunescout.models.recommendation import (
    AffinityProfile,
    AffinitySummary,
    Candidate,
    OracleRequest,
    TrackRef,
)
from tunescout.utils.logging import get_logger


class RerankOutcome(NamedTuple):
    candidates: list[Candidate]
    insights: dict[str, Any] | None
    ai_enhanced: bool


class Reranker:
    """Blends oracle relevance into the local ranking, best effort."""

    def __init__(self, oracle: IRerankingOracle | None, config: EngineConfig) -> None:
        self._oracle = oracle
        self._config = config
        self._logger = get_logger(__name__)

    @property
    def enabled(self) -> bool:
        return self._oracle is not None and self._oracle.is_available()

    async def apply(
        self,
        candidates: list[Candidate],
        profile: AffinityProfile,
        context: str | None = None,
    ) -> RerankOutcome:
        local = RerankOutcome(candidates, None, False)
        if self._oracle is None or not self._oracle.is_available():
            return local
        if len(candidates) <= self._config.oracle_min_candidates:
            self._logger.debug("rerank_skipped_small_pool", candidates=len(candidates))
            return local

        request = OracleRequest(
            profile=AffinitySummary(
                top_artists=profile.top_artists,
                top_genres=profile.top_genres,
                liked_sample=profile.liked_sample,
                recent_sample=profile.recent_sample,
            ),
            candidates=[
                TrackRef(track_id=c.track_id, title=c.title, artist=c.artist) for c in candidates
            ],
            context=context,
        )

        try:
            response = await asyncio.wait_for(
                self._oracle.rerank(request),
                timeout=self._config.oracle_timeout_seconds,
            )
        except asyncio.TimeoutError:
            self._logger.warning(
                "rerank_timed_out",
                oracle=self._oracle.get_provider_name(),
                timeout=self._config.oracle_timeout_seconds,
            )
            return local
        except Exception as exc:
            self._logger.warning(
                "rerank_failed",
                oracle=self._oracle.get_provider_name(),
                error=str(exc),
            )
            return local

        opinions = {op.track_id: op for op in response.recommendations}
        if not opinions:
            self._logger.info("rerank_no_opinions", oracle=self._oracle.get_provider_name())
            return local

        local_weight = self._config.oracle_local_weight
        oracle_weight = self._config.oracle_weight
        blended: list[Candidate] = []
        matched = 0
        for candidate in candidates:
            opinion = opinions.get(candidate.track_id)
            if opinion is None:
                blended.append(candidate)
                continue
            matched += 1
            blended.append(
                replace(
                    candidate,
                    score=local_weight * candidate.score + oracle_weight * opinion.relevance_score,
                    reason_tag=opinion.reason_text,
                )
            )

        if not matched:
            self._logger.info("rerank_no_matching_opinions", opinions=len(opinions))
            return local

        blended.sort(key=lambda c: c.score, reverse=True)
        self._logger.info(
            "rerank_applied",
            oracle=self._oracle.get_provider_name(),
            candidates=len(candidates),
            opinions=matched,
        )
        return RerankOutcome(blended, dict(response.insights) or None, True)
