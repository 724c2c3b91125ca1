"""Candidate aggregator -- the single writer of the merged pool.

Pools are merged one after another with one shared seen-id set and one
shared per-artist counter, so the diversity cap applies across sources,
not per source.  Inside a pool the source's order is kept and the first
accepted occurrence of a track id wins.

Because sources hand back their own pools and only this class merges them,
no two coroutines ever write to the same structure.
"""

from __future__ import annotations

from collections.abc import Iterable

from tunescout.models.recommendation import Candidate, CandidatePool
from tunescout.utils.logging import get_logger
from tunescout.utils.text_normalizer import primary_artist


class CandidateAggregator:
    """Merges per-source pools under the dedup and diversity-cap invariants."""

    def __init__(self, diversity_cap: int) -> None:
        self._diversity_cap = diversity_cap
        self._logger = get_logger(__name__)

    def merge(
        self,
        pools: Iterable[CandidatePool],
        excluded_ids: frozenset[str] = frozenset(),
    ) -> list[Candidate]:
        """Return the merged pool in merge order.

        Parameters
        ----------
        pools:
            Source pools, merged in iteration order.
        excluded_ids:
            Track ids rejected outright (recent plays, liked tracks).
        """
        merged: list[Candidate] = []
        seen: set[str] = set()
        artist_counts: dict[str, int] = {}

        for pool in pools:
            accepted = duplicates = capped = excluded = 0
            for candidate in pool.candidates:
                if candidate.track_id in excluded_ids:
                    excluded += 1
                    continue
                if candidate.track_id in seen:
                    duplicates += 1
                    continue
                artist_key = primary_artist(candidate.artist)
                if artist_counts.get(artist_key, 0) >= self._diversity_cap:
                    capped += 1
                    continue
                seen.add(candidate.track_id)
                artist_counts[artist_key] = artist_counts.get(artist_key, 0) + 1
                merged.append(candidate)
                accepted += 1

            self._logger.debug(
                "pool_merged",
                source=pool.source.value,
                offered=len(pool),
                accepted=accepted,
                duplicates=duplicates,
                capped=capped,
                excluded=excluded,
                source_skips=pool.skipped,
            )

        return merged
