"""Candidate source adapters.

Five independent strategies, each producing its own :class:`CandidatePool`:

    1. LikedSimilaritySource     "You might like"
    2. ArtistAffinitySource      "More from {artist}"
    3. RecentPlaySource          "Because you played {track}"
    4. TrendingAlignmentSource   "Trending in your style"
    5. FreshDiscoverySource      "Fresh discoveries"

Sources never see each other's output.  Each one fills a fresh pool and
hands it back; cross-source dedup and the global per-artist cap are the
aggregator's job.  Inside its own pool a source still skips recently played
tracks, tracks it already emitted, and artists that hit the diversity cap.

A failing search query costs that query's candidates and nothing else
(``parallel_search`` logs it and returns ``None`` for that slot).  The chart
snapshot is fetched once per run by :class:`ChartSnapshot` and shared by the
two chart-driven sources.
"""

from __future__ import annotations

import asyncio
import math
import random
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass, field

from tunescout.config.engine import EngineConfig
from tunescout.interfaces.catalogue_provider import ITrackSearchProvider, ITrendingProvider
from tunescout.models.recommendation import AffinityProfile, Candidate, CandidatePool, ReasonKind
from tunescout.models.tracks import LikedTrack, PlaybackEvent, TrackResult
from tunescout.utils.concurrency import parallel_search
from tunescout.utils.logging import get_logger
from tunescout.utils.text_normalizer import artist_overlaps, primary_artist, titles_match

REASON_LIKED = "You might like"
REASON_ARTIST_PREFIX = "More from "
REASON_RECENT_PREFIX = "Because you played "
REASON_TRENDING = "Trending in your style"
REASON_FRESH = "Fresh discoveries"

# Top artists searched when the chart is down; keeps the fallback cheap.
_TRENDING_FALLBACK_ARTISTS = 5


class ChartSnapshot:
    """One trending-chart fetch per pipeline run, shared by its readers.

    The first :meth:`get` starts the fetch; later callers await the same
    task.  Readers are shielded from each other: a source that times out
    does not cancel the fetch for the others.  A failed fetch reads as
    ``None`` (unavailable), an empty chart as ``[]``.
    """

    def __init__(self, provider: ITrendingProvider, size: int) -> None:
        self._provider = provider
        self._size = size
        self._task: asyncio.Task[list[TrackResult] | None] | None = None
        self._logger = get_logger(__name__)

    async def _fetch(self) -> list[TrackResult] | None:
        try:
            tracks = await self._provider.get_top_charts()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            self._logger.warning(
                "chart_snapshot_unavailable",
                provider=self._provider.get_provider_name(),
                error=str(exc),
            )
            return None
        return list(tracks[: self._size])

    def start(self) -> asyncio.Task[list[TrackResult] | None]:
        if self._task is None:
            self._task = asyncio.ensure_future(self._fetch())
        return self._task

    async def get(self) -> list[TrackResult] | None:
        return await asyncio.shield(self.start())

    def peek(self) -> list[TrackResult] | None:
        """Return the snapshot if the fetch already finished, else ``None``."""
        if self._task is None or not self._task.done() or self._task.cancelled():
            return None
        return self._task.result()

    async def close(self) -> None:
        """Cancel a fetch that is still running (deadline hit or caller gone)."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
            await asyncio.gather(self._task, return_exceptions=True)


@dataclass
class SourceContext:
    """Read-only inputs shared by every source during one run."""

    profile: AffinityProfile
    plays: Sequence[PlaybackEvent]
    likes: Sequence[LikedTrack]
    # Track ids no source may emit: the recent-play window plus liked tracks.
    excluded_ids: frozenset[str]
    chart: ChartSnapshot
    rng: random.Random = field(default_factory=random.Random)

    @property
    def liked_artists(self) -> frozenset[str]:
        return frozenset(primary_artist(like.artist) for like in self.likes)


class _PoolBuilder:
    """Per-source accumulator enforcing the in-pool skip rules."""

    def __init__(self, source: ReasonKind, context: SourceContext, artist_cap: int) -> None:
        self.pool = CandidatePool(source=source)
        self._context = context
        self._artist_cap = artist_cap
        self._emitted: set[str] = set()
        self._artist_counts: dict[str, int] = {}

    def offer(self, track: TrackResult, score: float, reason: str, source_weight: float) -> bool:
        if track.track_id in self._context.excluded_ids:
            self.pool.skip("excluded")
            return False
        if track.track_id in self._emitted:
            self.pool.skip("duplicate")
            return False
        artist_key = primary_artist(track.artist)
        if self._artist_counts.get(artist_key, 0) >= self._artist_cap:
            self.pool.skip("artist_cap")
            return False

        self._emitted.add(track.track_id)
        self._artist_counts[artist_key] = self._artist_counts.get(artist_key, 0) + 1
        self.pool.candidates.append(
            Candidate(
                track_id=track.track_id,
                title=track.title,
                artist=track.artist,
                thumbnail=track.thumbnail,
                duration_label=track.duration_label,
                score=score,
                reason_tag=reason,
                source_weight=source_weight,
                source=self.pool.source,
            )
        )
        return True


class CandidateSource(ABC):
    """Base class for one candidate-generation strategy."""

    kind: ReasonKind

    def __init__(self, search: ITrackSearchProvider, config: EngineConfig) -> None:
        self._search = search
        self._config = config
        self._logger = get_logger(__name__)

    @property
    def name(self) -> str:
        return self.kind.value

    def recency_boost(self, index: int) -> float:
        """``1 / (1 + i * falloff)`` for the i-th seed, newest first."""
        return 1.0 / (1.0 + index * self._config.recency_falloff)

    def _builder(self, context: SourceContext) -> _PoolBuilder:
        return _PoolBuilder(self.kind, context, self._config.diversity_cap)

    async def _search_all(self, queries: list[str]) -> list[list[TrackResult] | None]:
        return await parallel_search(
            self._search.search_tracks,
            [{"query": q, "search_type": "songs"} for q in queries],
            logger=self._logger,
            error_msg=f"{self.name}_query_failed",
        )

    @abstractmethod
    async def collect(self, context: SourceContext) -> CandidatePool:
        """Produce this source's pool for one run."""


class LikedSimilaritySource(CandidateSource):
    """Tracks similar to recently liked ones.

    Searches "title artist" for each recent like and takes results after
    the first, which is usually the liked recording itself.
    """

    kind = ReasonKind.LIKED_SIMILARITY

    async def collect(self, context: SourceContext) -> CandidatePool:
        builder = self._builder(context)
        seeds = list(context.likes[: self._config.liked_seed_count])
        if not seeds:
            return builder.pool

        results = await self._search_all([f"{s.title} {s.artist}" for s in seeds])
        base = self._config.source_weights.liked_similarity
        for index, (seed, tracks) in enumerate(zip(seeds, results)):
            if not tracks:
                continue
            weight = base * self.recency_boost(index)
            accepted = 0
            for track in tracks[1:]:
                if accepted >= self._config.liked_results_per_seed:
                    break
                if track.track_id == seed.track_id or titles_match(track.title, seed.title):
                    builder.pool.skip("seed")
                    continue
                if builder.offer(track, weight, REASON_LIKED, weight):
                    accepted += 1
        return builder.pool


class ArtistAffinitySource(CandidateSource):
    """More tracks by the listener's top artists."""

    kind = ReasonKind.ARTIST_AFFINITY

    async def collect(self, context: SourceContext) -> CandidatePool:
        builder = self._builder(context)
        artists = list(context.profile.top_artists)
        if not artists:
            return builder.pool

        results = await self._search_all(artists)
        base = self._config.source_weights.artist_affinity
        for artist, tracks in zip(artists, results):
            if not tracks:
                continue
            affinity = context.profile.artist_weights.get(artist, 0.0)
            weight = base * math.log10(affinity + 10.0)
            accepted = 0
            for track in tracks:
                if accepted >= self._config.artist_results_per_artist:
                    break
                if builder.offer(track, weight, f"{REASON_ARTIST_PREFIX}{artist}", weight):
                    accepted += 1
        return builder.pool


class RecentPlaySource(CandidateSource):
    """Tracks by artists from recent plays the listener has not liked."""

    kind = ReasonKind.RECENT_PLAY

    async def collect(self, context: SourceContext) -> CandidatePool:
        builder = self._builder(context)
        liked_artists = context.liked_artists
        # (position in context.plays, play)
        seeds: list[tuple[int, PlaybackEvent]] = []
        seen_artists: set[str] = set()
        for position, play in enumerate(context.plays[: self._config.recent_seed_count]):
            key = primary_artist(play.artist)
            if key in liked_artists or key in seen_artists:
                continue
            seen_artists.add(key)
            seeds.append((position, play))
        if not seeds:
            return builder.pool

        results = await self._search_all([play.artist for _, play in seeds])
        base = self._config.source_weights.recent_play
        for (position, seed), tracks in zip(seeds, results):
            if not tracks:
                continue
            weight = base * self.recency_boost(position)
            reason = f"{REASON_RECENT_PREFIX}{seed.title}"
            accepted = 0
            for track in tracks:
                if accepted >= self._config.recent_results_per_seed:
                    break
                if track.track_id == seed.track_id:
                    builder.pool.skip("seed")
                    continue
                if builder.offer(track, weight, reason, weight):
                    accepted += 1
        return builder.pool


class TrendingAlignmentSource(CandidateSource):
    """Chart tracks by artists the listener already likes.

    When the chart is unavailable, each top artist's "top songs" search
    stands in for the chart.
    """

    kind = ReasonKind.TRENDING_ALIGNMENT

    def popularity_factor(self, track: TrackResult, rank: int, total: int) -> float:
        """Scale in ``[0.8, 1.1]``; rank stands in for a missing popularity."""
        popularity = track.popularity
        if popularity is None:
            popularity = 1.0 - rank / max(total, 1)
        return 0.8 + 0.3 * popularity

    async def collect(self, context: SourceContext) -> CandidatePool:
        builder = self._builder(context)
        top_artists = list(context.profile.top_artists)
        if not top_artists:
            return builder.pool

        base = self._config.source_weights.trending_alignment
        chart = await context.chart.get()
        if chart:
            for rank, track in enumerate(chart):
                if not any(artist_overlaps(track.artist, artist) for artist in top_artists):
                    continue
                weight = base * self.popularity_factor(track, rank, len(chart))
                builder.offer(track, weight, REASON_TRENDING, weight)
            return builder.pool

        fallback_artists = top_artists[:_TRENDING_FALLBACK_ARTISTS]
        self._logger.info("trending_alignment_fallback", artists=len(fallback_artists))
        results = await self._search_all([f"{artist} top songs" for artist in fallback_artists])
        for tracks in results:
            if not tracks:
                continue
            for rank, track in enumerate(tracks):
                weight = base * self.popularity_factor(track, rank, len(tracks))
                builder.offer(track, weight, REASON_TRENDING, weight)
        return builder.pool


class FreshDiscoverySource(CandidateSource):
    """A random sample from below the top of the chart, not affinity filtered."""

    kind = ReasonKind.FRESH_DISCOVERY

    async def collect(self, context: SourceContext) -> CandidatePool:
        builder = self._builder(context)
        chart = await context.chart.get()
        if not chart:
            return builder.pool

        tail = chart[self._config.discovery_offset :]
        sample = context.rng.sample(tail, min(self._config.discovery_sample_size, len(tail)))
        weights = self._config.source_weights
        for track in sample:
            weight = context.rng.uniform(weights.discovery_min, weights.discovery_max)
            builder.offer(track, weight, REASON_FRESH, weight)
        return builder.pool


def default_sources(search: ITrackSearchProvider, config: EngineConfig) -> list[CandidateSource]:
    """The five sources in merge order."""
    return [
        LikedSimilaritySource(search, config),
        ArtistAffinitySource(search, config),
        RecentPlaySource(search, config),
        TrendingAlignmentSource(search, config),
        FreshDiscoverySource(search, config),
    ]
