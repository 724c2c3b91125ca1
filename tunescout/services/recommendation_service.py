"""Recommendation service -- the public contract of the engine.

Pipeline for one user::

    signal store -> affinity analyzer -> 5 candidate sources (concurrent,
    chart fetch alongside) -> aggregator -> ranker -> optional re-ranker
    -> grouper -> cache

Caching has two recommendation tiers plus one for smart playlists, all in
the injected :class:`ICacheProvider`:

    rec         full RankedResult                        (server_cache_ttl)
    rec_client  RankedResult trimmed to N per bucket      (client_cache_ttl)
    smart       list of SmartPlaylist                     (smart_cache_ttl)

A cached value is never modified; a refresh computes a new result and
replaces the entry.  ``force_refresh`` drops both recommendation tiers
before recomputing.

Only four errors ever leave this module: :class:`InvalidRequestError`
(bad arguments), :class:`UserNotFoundError`, :class:`SignalStoreError`
and, from the API layer above, :class:`AuthenticationError`.  Failing
sources, a failing chart and a failing oracle all degrade the result
instead.
"""

from __future__ import annotations

import asyncio
import random
from collections.abc import Callable, Sequence
from datetime import datetime, timezone
from functools import partial

from tunescout.config.engine import EngineConfig
from tunescout.interfaces.cache_provider import CacheKey, CacheNamespace, ICacheProvider
from tunescout.interfaces.catalogue_provider import ITrackSearchProvider, ITrendingProvider
from tunescout.interfaces.reranking_oracle import IRerankingOracle
from tunescout.interfaces.signal_store import ISignalStore
from tunescout.models.playlist import SmartPlaylist
from tunescout.models.recommendation import CandidatePool, RankedResult
from tunescout.models.tracks import LikedTrack, PlaybackEvent, TrackResult
from tunescout.services.affinity_analyzer import AffinityAnalyzer
from tunescout.services.candidate_aggregator import CandidateAggregator
from tunescout.services.candidate_sources import (
    CandidateSource,
    ChartSnapshot,
    SourceContext,
    default_sources,
)
from tunescout.services.grouper import Grouper
from tunescout.services.ranker import Ranker
from tunescout.services.reranker import Reranker
from tunescout.services.smart_playlist_builder import SmartPlaylistBuilder
from tunescout.utils.concurrency import gather_with_deadline
from tunescout.utils.errors import InvalidRequestError, UserNotFoundError
from tunescout.utils.logging import bind_request_context, get_logger

VIEW_FULL = "full"
VIEW_CLIENT = "client"
_VIEWS = (VIEW_FULL, VIEW_CLIENT)
_MAX_USER_ID_LENGTH = 128


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RecommendationService:
    """Computes, caches and serves recommendations and smart playlists.

    Parameters
    ----------
    signal_store:
        Source of play history and likes; also answers "does this user exist".
    search_provider:
        External track search used by the candidate sources.
    trending_provider:
        Trending chart snapshot.
    cache:
        Typed per-user cache.
    config:
        Pipeline tuning constants.
    oracle:
        Optional re-ranking oracle; ``None`` disables AI re-ranking.
    rng:
        Random source for jitter and discovery sampling; seed it in tests.
    sources:
        Candidate sources in merge order; defaults to the five standard ones.
    clock:
        Returns the current UTC time for ``generated_at``.
    """

    def __init__(
        self,
        signal_store: ISignalStore,
        search_provider: ITrackSearchProvider,
        trending_provider: ITrendingProvider,
        cache: ICacheProvider,
        config: EngineConfig,
        oracle: IRerankingOracle | None = None,
        rng: random.Random | None = None,
        sources: Sequence[CandidateSource] | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = signal_store
        self._trending = trending_provider
        self._cache = cache
        self._config = config
        self._rng = rng or random.Random()
        self._clock = clock
        self._sources = list(sources) if sources is not None else default_sources(
            search_provider, config
        )
        self._analyzer = AffinityAnalyzer(config)
        self._aggregator = CandidateAggregator(config.diversity_cap)
        self._ranker = Ranker(config, self._rng)
        self._reranker = Reranker(oracle, config)
        self._grouper = Grouper(config)
        self._playlists = SmartPlaylistBuilder(config)
        self._logger = get_logger(__name__)

    @property
    def reranker_enabled(self) -> bool:
        return self._reranker.enabled

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def get_recommendations(
        self,
        user_id: str,
        force_refresh: bool = False,
        view: str = VIEW_FULL,
    ) -> RankedResult:
        """Return the user's bucketed recommendations.

        Parameters
        ----------
        user_id:
            The caller's id.
        force_refresh:
            Skip and invalidate both cache tiers, then recompute.
        view:
            ``"full"`` for the server-side result, ``"client"`` for the
            trimmed client tier.

        Raises
        ------
        InvalidRequestError
            Blank/oversized user id or unknown view.
        UserNotFoundError
            The signal store does not know the user.
        SignalStoreError
            The signal store is unavailable.
        """
        user_id = self._check_user_id(user_id)
        if view not in _VIEWS:
            raise InvalidRequestError(message=f"Unknown view '{view}', expected one of {_VIEWS}")
        bind_request_context(user_id=user_id)
        await self._require_user(user_id)

        server_key = CacheKey(CacheNamespace.RECOMMENDATIONS, user_id)
        client_key = CacheKey(CacheNamespace.CLIENT_RECOMMENDATIONS, user_id)

        if force_refresh:
            await self._cache.invalidate(server_key)
            await self._cache.invalidate(client_key)
        else:
            if view == VIEW_CLIENT:
                cached_client = await self._cache.get(client_key)
                if cached_client is not None:
                    self._logger.debug("recommendations_cache_hit", tier=client_key.namespace.value)
                    return cached_client
            cached = await self._cache.get(server_key)
            if cached is not None:
                self._logger.debug("recommendations_cache_hit", tier=server_key.namespace.value)
                if view == VIEW_CLIENT:
                    return await self._store_client_tier(client_key, cached)
                return cached

        result = await self._run_pipeline(user_id)
        await self._cache.set(server_key, result, self._config.server_cache_ttl_seconds)
        client_result = await self._store_client_tier(client_key, result)
        return client_result if view == VIEW_CLIENT else result

    async def get_smart_playlists(
        self,
        user_id: str,
        force_refresh: bool = False,
    ) -> list[SmartPlaylist]:
        """Return the user's smart playlists (cached per user)."""
        user_id = self._check_user_id(user_id)
        bind_request_context(user_id=user_id)
        await self._require_user(user_id)

        key = CacheKey(CacheNamespace.SMART_PLAYLISTS, user_id)
        if force_refresh:
            await self._cache.invalidate(key)
        else:
            cached = await self._cache.get(key)
            if cached is not None:
                return list(cached)

        plays, likes = await self._read_signals(
            user_id, self._config.smart_history_limit, self._config.smart_likes_limit
        )
        trending = await self._fetch_trending()
        playlists = self._playlists.build_all(likes, plays, trending)
        await self._cache.set(key, tuple(playlists), self._config.smart_cache_ttl_seconds)
        return playlists

    async def invalidate(self, user_id: str) -> int:
        """Drop every cached entry for the user.  Returns the number removed."""
        removed = await self._cache.invalidate_user(self._check_user_id(user_id))
        self._logger.debug("user_cache_invalidated", user_id=user_id, removed=removed)
        return removed

    # -- Signal writes (keep caches consistent with the store) ----------

    async def register_user(self, user_id: str) -> None:
        await self._store.register_user(self._check_user_id(user_id))

    async def record_play(
        self,
        user_id: str,
        track: TrackResult,
        listen_seconds: float,
    ) -> PlaybackEvent | None:
        user_id = self._check_user_id(user_id)
        event = await self._store.record_play(user_id, track, listen_seconds)
        if event is not None:
            await self.invalidate(user_id)
        return event

    async def like_track(self, user_id: str, track: TrackResult) -> LikedTrack:
        user_id = self._check_user_id(user_id)
        liked = await self._store.like_track(user_id, track)
        await self.invalidate(user_id)
        return liked

    async def unlike_track(self, user_id: str, track_id: str) -> bool:
        user_id = self._check_user_id(user_id)
        removed = await self._store.unlike_track(user_id, track_id)
        if removed:
            await self.invalidate(user_id)
        return removed

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    async def _run_pipeline(self, user_id: str) -> RankedResult:
        config = self._config
        plays, likes = await self._read_signals(user_id, config.history_limit, config.likes_limit)
        profile = self._analyzer.analyze(plays, likes)

        excluded_ids = frozenset(p.track_id for p in plays[: config.recent_exclusion_window])
        excluded_ids |= frozenset(like.track_id for like in likes)

        snapshot = ChartSnapshot(self._trending, config.chart_snapshot_size)
        context = SourceContext(
            profile=profile,
            plays=plays,
            likes=likes,
            excluded_ids=excluded_ids,
            chart=snapshot,
            rng=self._rng,
        )

        pools: list[CandidatePool] = []
        try:
            # Chart fetch runs alongside the sources, not behind them.
            snapshot.start()
            outcomes = await gather_with_deadline(
                {source.name: partial(source.collect, context) for source in self._sources},
                deadline=config.pipeline_deadline_seconds,
                task_timeout=config.source_timeout_seconds,
                max_parallel=config.max_parallel_sources,
            )
            for source in self._sources:
                outcome = outcomes[source.name]
                if isinstance(outcome, TimeoutError):
                    self._logger.warning(
                        "candidate_source_timed_out", source=source.name, error=str(outcome)
                    )
                elif isinstance(outcome, BaseException):
                    self._logger.warning(
                        "candidate_source_failed", source=source.name, error=str(outcome)
                    )
                else:
                    pools.append(outcome)
            trending = snapshot.peek() or []
        finally:
            await snapshot.close()

        merged = self._aggregator.merge(pools, excluded_ids)
        ranked = self._ranker.rank(merged)
        reranked = await self._reranker.apply(ranked, profile)

        result = self._grouper.group(
            user_id,
            reranked.candidates,
            profile,
            trending=trending,
            excluded_ids=excluded_ids,
            ai_enhanced=reranked.ai_enhanced,
            insights=reranked.insights,
            now=self._clock(),
        )
        self._logger.info(
            "recommendations_computed",
            plays=len(plays),
            likes=len(likes),
            cold_start=profile.is_cold_start,
            pooled=sum(len(p) for p in pools),
            merged=len(merged),
            total=result.total,
            ai_enhanced=result.ai_enhanced,
            fallback_used=result.fallback_used,
        )
        return result

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _check_user_id(user_id: str) -> str:
        cleaned = (user_id or "").strip()
        if not cleaned:
            raise InvalidRequestError(message="User id must not be blank")
        if len(cleaned) > _MAX_USER_ID_LENGTH:
            raise InvalidRequestError(message="User id is too long")
        return cleaned

    async def _require_user(self, user_id: str) -> None:
        if not await self._store.user_exists(user_id):
            raise UserNotFoundError(message=f"No such user: {user_id}")

    async def _read_signals(
        self,
        user_id: str,
        history_limit: int,
        likes_limit: int,
    ) -> tuple[list[PlaybackEvent], list[LikedTrack]]:
        plays, likes = await asyncio.gather(
            self._store.get_recent_plays(user_id, history_limit),
            self._store.get_liked_tracks(user_id, likes_limit),
        )
        return list(plays), list(likes)

    async def _fetch_trending(self) -> list[TrackResult]:
        try:
            tracks = await asyncio.wait_for(
                self._trending.get_top_charts(),
                timeout=self._config.source_timeout_seconds,
            )
        except asyncio.TimeoutError:
            self._logger.warning("chart_snapshot_timed_out")
            return []
        except Exception as exc:
            self._logger.warning("chart_snapshot_unavailable", error=str(exc))
            return []
        return list(tracks[: self._config.chart_snapshot_size])

    async def _store_client_tier(self, key: CacheKey, result: RankedResult) -> RankedResult:
        trimmed = result.trimmed(self._config.client_bucket_size)
        await self._cache.set(key, trimmed, self._config.client_cache_ttl_seconds)
        return trimmed
