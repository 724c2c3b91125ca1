"""Shared pytest fixtures and in-memory fakes for the tunescout test suite."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from tunescout.config.engine import EngineConfig
from tunescout.interfaces.catalogue_provider import ITrackSearchProvider, ITrendingProvider
from tunescout.interfaces.reranking_oracle import IRerankingOracle
from tunescout.interfaces.signal_store import ISignalStore
from tunescout.models.recommendation import OracleRequest, OracleResponse
from tunescout.models.tracks import LikedTrack, PlaybackEvent, TrackResult
from tunescout.utils.errors import OracleError, SearchProviderError, TrendingProviderError

BASE_TIME = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def make_track(
    track_id: str,
    title: str | None = None,
    artist: str = "Artist X",
    popularity: float | None = None,
) -> TrackResult:
    return TrackResult(
        track_id=track_id,
        title=title or f"Song {track_id}",
        artist=artist,
        thumbnail=f"https://img.example/{track_id}.jpg",
        duration_label="3:30",
        popularity=popularity,
    )


def make_play(
    track_id: str,
    title: str | None = None,
    artist: str = "Artist X",
    minutes_ago: int = 0,
    user_id: str = "alice",
) -> PlaybackEvent:
    return PlaybackEvent(
        user_id=user_id,
        track_id=track_id,
        title=title or f"Song {track_id}",
        artist=artist,
        played_at=BASE_TIME - timedelta(minutes=minutes_ago),
        listen_seconds=120.0,
    )


def make_like(
    track_id: str,
    title: str | None = None,
    artist: str = "Artist X",
    minutes_ago: int = 0,
    user_id: str = "alice",
) -> LikedTrack:
    return LikedTrack(
        user_id=user_id,
        track_id=track_id,
        title=title or f"Song {track_id}",
        artist=artist,
        liked_at=BASE_TIME - timedelta(minutes=minutes_ago),
    )


def chart_of(count: int, prefix: str = "c", artist_prefix: str = "Chart Artist") -> list[TrackResult]:
    """A chart of *count* tracks, each by a different artist."""
    return [
        make_track(f"{prefix}{i}", artist=f"{artist_prefix} {i}", popularity=round(1 - i / count, 4))
        for i in range(count)
    ]


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeSearchProvider(ITrackSearchProvider):
    """Canned search results keyed by exact query."""

    def __init__(
        self,
        results: dict[str, list[TrackResult]] | None = None,
        failing: set[str] | None = None,
        delay: float = 0.0,
    ) -> None:
        self.results = results or {}
        self.failing = failing or set()
        self.delay = delay
        self.calls: list[str] = []

    async def search_tracks(self, query: str, search_type: str = "songs") -> list[TrackResult]:
        self.calls.append(query)
        if self.delay:
            await asyncio.sleep(self.delay)
        if query in self.failing:
            raise SearchProviderError(message=f"boom: {query}", provider_name="fake-search")
        return list(self.results.get(query, []))

    def get_provider_name(self) -> str:
        return "fake-search"

    def is_available(self) -> bool:
        return True


class FakeTrendingProvider(ITrendingProvider):
    def __init__(
        self,
        chart: list[TrackResult] | None = None,
        fail: bool = False,
        delay: float = 0.0,
    ) -> None:
        self.chart = chart or []
        self.fail = fail
        self.delay = delay
        self.calls = 0

    async def get_top_charts(self) -> list[TrackResult]:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise TrendingProviderError(message="charts down", provider_name="fake-charts")
        return list(self.chart)

    def get_provider_name(self) -> str:
        return "fake-charts"

    def is_available(self) -> bool:
        return True


class FakeOracle(IRerankingOracle):
    """Returns a canned response, raises, or hangs."""

    def __init__(
        self,
        response: OracleResponse | None = None,
        fail: bool = False,
        delay: float = 0.0,
        available: bool = True,
    ) -> None:
        self.response = response or OracleResponse()
        self.fail = fail
        self.delay = delay
        self.available = available
        self.requests: list[OracleRequest] = []

    async def rerank(self, request: OracleRequest) -> OracleResponse:
        self.requests.append(request)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise OracleError(message="oracle exploded", provider_name="fake-oracle")
        return self.response

    def get_provider_name(self) -> str:
        return "fake-oracle"

    def is_available(self) -> bool:
        return self.available


class InMemorySignalStore(ISignalStore):
    """Dict-backed signal store with the same threshold rule as SQLite."""

    def __init__(self, min_listen_seconds: float = 30.0) -> None:
        self.min_listen_seconds = min_listen_seconds
        self.users: set[str] = set()
        self.plays: dict[str, list[PlaybackEvent]] = {}
        self.likes: dict[str, list[LikedTrack]] = {}

    def seed(
        self,
        user_id: str,
        plays: list[PlaybackEvent] = (),  # type: ignore[assignment]
        likes: list[LikedTrack] = (),  # type: ignore[assignment]
    ) -> None:
        self.users.add(user_id)
        self.plays[user_id] = sorted(plays, key=lambda p: p.played_at, reverse=True)
        self.likes[user_id] = sorted(likes, key=lambda like: like.liked_at, reverse=True)

    async def user_exists(self, user_id: str) -> bool:
        return user_id in self.users

    async def register_user(self, user_id: str) -> None:
        self.users.add(user_id)

    async def get_recent_plays(self, user_id: str, limit: int) -> list[PlaybackEvent]:
        return list(self.plays.get(user_id, []))[:limit]

    async def get_liked_tracks(self, user_id: str, limit: int) -> list[LikedTrack]:
        return list(self.likes.get(user_id, []))[:limit]

    async def record_play(
        self,
        user_id: str,
        track: TrackResult,
        listen_seconds: float,
        played_at: datetime | None = None,
    ) -> PlaybackEvent | None:
        if listen_seconds < self.min_listen_seconds:
            return None
        self.users.add(user_id)
        event = PlaybackEvent(
            user_id=user_id,
            track_id=track.track_id,
            title=track.title,
            artist=track.artist,
            played_at=played_at or BASE_TIME,
            listen_seconds=listen_seconds,
        )
        self.plays.setdefault(user_id, []).insert(0, event)
        return event

    async def like_track(
        self,
        user_id: str,
        track: TrackResult,
        liked_at: datetime | None = None,
    ) -> LikedTrack:
        self.users.add(user_id)
        for existing in self.likes.get(user_id, []):
            if existing.track_id == track.track_id:
                return existing
        liked = LikedTrack(
            user_id=user_id,
            track_id=track.track_id,
            title=track.title,
            artist=track.artist,
            liked_at=liked_at or BASE_TIME,
        )
        self.likes.setdefault(user_id, []).insert(0, liked)
        return liked

    async def unlike_track(self, user_id: str, track_id: str) -> bool:
        before = len(self.likes.get(user_id, []))
        self.likes[user_id] = [t for t in self.likes.get(user_id, []) if t.track_id != track_id]
        return len(self.likes[user_id]) < before

    async def prune_history(self, user_id: str | None = None) -> int:
        return 0


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def engine_config() -> EngineConfig:
    """Default tuning constants."""
    return EngineConfig()


@pytest.fixture
def signal_store() -> InMemorySignalStore:
    return InMemorySignalStore()


@pytest.fixture
def sample_chart() -> list[TrackResult]:
    return chart_of(40)


def config_with(**overrides: Any) -> EngineConfig:
    """EngineConfig with field overrides (nested models accept dicts)."""
    return EngineConfig.model_validate(overrides)
