"""Unit tests for SQLiteSignalStore -- threshold, retention, cap, likes."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
import pytest_asyncio

from tunescout.providers.signal_store.sqlite_signal_store import SQLiteSignalStore
from tunescout.utils.errors import SignalStoreError
from tests.conftest import make_track

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class MutableClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock() -> MutableClock:
    return MutableClock(NOW)


@pytest_asyncio.fixture
async def store(tmp_path: Path, clock: MutableClock) -> SQLiteSignalStore:
    s = SQLiteSignalStore(
        db_path=tmp_path / "nested" / "signals.db",
        min_listen_seconds=30,
        retention_days=90,
        max_events_per_user=5,
        clock=clock,
    )
    await s.initialize()
    return s


class TestUsers:
    @pytest.mark.asyncio
    async def test_register_is_idempotent(self, store: SQLiteSignalStore) -> None:
        assert await store.user_exists("alice") is False
        await store.register_user("alice")
        await store.register_user("alice")
        assert await store.user_exists("alice") is True

    @pytest.mark.asyncio
    async def test_uninitialized_database_raises_store_error(self, tmp_path: Path) -> None:
        s = SQLiteSignalStore(db_path=tmp_path / "empty.db")
        with pytest.raises(SignalStoreError) as exc_info:
            await s.user_exists("alice")
        assert exc_info.value.provider_name == "sqlite_signals"


class TestPlays:
    @pytest.mark.asyncio
    async def test_short_listen_is_not_recorded(self, store: SQLiteSignalStore) -> None:
        event = await store.record_play("alice", make_track("t1"), listen_seconds=29.9)
        assert event is None
        assert await store.get_recent_plays("alice", 10) == []
        assert await store.user_exists("alice") is False

    @pytest.mark.asyncio
    async def test_record_registers_user_and_reads_newest_first(
        self, store: SQLiteSignalStore, clock: MutableClock
    ) -> None:
        for i in range(3):
            clock.now = NOW + timedelta(minutes=i)
            await store.record_play("alice", make_track(f"t{i}"), listen_seconds=60)

        plays = await store.get_recent_plays("alice", 10)

        assert await store.user_exists("alice") is True
        assert [p.track_id for p in plays] == ["t2", "t1", "t0"]
        assert plays[0].played_at == NOW + timedelta(minutes=2)
        assert plays[0].listen_seconds == pytest.approx(60)

    @pytest.mark.asyncio
    async def test_limit_is_respected(self, store: SQLiteSignalStore) -> None:
        for i in range(4):
            await store.record_play(
                "alice", make_track(f"t{i}"), 60, played_at=NOW + timedelta(seconds=i)
            )
        assert len(await store.get_recent_plays("alice", 2)) == 2
        assert await store.get_recent_plays("alice", 0) == []

    @pytest.mark.asyncio
    async def test_per_user_cap_drops_oldest(self, store: SQLiteSignalStore) -> None:
        for i in range(8):
            await store.record_play(
                "alice", make_track(f"t{i}"), 60, played_at=NOW + timedelta(seconds=i)
            )
        await store.record_play("bob", make_track("b0"), 60)

        plays = await store.get_recent_plays("alice", 100)

        assert [p.track_id for p in plays] == ["t7", "t6", "t5", "t4", "t3"]
        assert len(await store.get_recent_plays("bob", 100)) == 1

    @pytest.mark.asyncio
    async def test_events_past_retention_are_pruned(
        self, store: SQLiteSignalStore, clock: MutableClock
    ) -> None:
        await store.record_play("alice", make_track("old"), 60, played_at=NOW - timedelta(days=89))
        await store.record_play("alice", make_track("new"), 60)

        clock.now = NOW + timedelta(days=2)
        # Reads hide expired rows even before a prune runs.
        assert [p.track_id for p in await store.get_recent_plays("alice", 10)] == ["new"]

        removed = await store.prune_history()
        assert removed == 1

    @pytest.mark.asyncio
    async def test_play_older_than_retention_is_dropped_on_write(
        self, store: SQLiteSignalStore
    ) -> None:
        await store.record_play(
            "alice", make_track("ancient"), 60, played_at=NOW - timedelta(days=200)
        )
        assert await store.get_recent_plays("alice", 10) == []


class TestLikes:
    @pytest.mark.asyncio
    async def test_like_is_idempotent(
        self, store: SQLiteSignalStore, clock: MutableClock
    ) -> None:
        first = await store.like_track("alice", make_track("t1"))
        clock.now = NOW + timedelta(hours=1)
        second = await store.like_track("alice", make_track("t1"))

        assert first.liked_at == second.liked_at == NOW
        assert len(await store.get_liked_tracks("alice", 10)) == 1

    @pytest.mark.asyncio
    async def test_likes_newest_first(
        self, store: SQLiteSignalStore, clock: MutableClock
    ) -> None:
        for i in range(3):
            clock.now = NOW + timedelta(minutes=i)
            await store.like_track("alice", make_track(f"t{i}", artist=f"A{i}"))

        likes = await store.get_liked_tracks("alice", 2)

        assert [like.track_id for like in likes] == ["t2", "t1"]
        assert likes[0].artist == "A2"

    @pytest.mark.asyncio
    async def test_unlike(self, store: SQLiteSignalStore) -> None:
        await store.like_track("alice", make_track("t1"))
        assert await store.unlike_track("alice", "t1") is True
        assert await store.unlike_track("alice", "t1") is False
        assert await store.get_liked_tracks("alice", 10) == []
