"""SQLite-backed signal store.

Persists users, playback history and liked tracks to a local SQLite
database at ``data/signals.db``.  Uses ``aiosqlite`` for async I/O.

Retention rules are applied on write: a play shorter than the minimum
listen duration is never stored, events older than the retention window
are dropped, and each user keeps at most ``max_events_per_user`` events
(oldest removed first).
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable

import aiosqlite
import structlog

from tunescout.interfaces.signal_store import ISignalStore
from tunescout.models.tracks import LikedTrack, PlaybackEvent, TrackResult
from tunescout.utils.errors import SignalStoreError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/signals.db")

_CREATE_TABLES_SQL = [
    """\
CREATE TABLE IF NOT EXISTS users (
    user_id     TEXT PRIMARY KEY,
    created_at  TEXT NOT NULL
);
""",
    """\
CREATE TABLE IF NOT EXISTS plays (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id         TEXT    NOT NULL,
    track_id        TEXT    NOT NULL,
    title           TEXT    NOT NULL,
    artist          TEXT    NOT NULL,
    thumbnail       TEXT    NOT NULL DEFAULT '',
    duration_label  TEXT    NOT NULL DEFAULT '',
    listen_seconds  REAL    NOT NULL,
    played_at       TEXT    NOT NULL
);
""",
    """\
CREATE TABLE IF NOT EXISTS likes (
    user_id         TEXT NOT NULL,
    track_id        TEXT NOT NULL,
    title           TEXT NOT NULL,
    artist          TEXT NOT NULL,
    thumbnail       TEXT NOT NULL DEFAULT '',
    duration_label  TEXT NOT NULL DEFAULT '',
    liked_at        TEXT NOT NULL,
    PRIMARY KEY (user_id, track_id)
);
""",
]

_CREATE_INDICES_SQL = [
    "CREATE INDEX IF NOT EXISTS idx_plays_user_time ON plays(user_id, played_at);",
    "CREATE INDEX IF NOT EXISTS idx_likes_user_time ON likes(user_id, liked_at);",
]

_SELECT_PLAYS_SQL = """\
SELECT user_id, track_id, title, artist, thumbnail, duration_label, listen_seconds, played_at
FROM plays
WHERE user_id = ?
ORDER BY played_at DESC, id DESC
LIMIT ?;
"""

_SELECT_LIKES_SQL = """\
SELECT user_id, track_id, title, artist, thumbnail, duration_label, liked_at
FROM likes
WHERE user_id = ?
ORDER BY liked_at DESC
LIMIT ?;
"""

_INSERT_LIKE_SQL = """\
INSERT INTO likes (user_id, track_id, title, artist, thumbnail, duration_label, liked_at)
VALUES (?, ?, ?, ?, ?, ?, ?)
ON CONFLICT(user_id, track_id) DO NOTHING;
"""

_PRUNE_AGE_SQL = "DELETE FROM plays WHERE played_at < ?"

# Keeps the newest N rows per user; everything ranked after them goes.
_PRUNE_CAP_SQL = """\
DELETE FROM plays
WHERE id IN (
    SELECT id FROM (
        SELECT id, ROW_NUMBER() OVER (
            PARTITION BY user_id ORDER BY played_at DESC, id DESC
        ) AS rn
        FROM plays
        {where}
    )
    WHERE rn > ?
);
"""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _to_db_time(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    # Fixed-width UTC strings sort lexicographically in time order.
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def _from_db_time(value: str) -> datetime:
    return datetime.strptime(value, "%Y-%m-%dT%H:%M:%S.%fZ").replace(tzinfo=timezone.utc)


class SQLiteSignalStore(ISignalStore):
    """SQLite-backed playback-history and liked-track persistence.

    Parameters
    ----------
    db_path:
        Location of the database file; parent directories are created.
    min_listen_seconds:
        Plays shorter than this are not recorded.
    retention_days:
        Plays older than this many days are pruned.
    max_events_per_user:
        Per-user cap on stored plays, oldest pruned first.
    clock:
        Returns the current UTC time; tests inject a fixed clock.
    """

    def __init__(
        self,
        db_path: str | Path = _DEFAULT_DB_PATH,
        min_listen_seconds: float = 30.0,
        retention_days: int = 90,
        max_events_per_user: int = 500,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._db_path = Path(db_path)
        self._min_listen_seconds = min_listen_seconds
        self._retention = timedelta(days=retention_days)
        self._max_events = max_events_per_user
        self._clock = clock

    async def initialize(self) -> None:
        """Create tables and indices if they don't exist."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                for table_sql in _CREATE_TABLES_SQL:
                    await db.execute(table_sql)
                for idx_sql in _CREATE_INDICES_SQL:
                    await db.execute(idx_sql)
                await db.commit()
        except aiosqlite.Error as exc:
            raise self._wrap("initialize", exc) from exc
        logger.info("signal_db_initialized", path=str(self._db_path))

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    async def user_exists(self, user_id: str) -> bool:
        rows = await self._fetch("SELECT 1 FROM users WHERE user_id = ?", (user_id,))
        return bool(rows)

    async def register_user(self, user_id: str) -> None:
        await self._execute(
            "INSERT OR IGNORE INTO users (user_id, created_at) VALUES (?, ?)",
            (user_id, _to_db_time(self._clock())),
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_recent_plays(self, user_id: str, limit: int) -> list[PlaybackEvent]:
        """Return up to *limit* plays inside the retention window, newest first."""
        if limit <= 0:
            return []
        rows = await self._fetch(_SELECT_PLAYS_SQL, (user_id, limit))
        cutoff = self._clock() - self._retention
        events: list[PlaybackEvent] = []
        for row in rows:
            played_at = _from_db_time(row["played_at"])
            if played_at < cutoff:
                continue
            events.append(
                PlaybackEvent(
                    user_id=row["user_id"],
                    track_id=row["track_id"],
                    title=row["title"],
                    artist=row["artist"],
                    thumbnail=row["thumbnail"],
                    duration_label=row["duration_label"],
                    played_at=played_at,
                    listen_seconds=row["listen_seconds"],
                )
            )
        return events

    async def get_liked_tracks(self, user_id: str, limit: int) -> list[LikedTrack]:
        """Return up to *limit* liked tracks, newest first."""
        if limit <= 0:
            return []
        rows = await self._fetch(_SELECT_LIKES_SQL, (user_id, limit))
        return [
            LikedTrack(
                user_id=row["user_id"],
                track_id=row["track_id"],
                title=row["title"],
                artist=row["artist"],
                thumbnail=row["thumbnail"],
                duration_label=row["duration_label"],
                liked_at=_from_db_time(row["liked_at"]),
            )
            for row in rows
        ]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def record_play(
        self,
        user_id: str,
        track: TrackResult,
        listen_seconds: float,
        played_at: datetime | None = None,
    ) -> PlaybackEvent | None:
        """Store a play if it lasted at least ``min_listen_seconds``."""
        if listen_seconds < self._min_listen_seconds:
            logger.debug(
                "play_below_threshold",
                user_id=user_id,
                track_id=track.track_id,
                listen_seconds=listen_seconds,
            )
            return None

        played_at = played_at or self._clock()
        await self.register_user(user_id)
        await self._execute(
            "INSERT INTO plays (user_id, track_id, title, artist, thumbnail, duration_label, "
            "listen_seconds, played_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
            (
                user_id,
                track.track_id,
                track.title,
                track.artist,
                track.thumbnail,
                track.duration_label,
                float(listen_seconds),
                _to_db_time(played_at),
            ),
        )
        await self.prune_history(user_id)
        logger.info("play_recorded", user_id=user_id, track_id=track.track_id)
        return PlaybackEvent(
            user_id=user_id,
            track_id=track.track_id,
            title=track.title,
            artist=track.artist,
            thumbnail=track.thumbnail,
            duration_label=track.duration_label,
            played_at=played_at,
            listen_seconds=listen_seconds,
        )

    async def like_track(
        self,
        user_id: str,
        track: TrackResult,
        liked_at: datetime | None = None,
    ) -> LikedTrack:
        """Like *track*; a repeated like keeps the original timestamp."""
        liked_at = liked_at or self._clock()
        await self.register_user(user_id)
        await self._execute(
            _INSERT_LIKE_SQL,
            (
                user_id,
                track.track_id,
                track.title,
                track.artist,
                track.thumbnail,
                track.duration_label,
                _to_db_time(liked_at),
            ),
        )
        rows = await self._fetch(
            "SELECT user_id, track_id, title, artist, thumbnail, duration_label, liked_at "
            "FROM likes WHERE user_id = ? AND track_id = ?",
            (user_id, track.track_id),
        )
        row = rows[0]
        logger.info("track_liked", user_id=user_id, track_id=track.track_id)
        return LikedTrack(
            user_id=row["user_id"],
            track_id=row["track_id"],
            title=row["title"],
            artist=row["artist"],
            thumbnail=row["thumbnail"],
            duration_label=row["duration_label"],
            liked_at=_from_db_time(row["liked_at"]),
        )

    async def unlike_track(self, user_id: str, track_id: str) -> bool:
        deleted = await self._execute(
            "DELETE FROM likes WHERE user_id = ? AND track_id = ?",
            (user_id, track_id),
        )
        logger.info("track_unliked", user_id=user_id, track_id=track_id, deleted=deleted)
        return deleted > 0

    async def prune_history(self, user_id: str | None = None) -> int:
        """Drop plays past the retention window, then enforce the per-user cap."""
        cutoff = _to_db_time(self._clock() - self._retention)
        if user_id is None:
            by_age = await self._execute(_PRUNE_AGE_SQL, (cutoff,))
            by_cap = await self._execute(_PRUNE_CAP_SQL.format(where=""), (self._max_events,))
        else:
            by_age = await self._execute(_PRUNE_AGE_SQL + " AND user_id = ?", (cutoff, user_id))
            by_cap = await self._execute(
                _PRUNE_CAP_SQL.format(where="WHERE user_id = ?"),
                (user_id, self._max_events),
            )
        removed = by_age + by_cap
        if removed:
            logger.info("history_pruned", user_id=user_id, by_age=by_age, by_cap=by_cap)
        return removed

    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this provider."""
        return "sqlite_signals"

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _fetch(self, sql: str, params: tuple[Any, ...]) -> list[aiosqlite.Row]:
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                db.row_factory = aiosqlite.Row
                cursor = await db.execute(sql, params)
                rows = await cursor.fetchall()
        except aiosqlite.Error as exc:
            raise self._wrap("read", exc) from exc
        return list(rows)

    async def _execute(self, sql: str, params: tuple[Any, ...]) -> int:
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                cursor = await db.execute(sql, params)
                await db.commit()
                return cursor.rowcount
        except aiosqlite.Error as exc:
            raise self._wrap("write", exc) from exc

    def _wrap(self, operation: str, exc: Exception) -> SignalStoreError:
        logger.error("signal_store_failed", operation=operation, error=str(exc))
        return SignalStoreError(
            message=f"Signal store {operation} failed: {exc}",
            provider_name=self.get_provider_name(),
        )
