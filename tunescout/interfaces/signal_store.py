"""Abstract base class for listener signal stores.

Defines the contract for reading (and, for the rest of the application,
writing) a user's playback history and liked tracks.  The recommendation
pipeline only uses the read side; implementations may use SQLite, a
document database, or anything else behind this interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from tunescout.models.tracks import LikedTrack, PlaybackEvent, TrackResult


# Concrete implementation: SQLiteSignalStore (tunescout/providers/signal_store/)
class ISignalStore(ABC):
    """Contract for playback-history and liked-track persistence.

    All operations are async to support network-backed stores.
    """

    @abstractmethod
    async def user_exists(self, user_id: str) -> bool:
        """Return ``True`` if *user_id* is a known user.

        Raises
        ------
        tunescout.utils.errors.SignalStoreError
            If the store cannot be reached.
        """

    @abstractmethod
    async def register_user(self, user_id: str) -> None:
        """Create *user_id* if it does not exist yet (idempotent)."""

    @abstractmethod
    async def get_recent_plays(self, user_id: str, limit: int) -> list[PlaybackEvent]:
        """Return up to *limit* playback events for the user, newest first.

        Raises
        ------
        tunescout.utils.errors.SignalStoreError
            If the store cannot be read.
        """

    @abstractmethod
    async def get_liked_tracks(self, user_id: str, limit: int) -> list[LikedTrack]:
        """Return up to *limit* liked tracks for the user, newest first.

        Raises
        ------
        tunescout.utils.errors.SignalStoreError
            If the store cannot be read.
        """

    @abstractmethod
    async def record_play(
        self,
        user_id: str,
        track: TrackResult,
        listen_seconds: float,
        played_at: datetime | None = None,
    ) -> PlaybackEvent | None:
        """Append a playback event if the listen qualifies.

        Returns
        -------
        PlaybackEvent or None
            The stored event, or ``None`` when *listen_seconds* is below the
            store's minimum-duration threshold.
        """

    @abstractmethod
    async def like_track(
        self,
        user_id: str,
        track: TrackResult,
        liked_at: datetime | None = None,
    ) -> LikedTrack:
        """Like a track.  Liking an already-liked track returns the existing record."""

    @abstractmethod
    async def unlike_track(self, user_id: str, track_id: str) -> bool:
        """Remove a like.  Returns ``True`` if a record was deleted."""

    @abstractmethod
    async def prune_history(self, user_id: str | None = None) -> int:
        """Apply retention rules (age window, per-user cap).

        Parameters
        ----------
        user_id:
            Restrict pruning to one user; ``None`` prunes every user.

        Returns
        -------
        int
            Number of playback events deleted.
        """
