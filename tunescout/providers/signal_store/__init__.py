"""Signal store providers (playback history and liked tracks)."""

from tunescout.providers.signal_store.sqlite_signal_store import SQLiteSignalStore

__all__ = ["SQLiteSignalStore"]
