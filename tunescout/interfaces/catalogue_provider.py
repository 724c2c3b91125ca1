"""Abstract base classes for the music catalogue collaborators.

Two external services feed the candidate sources:

* a **track search service** -- free-text query in, best-effort ranked
  tracks out, no freshness or ordering guarantee beyond relevance;
* a **trending snapshot provider** -- the current top chart, refreshed on
  its own cadence and treated as a read-only feed.

Both return canonical :class:`TrackResult` objects; raw payload shapes are
normalized inside the adapter (see tunescout/utils/track_normalizer.py).
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from tunescout.models.tracks import TrackResult


# Concrete implementation: HttpTrackSearchProvider (tunescout/providers/search/)
class ITrackSearchProvider(ABC):
    """Contract for the external track search service."""

    @abstractmethod
    async def search_tracks(self, query: str, search_type: str = "songs") -> list[TrackResult]:
        """Search the catalogue.

        Parameters
        ----------
        query:
            Free-text query (e.g. ``"Song A Artist X"`` or an artist name).
        search_type:
            Result type filter understood by the service; ``"songs"`` by default.

        Returns
        -------
        list[TrackResult]
            Zero or more results in the service's relevance order.

        Raises
        ------
        tunescout.utils.errors.SearchProviderError
            If the call fails.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"http-search"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider is configured."""


# Concrete implementation: HttpChartsProvider (tunescout/providers/trending/)
class ITrendingProvider(ABC):
    """Contract for the trending chart snapshot feed."""

    @abstractmethod
    async def get_top_charts(self) -> list[TrackResult]:
        """Return the current chart, most popular first.

        Raises
        ------
        tunescout.utils.errors.TrendingProviderError
            If the snapshot cannot be fetched.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"http-charts"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider is configured."""
