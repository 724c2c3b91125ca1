"""Track search providers."""

from tunescout.providers.search.http_search_provider import HttpTrackSearchProvider

__all__ = ["HttpTrackSearchProvider"]
