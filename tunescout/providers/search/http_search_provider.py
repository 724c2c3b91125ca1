"""HTTP track search provider.

Calls the external search service (``GET {base}/search?q=...``) through an
injected ``httpx.AsyncClient`` and normalizes whatever shape comes back into
:class:`TrackResult` objects.  Results are memoized for a short window in a
``cachetools.TTLCache`` so that several candidate sources asking the same
question (the same artist, the same seed) within one run cost one request.
"""

from __future__ import annotations

import httpx
from cachetools import TTLCache

from tunescout.interfaces.catalogue_provider import ITrackSearchProvider
from tunescout.models.tracks import TrackResult
from tunescout.utils.errors import RateLimitError, SearchProviderError
from tunescout.utils.logging import get_logger
from tunescout.utils.track_normalizer import normalize_track_list

_USER_AGENT = "tunescout/0.1.0"


class HttpTrackSearchProvider(ITrackSearchProvider):
    """Track search backed by a JSON HTTP endpoint.

    Parameters
    ----------
    http_client:
        Injected ``httpx.AsyncClient`` for testability and connection pooling.
    base_url:
        Service root; the provider requests ``{base_url}/search``.
    timeout:
        Per-request timeout in seconds.
    cache_ttl:
        Seconds a query's results are reused; ``0`` disables memoization.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        base_url: str,
        timeout: float = 10.0,
        cache_ttl: int = 600,
    ) -> None:
        self._http = http_client
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._cache: TTLCache[tuple[str, str], list[TrackResult]] | None = (
            TTLCache(maxsize=512, ttl=cache_ttl) if cache_ttl > 0 else None
        )
        self._logger = get_logger(__name__)

    async def search_tracks(self, query: str, search_type: str = "songs") -> list[TrackResult]:
        """Search the catalogue for *query*.

        Returns
        -------
        list[TrackResult]
            Normalized results in the service's order; entries without a
            usable id are dropped.

        Raises
        ------
        RateLimitError
            On HTTP 429.
        SearchProviderError
            On transport failure, any other non-2xx status, or a body that is
            not JSON.
        """
        query = query.strip()
        if not query:
            return []

        cache_key = (query.lower(), search_type)
        if self._cache is not None and cache_key in self._cache:
            return list(self._cache[cache_key])

        try:
            response = await self._http.get(
                f"{self._base_url}/search",
                params={"q": query, "type": search_type},
                headers={"User-Agent": _USER_AGENT, "Accept": "application/json"},
                timeout=self._timeout,
            )
        except httpx.HTTPError as exc:
            self._logger.warning("search_request_failed", query=query, error=str(exc))
            raise SearchProviderError(
                message=f"Search request failed for '{query}': {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        if response.status_code == 429:
            raise RateLimitError(
                message="Search service rate limit exceeded",
                provider_name=self.get_provider_name(),
            )
        if response.status_code >= 400:
            raise SearchProviderError(
                message=f"Search service returned HTTP {response.status_code} for '{query}'",
                provider_name=self.get_provider_name(),
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise SearchProviderError(
                message=f"Search service returned a non-JSON body for '{query}'",
                provider_name=self.get_provider_name(),
            ) from exc

        tracks = normalize_track_list(payload)
        self._logger.debug("search_completed", query=query, result_count=len(tracks))
        if self._cache is not None:
            self._cache[cache_key] = tracks
        return list(tracks)

    def get_provider_name(self) -> str:
        return "http-search"

    def is_available(self) -> bool:
        return bool(self._base_url)
