"""HTTP trending chart provider.

Fetches the current top-chart snapshot from a JSON endpoint.  The chart is
refreshed upstream on its own cadence, so the snapshot is kept in a
one-slot ``cachetools.TTLCache`` and shared by every request until it
expires.
"""

from __future__ import annotations

import httpx
from cachetools import TTLCache

from tunescout.interfaces.catalogue_provider import ITrendingProvider
from tunescout.models.tracks import TrackResult
from tunescout.utils.errors import RateLimitError, TrendingProviderError
from tunescout.utils.logging import get_logger
from tunescout.utils.track_normalizer import normalize_track_list

_USER_AGENT = "tunescout/0.1.0"


class HttpChartsProvider(ITrendingProvider):
    """Trending snapshot backed by a JSON HTTP endpoint.

    Parameters
    ----------
    http_client:
        Injected ``httpx.AsyncClient``.
    charts_url:
        Full URL of the chart endpoint.
    country:
        Chart region code sent as the ``country`` query parameter.
    timeout:
        Per-request timeout in seconds.
    cache_ttl:
        Seconds a fetched snapshot is reused; ``0`` disables reuse.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        charts_url: str,
        country: str = "US",
        timeout: float = 10.0,
        cache_ttl: int = 900,
    ) -> None:
        self._http = http_client
        self._charts_url = charts_url
        self._country = country
        self._timeout = timeout
        self._snapshot: TTLCache[str, list[TrackResult]] | None = (
            TTLCache(maxsize=1, ttl=cache_ttl) if cache_ttl > 0 else None
        )
        self._logger = get_logger(__name__)

    async def get_top_charts(self) -> list[TrackResult]:
        """Return the current chart snapshot, most popular first."""
        if self._snapshot is not None and self._country in self._snapshot:
            return list(self._snapshot[self._country])

        try:
            response = await self._http.get(
                self._charts_url,
                params={"country": self._country},
                headers={"User-Agent": _USER_AGENT, "Accept": "application/json"},
                timeout=self._timeout,
            )
        except httpx.HTTPError as exc:
            self._logger.warning("charts_request_failed", error=str(exc))
            raise TrendingProviderError(
                message=f"Chart snapshot request failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        if response.status_code == 429:
            raise RateLimitError(
                message="Chart service rate limit exceeded",
                provider_name=self.get_provider_name(),
            )
        if response.status_code >= 400:
            raise TrendingProviderError(
                message=f"Chart service returned HTTP {response.status_code}",
                provider_name=self.get_provider_name(),
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise TrendingProviderError(
                message="Chart service returned a non-JSON body",
                provider_name=self.get_provider_name(),
            ) from exc

        # Envelopes like {"success": true, "songs": [...]} are unwrapped here.
        tracks = normalize_track_list(payload)
        self._logger.info("charts_fetched", country=self._country, track_count=len(tracks))
        if self._snapshot is not None and tracks:
            self._snapshot[self._country] = tracks
        return list(tracks)

    def get_provider_name(self) -> str:
        return "http-charts"

    def is_available(self) -> bool:
        return bool(self._charts_url)
