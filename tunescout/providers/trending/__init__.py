"""Trending chart providers."""

from tunescout.providers.trending.http_charts_provider import HttpChartsProvider

__all__ = ["HttpChartsProvider"]
