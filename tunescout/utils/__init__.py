"""Utility modules for tunescout.

- **errors** -- Exception hierarchy rooted at TuneScoutError; only the
  caller-facing subclasses ever leave the recommendation pipeline.
- **concurrency** -- asyncio semaphore throttling, fan-out helpers and the
  deadline-bounded task gather used for candidate sources.
- **logging** -- structlog setup with a dual-renderer pattern: coloured
  console output in development, structured JSON in production.
- **text_normalizer** -- Artist credit splitting and fuzzy title matching.
- **track_normalizer** (not re-exported here) -- The normalization boundary
  for raw search/chart payloads.
"""

from tunescout.utils.errors import (
    AuthenticationError,
    ConfigurationError,
    InvalidRequestError,
    LLMError,
    OracleError,
    RateLimitError,
    SearchProviderError,
    SignalStoreError,
    TrendingProviderError,
    TuneScoutError,
    UserNotFoundError,
)
from tunescout.utils.logging import configure_logging, get_logger

__all__ = [
    "AuthenticationError",
    "ConfigurationError",
    "InvalidRequestError",
    "LLMError",
    "OracleError",
    "RateLimitError",
    "SearchProviderError",
    "SignalStoreError",
    "TrendingProviderError",
    "TuneScoutError",
    "UserNotFoundError",
    "configure_logging",
    "get_logger",
]
