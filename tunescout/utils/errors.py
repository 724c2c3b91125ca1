"""Custom exception hierarchy for tunescout.

All application exceptions inherit from :class:`TuneScoutError`, which
carries an optional ``provider_name`` so error handlers can identify which
external service (e.g. "charts", "openai", "sqlite") caused the failure.

The hierarchy is split by how far an error is allowed to travel:

    TuneScoutError  (base -- catch-all for any tunescout error)
    +-- AuthenticationError      (caller identity missing)          -> caller
    +-- UserNotFoundError        (no such user in the signal store)  -> caller
    +-- InvalidRequestError      (malformed request parameters)      -> caller
    +-- SignalStoreError         (signal store unreachable/failing)  -> caller
    +-- SearchProviderError      (external track search failed)      absorbed
    +-- TrendingProviderError    (chart snapshot fetch failed)       absorbed
    +-- LLMError                 (any LLM API call failure)          absorbed
    +-- OracleError              (re-ranking oracle failure)         absorbed
    +-- RateLimitError           (provider rate-limit exceeded)      absorbed
    +-- ConfigurationError       (startup / missing config)

"Absorbed" errors are logged by the recommendation pipeline and turned into
a degraded result; they never reach the HTTP layer.  The first four are the
only failures a caller ever sees.
"""


class TuneScoutError(Exception):
    """Base exception for all tunescout errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which external service triggered the
    error.  ``__str__`` prefixes the provider name in brackets for log
    output, e.g. ``[charts] Chart snapshot request failed``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Caller-facing errors
# ---------------------------------------------------------------------------

class AuthenticationError(TuneScoutError):
    """Raised when a request arrives without a resolvable user identity."""

    def __init__(
        self,
        message: str = "Not signed in",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class UserNotFoundError(TuneScoutError):
    """Raised when the user id is unknown to the signal store."""

    def __init__(
        self,
        message: str = "User not found",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class InvalidRequestError(TuneScoutError):
    """Raised for malformed request parameters (blank user id, bad view name)."""

    def __init__(
        self,
        message: str = "Invalid request",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class SignalStoreError(TuneScoutError):
    """Raised when playback history or liked tracks cannot be read or written.

    The pipeline cannot run without the user's signals, so this one is
    surfaced rather than degraded.
    """

    def __init__(
        self,
        message: str = "Signal store is unavailable",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# External service / provider errors (absorbed by the pipeline)
# ---------------------------------------------------------------------------

class SearchProviderError(TuneScoutError):
    """Raised when the external track search service fails."""

    def __init__(
        self,
        message: str = "Track search failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class TrendingProviderError(TuneScoutError):
    """Raised when the trending chart snapshot cannot be fetched."""

    def __init__(
        self,
        message: str = "Chart snapshot request failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class RateLimitError(TuneScoutError):
    """Raised when an API rate limit is exceeded."""

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class LLMError(TuneScoutError):
    """Raised when an LLM API call fails or returns an empty response."""

    def __init__(
        self,
        message: str = "LLM API call failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class OracleError(TuneScoutError):
    """Raised when the re-ranking oracle fails or replies with unusable data."""

    def __init__(
        self,
        message: str = "Re-ranking oracle failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Configuration errors
# ---------------------------------------------------------------------------

class ConfigurationError(TuneScoutError):
    """Raised when configuration is invalid or missing at startup."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
