"""Application settings loaded from environment variables via pydantic-settings.

# ─── HOW SETTINGS WORK ────────────────────────────────────────────────
#
# Values are read from two sources (in priority order):
#
#   1. Environment variables -- e.g. OPENAI_API_KEY=sk-abc123
#   2. .env file             -- key=value lines in the project root
#
# Field ``openai_api_key`` maps to env var ``OPENAI_API_KEY``.  Defaults
# apply when neither source sets a field.
#
# Tuning constants for the recommendation pipeline itself live in
# EngineConfig (tunescout/config/engine.py), loaded from config.yaml.
# ──────────────────────────────────────────────────────────────────────
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """tunescout application settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # === Music catalogue ===
    # Base URL of the external track search service (GET {base}/search?q=...).
    search_base_url: str = "https://api.yuzone.me"
    # Endpoint returning the current trending chart snapshot.
    charts_url: str = "https://api.yuzone.me/charts"
    charts_country: str = "US"
    http_timeout_seconds: float = 10.0
    # Provider-side result caches (seconds); 0 disables.
    search_cache_ttl_seconds: int = 600
    charts_cache_ttl_seconds: int = 900

    # === LLM re-ranking oracle ===
    # Empty string = "not configured".  With no key the oracle is disabled,
    # which is a normal runtime state, not an error.
    reranker_enabled: bool = True
    openai_api_key: str = ""
    openai_base_url: str = ""  # Custom base URL for OpenAI-compatible APIs
    openai_text_model: str = ""
    anthropic_api_key: str = ""
    anthropic_model: str = ""

    # === Signal store ===
    signal_db_path: str = "data/signals.db"
    min_listen_seconds: float = 30.0
    history_retention_days: int = 90
    max_events_per_user: int = 500

    # === Engine tuning file ===
    engine_config_path: str = "config/config.yaml"

    # === App Config ===
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    app_env: str = "development"
    log_level: str = "INFO"

    def get_available_llm_providers(self) -> list[str]:
        """Return the LLM provider names that have non-empty API keys configured."""
        providers: list[str] = []
        if self.anthropic_api_key:
            providers.append("anthropic")
        if self.openai_api_key:
            providers.append("openai")
        return providers
