"""YAML configuration loader with environment variable overrides.

# ─── CONFIGURATION HIERARCHY ──────────────────────────────────────────
#
# Configuration is loaded in layers (later layers override earlier):
#
#   1. config/config.yaml  -- Static defaults checked into the repo
#   2. .env file           -- Local developer overrides (not committed)
#   3. Environment vars    -- Set at deploy time
#
# load_config() reads the YAML file first, then deep-merges the
# environment-based Settings values on top.  build_engine_config() then
# validates the ``engine:`` section into a frozen EngineConfig.
# ──────────────────────────────────────────────────────────────────────
"""

from pathlib import Path

import yaml
from pydantic import ValidationError

from tunescout.config.engine import EngineConfig
from tunescout.config.settings import Settings
from tunescout.utils.errors import ConfigurationError


def load_config(path: str = "config/config.yaml", settings: Settings | None = None) -> dict:
    """Load YAML config and merge with environment-based Settings.

    Environment variables (via Settings) override YAML values where keys overlap.

    Args:
        path: Path to the YAML configuration file.
        settings: Optional pre-built Settings; a fresh one is created otherwise.

    Returns:
        Fully resolved configuration dictionary.
    """
    config_path = Path(path)
    if config_path.exists():
        with open(config_path) as f:
            try:
                yaml_config = yaml.safe_load(f) or {}
            except yaml.YAMLError as exc:
                raise ConfigurationError(message=f"Unreadable config file {path}: {exc}") from exc
    else:
        yaml_config = {}

    if not isinstance(yaml_config, dict):
        raise ConfigurationError(message=f"Config file {path} must contain a mapping")

    settings = settings or Settings()
    env_overrides = {
        "app": {
            "host": settings.app_host,
            "port": settings.app_port,
            "env": settings.app_env,
        },
        "catalogue": {
            "search_base_url": settings.search_base_url,
            "charts_url": settings.charts_url,
            "http_timeout_seconds": settings.http_timeout_seconds,
        },
        "llm": {
            "reranker_enabled": settings.reranker_enabled,
            "available_providers": settings.get_available_llm_providers(),
        },
        "signal_store": {
            "db_path": settings.signal_db_path,
            "min_listen_seconds": settings.min_listen_seconds,
            "retention_days": settings.history_retention_days,
            "max_events_per_user": settings.max_events_per_user,
        },
        "logging": {
            "level": settings.log_level,
        },
    }

    _deep_merge(yaml_config, env_overrides)
    return yaml_config


def build_engine_config(config: dict) -> EngineConfig:
    """Validate the ``engine:`` section of a loaded config into EngineConfig."""
    section = config.get("engine") or {}
    try:
        return EngineConfig.model_validate(section)
    except ValidationError as exc:
        raise ConfigurationError(message=f"Invalid engine configuration: {exc}") from exc


def _deep_merge(base: dict, overrides: dict) -> None:
    """Recursively merge overrides into base dict, mutating base in place."""
    for key, value in overrides.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
