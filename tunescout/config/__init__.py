"""Configuration module -- exports Settings, EngineConfig and the loaders."""

from tunescout.config.engine import BucketCaps, EngineConfig, SourceWeights
from tunescout.config.loader import build_engine_config, load_config
from tunescout.config.settings import Settings

__all__ = [
    "BucketCaps",
    "EngineConfig",
    "Settings",
    "SourceWeights",
    "build_engine_config",
    "load_config",
]
