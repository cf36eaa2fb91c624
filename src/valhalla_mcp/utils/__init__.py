"""Configuration helpers."""

from .config import CacheConfig, EngineConfig, MetricsConfig, ServerConfig

__all__ = [
    "CacheConfig",
    "EngineConfig",
    "MetricsConfig",
    "ServerConfig",
]
