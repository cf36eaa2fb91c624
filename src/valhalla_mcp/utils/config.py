from __future__ import annotations

import dataclasses
import os
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional


@dataclass
class EngineConfig:
    base_url: str = "http://localhost:8002"
    timeout_seconds: float = 30.0


@dataclass
class CacheConfig:
    route_ttl_seconds: float = 300.0
    isochrone_ttl_seconds: float = 600.0
    health_ttl_seconds: float = 30.0
    sweep_interval_seconds: float = 60.0
    max_size: Optional[int] = None  # None = unbounded


@dataclass
class MetricsConfig:
    max_history: int = 1000
    health_window: int = 50


@dataclass
class ServerConfig:
    engine: EngineConfig = dataclasses.field(default_factory=EngineConfig)
    cache: CacheConfig = dataclasses.field(default_factory=CacheConfig)
    metrics: MetricsConfig = dataclasses.field(default_factory=MetricsConfig)
    transport: str = "stdio"  # stdio | http
    host: str = "127.0.0.1"
    port: int = 3000
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ServerConfig":
        def build(dc_cls, key):
            values = data.get(key, {})
            return dc_cls(**values)

        top_level = {f.name for f in dataclasses.fields(cls)} - {"engine", "cache", "metrics"}
        return cls(
            engine=build(EngineConfig, "engine"),
            cache=build(CacheConfig, "cache"),
            metrics=build(MetricsConfig, "metrics"),
            **{k: v for k, v in data.items() if k in top_level},
        )

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ServerConfig":
        env = os.environ if environ is None else environ
        config = cls()
        if env.get("VALHALLA_BASE_URL"):
            config.engine.base_url = env["VALHALLA_BASE_URL"]
        if env.get("VALHALLA_TIMEOUT_SECONDS"):
            config.engine.timeout_seconds = float(env["VALHALLA_TIMEOUT_SECONDS"])
        if env.get("LOG_LEVEL"):
            config.log_level = env["LOG_LEVEL"].upper()
        return config
