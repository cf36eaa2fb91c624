"""valhalla_mcp

An MCP server exposing a Valhalla routing engine (routes, isochrones, tiles,
health) as tools and resources, with fingerprint caching, request metrics and
a stable error taxonomy around every engine call.
"""

__version__ = "0.1.0"

from .cache import CacheSet, TTLCache
from .codec import PolylineDecodeError, decode, encode
from .core import (
    Err,
    ErrorCode,
    Ok,
    RequestOrchestrator,
    StandardError,
    classify,
)
from .engine import RoutingEngine, ValhallaClient
from .monitoring import MetricsCollector, RequestMetric
from .utils import ServerConfig

__all__ = [
    "RequestOrchestrator",
    "Ok",
    "Err",
    "ErrorCode",
    "StandardError",
    "classify",
    "TTLCache",
    "CacheSet",
    "MetricsCollector",
    "RequestMetric",
    "RoutingEngine",
    "ValhallaClient",
    "ServerConfig",
    "PolylineDecodeError",
    "decode",
    "encode",
]
