"""Core request pipeline: validation models, error taxonomy, orchestration."""

from .errors import (
    ErrorCode,
    RateLimitError,
    RemoteEngineError,
    RemoteEngineInvalidResponseError,
    RemoteEngineTimeoutError,
    StandardError,
    ValidationError,
    classify,
    generate_request_id,
)
from .fingerprint import isochrone_fingerprint, route_fingerprint
from .models import Coordinate, IsochroneInput, RouteInput, TileCoordinates
from .orchestrator import RequestOrchestrator
from .result import Err, Ok, Result

__all__ = [
    # Orchestration
    "RequestOrchestrator",
    "Ok",
    "Err",
    "Result",
    # Errors
    "ErrorCode",
    "StandardError",
    "ValidationError",
    "RateLimitError",
    "RemoteEngineError",
    "RemoteEngineTimeoutError",
    "RemoteEngineInvalidResponseError",
    "classify",
    "generate_request_id",
    # Inputs
    "Coordinate",
    "RouteInput",
    "IsochroneInput",
    "TileCoordinates",
    "route_fingerprint",
    "isochrone_fingerprint",
]
