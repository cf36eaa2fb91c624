"""Encoded polyline support for routing-engine shapes."""

from .polyline import DEFAULT_PRECISION, PolylineDecodeError, decode, encode

__all__ = [
    "DEFAULT_PRECISION",
    "PolylineDecodeError",
    "decode",
    "encode",
]
