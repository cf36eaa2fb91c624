from __future__ import annotations

import typing as t

Coordinate = t.Tuple[float, float]

# Valhalla encodes shapes with six decimal digits; Google-style polylines use five.
DEFAULT_PRECISION = 6

_OFFSET = 63
_CONTINUATION = 0x20
_CHUNK_MASK = 0x1F


class PolylineDecodeError(ValueError):
    """Raised when an encoded polyline is truncated or contains invalid characters."""


def _read_value(encoded: str, index: int) -> t.Tuple[int, int]:
    shift = 0
    result = 0
    while True:
        if index >= len(encoded):
            raise PolylineDecodeError(f"truncated polyline at offset {index}")
        chunk = ord(encoded[index]) - _OFFSET
        if chunk < 0 or chunk > 0x3F:
            raise PolylineDecodeError(f"invalid polyline character {encoded[index]!r} at offset {index}")
        index += 1
        result |= (chunk & _CHUNK_MASK) << shift
        shift += 5
        if chunk < _CONTINUATION:
            break
    # zig-zag
    delta = ~(result >> 1) if result & 1 else result >> 1
    return delta, index


def decode(encoded: str, precision: int = DEFAULT_PRECISION) -> t.List[Coordinate]:
    """Decode an encoded polyline into ``(lat, lon)`` pairs."""
    factor = 10**precision
    coords: t.List[Coordinate] = []
    index = 0
    lat = 0
    lon = 0
    while index < len(encoded):
        delta_lat, index = _read_value(encoded, index)
        if index >= len(encoded):
            raise PolylineDecodeError("polyline ends after a latitude without a longitude")
        delta_lon, index = _read_value(encoded, index)
        lat += delta_lat
        lon += delta_lon
        coords.append((lat / factor, lon / factor))
    return coords


def _write_value(value: int, out: t.List[str]) -> None:
    value = ~(value << 1) if value < 0 else value << 1
    while value >= _CONTINUATION:
        out.append(chr((_CONTINUATION | (value & _CHUNK_MASK)) + _OFFSET))
        value >>= 5
    out.append(chr(value + _OFFSET))


def encode(coords: t.Iterable[Coordinate], precision: int = DEFAULT_PRECISION) -> str:
    factor = 10**precision
    out: t.List[str] = []
    prev_lat = 0
    prev_lon = 0
    for lat, lon in coords:
        lat_i = int(round(lat * factor))
        lon_i = int(round(lon * factor))
        _write_value(lat_i - prev_lat, out)
        _write_value(lon_i - prev_lon, out)
        prev_lat, prev_lon = lat_i, lon_i
    return "".join(out)
