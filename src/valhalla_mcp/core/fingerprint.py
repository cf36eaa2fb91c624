"""Cache keys built from the parameters that change the engine's answer.

Field order is fixed and coordinates are rendered at six decimals, so two
logically identical requests always share a key.
"""

from __future__ import annotations

import typing as t

from .models import Coordinate, IsochroneInput, RouteInput

HEALTH_FINGERPRINT = "health|status"
COORDINATE_DECIMALS = 6


def _coord(c: Coordinate) -> str:
    return f"{c.lat:.{COORDINATE_DECIMALS}f},{c.lon:.{COORDINATE_DECIMALS}f}"


def _opt(value: t.Any) -> str:
    return "-" if value is None else repr(value)


def route_fingerprint(request: RouteInput) -> str:
    return "|".join(
        [
            "route",
            _coord(request.origin),
            _coord(request.destination),
            request.mode,
            request.units,
            str(request.alternatives or 0),
        ]
    )


def isochrone_fingerprint(request: IsochroneInput) -> str:
    return "|".join(
        [
            "isochrone",
            _coord(request.origin),
            request.mode,
            repr(float(request.minutes)),
            _opt(request.denoise),
            _opt(request.generalize),
        ]
    )
