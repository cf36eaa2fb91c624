from __future__ import annotations

import logging
import time
import typing as t
from dataclasses import dataclass
from datetime import datetime, timezone

from ..cache.ttl_cache import CacheSet, TTLCache
from ..codec.polyline import PolylineDecodeError, decode
from ..engine.base import RoutingEngine
from ..monitoring.metrics import MetricsCollector, RequestMetric
from .errors import RemoteEngineInvalidResponseError, classify, generate_request_id
from .fingerprint import COORDINATE_DECIMALS, HEALTH_FINGERPRINT, isochrone_fingerprint, route_fingerprint
from .models import Coordinate, IsochroneInput, RouteInput, TileCoordinates
from .result import Err, Ok, Result

_logger = logging.getLogger(__name__)

JSON = t.Dict[str, t.Any]
P = t.TypeVar("P")

SERVER_NAME = "valhalla-mcp-server"
SUPPORTED_TOOLS = ["route", "isochrone"]
SUPPORTED_RESOURCES = ["health", "tile", "metrics"]
ISOCHRONE_COLOR = "ff0000"


@dataclass(frozen=True)
class Endpoint:
    method: str
    path: str


ROUTE = Endpoint("POST", "/route")
ISOCHRONE = Endpoint("POST", "/isochrone")
HEALTH = Endpoint("GET", "/status")
TILE = Endpoint("GET", "/tile")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# Rounded like the cache key.
def _location(c: Coordinate) -> JSON:
    return {"lat": round(c.lat, COORDINATE_DECIMALS), "lon": round(c.lon, COORDINATE_DECIMALS)}


class RequestOrchestrator:
    """Runs every tool and resource call through the same pipeline.

    validate -> cache lookup -> (hit: return) | (miss -> engine call -> enrich
    -> cache store) -> record metric. Any failure along the way is classified
    and recorded, and comes back as an `Err`; nothing is raised to the caller.
    """

    def __init__(
        self,
        engine: RoutingEngine,
        caches: t.Optional[CacheSet] = None,
        metrics: t.Optional[MetricsCollector] = None,
        *,
        server_version: str = "0.1.0",
    ) -> None:
        self._engine = engine
        self._caches = caches or CacheSet.create()
        self._metrics = metrics or MetricsCollector()
        self._server_version = server_version

    @property
    def engine(self) -> RoutingEngine:
        return self._engine

    @property
    def caches(self) -> CacheSet:
        return self._caches

    @property
    def metrics(self) -> MetricsCollector:
        return self._metrics

    # ------------------------------------------------------------------ tools

    async def route(self, arguments: t.Mapping[str, t.Any]) -> Result[JSON]:
        return await self._execute(
            ROUTE,
            validate=lambda: RouteInput.model_validate(dict(arguments)),
            call=lambda req: self._engine.route(self._route_request(req)),
            enrich=_enrich_route,
            cache=self._caches.route,
            fingerprint=route_fingerprint,
        )

    async def isochrone(self, arguments: t.Mapping[str, t.Any]) -> Result[JSON]:
        return await self._execute(
            ISOCHRONE,
            validate=lambda: IsochroneInput.model_validate(dict(arguments)),
            call=lambda req: self._engine.isochrone(self._isochrone_request(req)),
            enrich=_enrich_isochrone,
            cache=self._caches.isochrone,
            fingerprint=isochrone_fingerprint,
        )

    # -------------------------------------------------------------- resources

    async def health(self) -> Result[JSON]:
        return await self._execute(
            HEALTH,
            validate=lambda: None,
            call=lambda _: self._engine.health(),
            enrich=lambda _, response: self._enrich_health(response),
            cache=self._caches.health,
            fingerprint=lambda _: HEALTH_FINGERPRINT,
        )

    async def tile(self, z: t.Any, x: t.Any, y: t.Any) -> Result[bytes]:
        return await self._execute(
            TILE,
            validate=lambda: TileCoordinates.model_validate({"z": z, "x": x, "y": y}),
            call=lambda c: self._engine.tile(c.z, c.x, c.y),
            enrich=lambda _, data: data,
        )

    def metrics_report(self) -> JSON:
        """Diagnostics snapshot; reads collector and cache state only."""
        summary = self._metrics.get_summary()
        health = self._metrics.get_health_status()
        summary_dict = summary.to_dict()
        return {
            "timestamp": _now_iso(),
            "request_id": generate_request_id(),
            "system_health": {
                "status": health.status,
                "checks": health.checks,
                "details": health.details,
            },
            "performance_metrics": {
                "requests": {
                    **summary_dict["requests"],
                    "error_rate_percentage": round(summary.error_rate * 100, 2),
                },
                "response_times": summary_dict["performance"],
                "endpoints": summary_dict["endpoints"],
            },
            "cache_metrics": {
                **summary_dict["cache"],
                "hit_rate_percentage": round(summary.cache_hit_rate * 100, 2),
                "individual_caches": {name: cache.stats() for name, cache in self._caches.items()},
            },
            "debugging_info": {
                "recent_errors": [m.to_dict() for m in self._metrics.get_recent_errors(5)],
                "slowest_requests": [m.to_dict() for m in self._metrics.get_slowest_requests(5)],
            },
            "uptime": {
                "since": summary.last_reset,
                "duration_hours": round(self._metrics.uptime_seconds() / 3600, 2),
            },
        }

    def server_info(self) -> JSON:
        return {
            "name": SERVER_NAME,
            "version": self._server_version,
            "supported_tools": SUPPORTED_TOOLS,
            "supported_resources": SUPPORTED_RESOURCES,
        }

    # --------------------------------------------------------------- pipeline

    async def _execute(
        self,
        endpoint: Endpoint,
        *,
        validate: t.Callable[[], P],
        call: t.Callable[[P], t.Awaitable[t.Any]],
        enrich: t.Callable[[P, t.Any], t.Any],
        cache: t.Optional[TTLCache[t.Any]] = None,
        fingerprint: t.Optional[t.Callable[[P], str]] = None,
    ) -> Result[t.Any]:
        request_id = generate_request_id()
        started = time.perf_counter()

        validated = self._capture(validate, request_id)
        if isinstance(validated, Err):
            return self._fail(endpoint, started, request_id, validated)
        params = validated.value

        key: t.Optional[str] = None
        if cache is not None and fingerprint is not None:
            key = fingerprint(params)
            hit = cache.get(key)
            if hit is not None:
                self._metrics.record_cache_hit()
                _logger.debug("Cache hit for %s %s (%s)", endpoint.method, endpoint.path, request_id)
                self._record(endpoint, started, request_id, success=True)
                return Ok(hit, cached=True)
            self._metrics.record_cache_miss()

        try:
            response = await call(params)
        except Exception as exc:  # noqa: BLE001 - every engine failure is classified
            return self._fail(endpoint, started, request_id, Err(classify(exc, request_id)))

        enriched = self._capture(lambda: enrich(params, response), request_id)
        if isinstance(enriched, Err):
            return self._fail(endpoint, started, request_id, enriched)

        if key is not None and cache is not None:
            cache.set(key, enriched.value)
        self._record(endpoint, started, request_id, success=True)
        return Ok(enriched.value)

    @staticmethod
    def _capture(fn: t.Callable[[], P], request_id: str) -> Result[P]:
        try:
            return Ok(fn())
        except Exception as exc:  # noqa: BLE001 - converted into the error taxonomy
            return Err(classify(exc, request_id))

    def _fail(self, endpoint: Endpoint, started: float, request_id: str, failure: Err) -> Err:
        error = failure.error
        _logger.warning(
            "%s %s failed [%s] code=%d: %s",
            endpoint.method,
            endpoint.path,
            request_id,
            int(error.code),
            error.message,
        )
        self._record(endpoint, started, request_id, success=False, error_code=int(error.code))
        return failure

    def _record(
        self,
        endpoint: Endpoint,
        started: float,
        request_id: str,
        *,
        success: bool,
        error_code: t.Optional[int] = None,
    ) -> None:
        self._metrics.record_request(
            RequestMetric(
                endpoint=endpoint.path,
                method=endpoint.method,
                duration=(time.perf_counter() - started) * 1000.0,
                success=success,
                request_id=request_id,
                error_code=error_code,
            )
        )

    # ------------------------------------------------------- request shaping

    @staticmethod
    def _route_request(request: RouteInput) -> JSON:
        _logger.info(
            "Calculating route from [%s, %s] to [%s, %s] using %s",
            request.origin.lat,
            request.origin.lon,
            request.destination.lat,
            request.destination.lon,
            request.mode,
        )
        payload: JSON = {
            "locations": [
                {**_location(request.origin), "type": "break"},
                {**_location(request.destination), "type": "break"},
            ],
            "costing": request.mode,
            "directions_options": {"units": request.units, "narrative": True},
        }
        if request.alternatives:
            payload["alternates"] = request.alternatives
        return payload

    @staticmethod
    def _isochrone_request(request: IsochroneInput) -> JSON:
        _logger.info(
            "Generating %s-minute isochrone from [%s, %s] using %s",
            request.minutes,
            request.origin.lat,
            request.origin.lon,
            request.mode,
        )
        payload: JSON = {
            "locations": [_location(request.origin)],
            "costing": request.mode,
            "contours": [{"time": request.minutes, "color": ISOCHRONE_COLOR}],
            "polygons": True,
        }
        if request.denoise is not None:
            payload["denoise"] = request.denoise
        if request.generalize is not None:
            payload["generalize"] = request.generalize
        return payload

    def _enrich_health(self, response: JSON) -> JSON:
        modified = response.get("tileset_last_modified")
        return {
            "status": "healthy",
            "timestamp": _now_iso(),
            "engine": {
                "version": response.get("version"),
                "tileset_last_modified": (
                    datetime.fromtimestamp(modified, tz=timezone.utc).isoformat()
                    if isinstance(modified, (int, float))
                    else None
                ),
                "available_actions": response.get("available_actions", []),
                "capabilities": {
                    "has_transit_tiles": response.get("has_transit_tiles"),
                    "has_admins": response.get("has_admins"),
                    "has_timezones": response.get("has_timezones"),
                    "has_live_traffic": response.get("has_live_traffic"),
                },
            },
            "server": self.server_info(),
        }


# ------------------------------------------------------------ enrichment


def _trip_line(trip: t.Any) -> t.List[t.List[float]]:
    legs = trip.get("legs") if isinstance(trip, dict) else None
    if not legs or not all(isinstance(leg, dict) and leg.get("shape") for leg in legs):
        raise RemoteEngineInvalidResponseError(
            "Routing engine returned no route - check coordinates are within map data coverage"
        )
    line: t.List[t.List[float]] = []
    for leg in legs:
        try:
            points = decode(leg["shape"])
        except PolylineDecodeError as exc:
            raise RemoteEngineInvalidResponseError(
                "Routing engine returned an undecodable route shape", details={"reason": str(exc)}
            ) from exc
        for lat, lon in points:
            point = [lon, lat]  # GeoJSON order
            if not line or line[-1] != point:
                line.append(point)
    return line


def _trip_properties(trip: JSON) -> JSON:
    summary = trip.get("summary")
    if summary is None:
        summary = {}
    elif not isinstance(summary, dict):
        raise RemoteEngineInvalidResponseError(
            "Routing engine returned a malformed route summary", details={"summary": repr(summary)}
        )
    seconds = summary.get("time")
    return {
        "distance": summary.get("length"),
        "duration_seconds": seconds,
        "duration_minutes": round(seconds / 60) if isinstance(seconds, (int, float)) else None,
        "bbox": [
            summary.get("min_lon"),
            summary.get("min_lat"),
            summary.get("max_lon"),
            summary.get("max_lat"),
        ],
    }


def _line_feature(coordinates: t.List[t.List[float]], properties: JSON) -> JSON:
    return {
        "type": "Feature",
        "geometry": {"type": "LineString", "coordinates": coordinates},
        "properties": properties,
    }


def _enrich_route(request: RouteInput, response: JSON) -> JSON:
    trip = response.get("trip")
    features = [
        _line_feature(
            _trip_line(trip),
            {**_trip_properties(trip), "units": request.units, "mode": request.mode},
        )
    ]
    for alternate in response.get("alternates") or []:
        alt_trip = alternate.get("trip") if isinstance(alternate, dict) else None
        try:
            coordinates = _trip_line(alt_trip)
            properties = _trip_properties(alt_trip)
        except RemoteEngineInvalidResponseError:
            _logger.debug("Skipping unusable alternate route")
            continue
        features.append(
            _line_feature(
                coordinates,
                {**properties, "units": request.units, "mode": request.mode, "alternative": True},
            )
        )
    return {"type": "FeatureCollection", "features": features}


def _enrich_isochrone(request: IsochroneInput, response: JSON) -> JSON:
    features = response.get("features")
    if not isinstance(features, list):
        raise RemoteEngineInvalidResponseError("Routing engine returned an isochrone without features")
    return {
        "type": "FeatureCollection",
        "features": features,
        "metadata": {
            "origin": {"lat": request.origin.lat, "lon": request.origin.lon},
            "minutes": request.minutes,
            "mode": request.mode,
            "contour_count": len(features),
        },
    }
