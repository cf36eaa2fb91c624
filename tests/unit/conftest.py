"""Shared fixtures and mocks for unit tests."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from valhalla_mcp.cache.ttl_cache import CacheSet
from valhalla_mcp.codec.polyline import encode
from valhalla_mcp.core.orchestrator import RequestOrchestrator
from valhalla_mcp.monitoring.metrics import MetricsCollector

ROUTE_POINTS = [(38.5, -120.2), (40.7, -120.95), (43.252, -126.453)]


@pytest.fixture
def route_response():
    """A minimal Valhalla /route payload with one leg."""
    summary = {
        "time": 600.0,
        "length": 12.5,
        "min_lat": 38.5,
        "min_lon": -126.453,
        "max_lat": 43.252,
        "max_lon": -120.2,
    }
    shape = encode(ROUTE_POINTS)
    return {
        "trip": {
            "legs": [{"shape": shape, "summary": summary}],
            "summary": summary,
            "status": 0,
            "status_message": "Found route between points",
            "units": "kilometers",
        }
    }


@pytest.fixture
def isochrone_response():
    return {
        "type": "FeatureCollection",
        "features": [
            {
                "type": "Feature",
                "properties": {"contour": 15, "color": "#ff0000"},
                "geometry": {
                    "type": "Polygon",
                    "coordinates": [[[7.42, 43.73], [7.43, 43.73], [7.43, 43.74], [7.42, 43.73]]],
                },
            }
        ],
    }


@pytest.fixture
def health_response():
    return {
        "version": "3.4.0",
        "tileset_last_modified": 1700000000,
        "available_actions": ["route", "isochrone", "status", "tile"],
        "has_transit_tiles": False,
        "has_admins": True,
        "has_timezones": True,
        "has_live_traffic": False,
    }


@pytest.fixture
def mock_engine(route_response, isochrone_response, health_response):
    """Mock routing engine."""
    engine = AsyncMock()
    engine.route = AsyncMock(return_value=route_response)
    engine.isochrone = AsyncMock(return_value=isochrone_response)
    engine.health = AsyncMock(return_value=health_response)
    engine.tile = AsyncMock(return_value=b"\x1a\x02pbf")
    engine.aclose = AsyncMock(return_value=None)
    return engine


@pytest.fixture
def metrics():
    return MetricsCollector()


@pytest.fixture
def caches():
    return CacheSet.create()


@pytest.fixture
def orchestrator(mock_engine, caches, metrics):
    return RequestOrchestrator(mock_engine, caches, metrics)


@pytest.fixture
def route_args():
    return {
        "origin": {"lat": 43.7384, "lon": 7.4246},
        "destination": {"lat": 43.7396, "lon": 7.4263},
        "mode": "auto",
    }
