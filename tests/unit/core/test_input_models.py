"""Unit tests for input models and request fingerprints."""

import pydantic
import pytest

from valhalla_mcp.core.fingerprint import HEALTH_FINGERPRINT, isochrone_fingerprint, route_fingerprint
from valhalla_mcp.core.models import IsochroneInput, RouteInput, TileCoordinates


def route(**overrides):
    data = {
        "origin": {"lat": 43.7384, "lon": 7.4246},
        "destination": {"lat": 43.7396, "lon": 7.4263},
    }
    data.update(overrides)
    return RouteInput.model_validate(data)


class TestRouteInput:
    def test_defaults(self):
        request = route()

        assert request.mode == "auto"
        assert request.units == "kilometers"
        assert request.alternatives is None

    @pytest.mark.parametrize(
        "overrides",
        [
            {"origin": {"lat": 91, "lon": 0}},
            {"destination": {"lat": 0, "lon": -181}},
            {"mode": "helicopter"},
            {"alternatives": 6},
            {"units": "furlongs"},
            {"unexpected": True},
        ],
    )
    def test_rejects_invalid(self, overrides):
        with pytest.raises(pydantic.ValidationError):
            route(**overrides)

    def test_rejects_nan(self):
        with pytest.raises(pydantic.ValidationError):
            route(origin={"lat": float("nan"), "lon": 0})

    def test_json_schema_lists_required_fields(self):
        schema = RouteInput.model_json_schema()

        assert set(schema["required"]) == {"origin", "destination"}


class TestIsochroneInput:
    def test_valid(self):
        request = IsochroneInput.model_validate({"origin": {"lat": 1, "lon": 2}, "minutes": 15})

        assert request.minutes == 15
        assert request.mode == "auto"

    @pytest.mark.parametrize("minutes", [0, 121])
    def test_minutes_bounds(self, minutes):
        with pytest.raises(pydantic.ValidationError):
            IsochroneInput.model_validate({"origin": {"lat": 1, "lon": 2}, "minutes": minutes})


class TestTileCoordinates:
    @pytest.mark.parametrize("z,x,y", [(0, 0, 0), (1, 1, 1), (18, 2**18 - 1, 0), ("3", "7", "0")])
    def test_valid(self, z, x, y):
        coords = TileCoordinates.model_validate({"z": z, "x": x, "y": y})

        assert coords.z == int(z)

    @pytest.mark.parametrize(
        "z,x,y",
        [(19, 0, 0), (-1, 0, 0), (2, 4, 0), (2, 0, 4), (0, 1, 0), (3, -1, 0), ("a", 0, 0), (3, 1.5, 0)],
    )
    def test_invalid(self, z, x, y):
        with pytest.raises(pydantic.ValidationError):
            TileCoordinates.model_validate({"z": z, "x": x, "y": y})

    def test_out_of_range_reports_field(self):
        with pytest.raises(pydantic.ValidationError) as exc_info:
            TileCoordinates.model_validate({"z": 2, "x": 0, "y": 4})

        assert exc_info.value.errors()[0]["loc"] == ("y",)


class TestFingerprints:
    def test_identical_requests_share_fingerprint(self):
        assert route_fingerprint(route()) == route_fingerprint(route())

    def test_equivalent_spellings_share_fingerprint(self):
        a = route(origin={"lat": 43.7384, "lon": 7.4246})
        b = route(origin={"lat": 43.73840, "lon": 7.424600})

        assert route_fingerprint(a) == route_fingerprint(b)

    @pytest.mark.parametrize(
        "overrides",
        [
            {"origin": {"lat": 43.7385, "lon": 7.4246}},
            {"destination": {"lat": 43.7396, "lon": 7.4264}},
            {"mode": "bicycle"},
            {"units": "miles"},
            {"alternatives": 2},
        ],
    )
    def test_any_significant_change_alters_fingerprint(self, overrides):
        assert route_fingerprint(route()) != route_fingerprint(route(**overrides))

    def test_swapped_endpoints_differ(self):
        swapped = route(
            origin={"lat": 43.7396, "lon": 7.4263},
            destination={"lat": 43.7384, "lon": 7.4246},
        )

        assert route_fingerprint(route()) != route_fingerprint(swapped)

    def test_isochrone_fingerprint(self):
        base = {"origin": {"lat": 1, "lon": 2}, "minutes": 15}
        fp = isochrone_fingerprint(IsochroneInput.model_validate(base))

        assert fp == isochrone_fingerprint(IsochroneInput.model_validate({**base, "minutes": 15.0}))
        assert fp != isochrone_fingerprint(IsochroneInput.model_validate({**base, "minutes": 20}))
        assert fp != isochrone_fingerprint(IsochroneInput.model_validate({**base, "mode": "pedestrian"}))
        assert fp != isochrone_fingerprint(IsochroneInput.model_validate({**base, "denoise": 0.5}))

    def test_categories_never_collide(self):
        fp = isochrone_fingerprint(IsochroneInput.model_validate({"origin": {"lat": 1, "lon": 2}, "minutes": 15}))

        assert fp.startswith("isochrone|")
        assert route_fingerprint(route()).startswith("route|")
        assert HEALTH_FINGERPRINT.startswith("health|")
