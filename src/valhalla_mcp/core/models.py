from __future__ import annotations

import typing as t

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

Costing = t.Literal["auto", "bicycle", "pedestrian", "taxi", "bus"]
Units = t.Literal["kilometers", "miles"]

MAX_TILE_ZOOM = 18


class _Input(BaseModel):
    model_config = ConfigDict(extra="forbid", allow_inf_nan=False)


class Coordinate(_Input):
    lat: float = Field(ge=-90, le=90, description="Latitude in decimal degrees (WGS84)")
    lon: float = Field(ge=-180, le=180, description="Longitude in decimal degrees (WGS84)")


class RouteInput(_Input):
    """Input schema for the route tool."""

    origin: Coordinate = Field(description="Start point")
    destination: Coordinate = Field(description="End point")
    mode: Costing = Field(default="auto", description="Travel mode (costing model)")
    alternatives: t.Optional[int] = Field(default=None, ge=0, le=5, description="Number of alternative routes")
    units: Units = Field(default="kilometers", description="Distance units")


class IsochroneInput(_Input):
    """Input schema for the isochrone tool."""

    origin: Coordinate = Field(description="Center point")
    minutes: float = Field(ge=1, le=120, description="Travel time budget in minutes")
    mode: Costing = Field(default="auto", description="Travel mode (costing model)")
    denoise: t.Optional[float] = Field(default=None, ge=0, le=1, description="Polygon denoise factor")
    generalize: t.Optional[float] = Field(
        default=None, ge=0, le=1000, description="Polygon generalization tolerance in meters"
    )


class TileCoordinates(_Input):
    z: int = Field(ge=0, le=MAX_TILE_ZOOM)
    x: int = Field(ge=0)
    y: int = Field(ge=0)

    @field_validator("x", "y")
    @classmethod
    def _within_zoom(cls, value: int, info: ValidationInfo) -> int:
        zoom = info.data.get("z")
        if zoom is not None and value > 2**zoom - 1:
            raise ValueError(f"Tile coordinate out of range for zoom level {zoom}")
        return value
