"""Turn routing API responses into render-ready route details."""
from __future__ import annotations

import re
from typing import List, Optional, Union

import orjson
from pydantic import BaseModel, ConfigDict, Field

from placecore.models import Coordinate
from placecore.polyline.decoder import DEFAULT_PRECISION, decode
from placecore.polyline.simplify import DEFAULT_TOLERANCE, simplify

_DURATION_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)s\s*$")


class GeoJsonLinestring(BaseModel):
    type: str = "LineString"
    coordinates: List[List[float]] = Field(default_factory=list)


class Polyline(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    encoded_polyline: Optional[str] = Field(None, alias="encodedPolyline")
    geo_json_linestring: Optional[GeoJsonLinestring] = Field(None, alias="geoJsonLinestring")


class Route(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    distance_meters: Optional[int] = Field(None, alias="distanceMeters")
    duration: Optional[str] = Field(None, description="Seconds with an 's' suffix, e.g. '600s'")
    polyline: Optional[Polyline] = None


class ErrorResponse(BaseModel):
    code: int
    message: str
    status: Optional[str] = None


class RoutesResponse(BaseModel):
    routes: List[Route] = Field(default_factory=list)
    error: Optional[ErrorResponse] = None


class RouteDetails(BaseModel):
    """A single route ready to draw: distance, duration and simplified path."""

    distance: int
    duration: str
    polyline: List[Coordinate]

    @property
    def duration_seconds(self) -> Optional[float]:
        return duration_seconds(self.duration)


def duration_seconds(value: Optional[str]) -> Optional[float]:
    """Parse durations such as ``"600s"``; None when the format is unknown."""
    if not value:
        return None
    match = _DURATION_RE.match(value)
    if match is None:
        return None
    return float(match.group(1))


def parse_routes_response(raw: Union[bytes, str]) -> RoutesResponse:
    return RoutesResponse.model_validate(orjson.loads(raw))


def route_details(
    route: Route,
    *,
    precision: int = DEFAULT_PRECISION,
    tolerance: float = DEFAULT_TOLERANCE,
) -> RouteDetails:
    """Decode and simplify a route's geometry; absent fields fall back to zero."""
    encoded = route.polyline.encoded_polyline if route.polyline else None
    points = simplify(decode(encoded, precision), tolerance)
    return RouteDetails(
        distance=route.distance_meters or 0,
        duration=route.duration or "0s",
        polyline=points,
    )
