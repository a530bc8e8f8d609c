"""Value types shared by the resolver and the polyline codec."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated, Literal, Optional, Tuple, Union

from pydantic import BaseModel, Field

LATITUDE_RANGE = (-90.0, 90.0)
LONGITUDE_RANGE = (-180.0, 180.0)


def is_valid_pair(latitude: float, longitude: float) -> bool:
    """Return whether the pair lies inside the inclusive lat/lng bounds."""
    return (
        LATITUDE_RANGE[0] <= latitude <= LATITUDE_RANGE[1]
        and LONGITUDE_RANGE[0] <= longitude <= LONGITUDE_RANGE[1]
    )


@dataclass(frozen=True, slots=True)
class Coordinate:
    """Represents a latitude/longitude pair in degrees."""

    latitude: float
    longitude: float

    @property
    def is_valid(self) -> bool:
        return is_valid_pair(self.latitude, self.longitude)

    def as_tuple(self) -> Tuple[float, float]:
        return (self.latitude, self.longitude)


class ResolvedLocation(BaseModel):
    """Successful resolution of a place name."""

    status: Literal["resolved"] = "resolved"
    place: str
    coordinate: Coordinate
    address: Optional[str] = None
    postal_code: Optional[str] = None
    stage: str = Field(..., description="Name of the extractor that produced the pair")

    @property
    def ok(self) -> bool:
        return True


class NotFound(BaseModel):
    """The page was fetched but yielded no valid coordinates."""

    status: Literal["not_found"] = "not_found"
    place: str
    reason: str

    @property
    def ok(self) -> bool:
        return False


class FetchFailure(BaseModel):
    """The page for a place could not be retrieved."""

    status: Literal["fetch_error"] = "fetch_error"
    place: str
    detail: str

    @property
    def ok(self) -> bool:
        return False


ResolveResult = Annotated[
    Union[ResolvedLocation, NotFound, FetchFailure],
    Field(discriminator="status"),
]
