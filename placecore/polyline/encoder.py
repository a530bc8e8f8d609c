"""Encoder for Google's polyline format, the inverse of `decoder.decode`."""
from __future__ import annotations

from typing import Iterable, List

from placecore.models import Coordinate
from placecore.polyline.decoder import DEFAULT_PRECISION


def _encode_value(value: int, out: List[str]) -> None:
    value = ~(value << 1) if value < 0 else value << 1
    while value >= 0x20:
        out.append(chr((0x20 | (value & 0x1F)) + 63))
        value >>= 5
    out.append(chr(value + 63))


def encode(points: Iterable[Coordinate], precision: int = DEFAULT_PRECISION) -> str:
    factor = 10 ** precision
    out: List[str] = []
    prev_lat = 0
    prev_lng = 0
    for point in points:
        lat = round(point.latitude * factor)
        lng = round(point.longitude * factor)
        _encode_value(lat - prev_lat, out)
        _encode_value(lng - prev_lng, out)
        prev_lat, prev_lng = lat, lng
    return "".join(out)
