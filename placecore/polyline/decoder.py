"""Decoder for Google's encoded polyline format."""
from __future__ import annotations

from typing import List, Optional, Tuple

import structlog

from placecore.models import Coordinate

LOGGER = structlog.get_logger(__name__)

DEFAULT_PRECISION = 5


class PolylineDecodeError(ValueError):
    """Raised when a varint is truncated or too large to represent."""


def _decode_value(encoded: str, index: int) -> Tuple[int, int]:
    """Read one zig-zag varint starting at `index`; return (value, next_index)."""
    result = 0
    shift = 0
    while True:
        if index >= len(encoded):
            raise PolylineDecodeError(f"unterminated value at offset {index}")
        chunk = ord(encoded[index]) - 63
        index += 1
        result |= (chunk & 0x1F) << shift
        shift += 5
        if not chunk & 0x20:
            break
    if result & 1:
        return ~(result >> 1), index
    return result >> 1, index


def decode_strict(encoded: str, precision: int = DEFAULT_PRECISION) -> List[Coordinate]:
    """Decode `encoded`, raising `PolylineDecodeError` on truncated input.

    A string that ends right after a latitude value is not an error; the
    dangling value is dropped.
    """
    factor = 10 ** precision
    points: List[Coordinate] = []
    index = 0
    lat = 0
    lng = 0
    length = len(encoded)
    while index < length:
        delta, index = _decode_value(encoded, index)
        lat += delta
        if index >= length:
            LOGGER.debug("polyline_trailing_latitude", offset=index)
            break
        delta, index = _decode_value(encoded, index)
        lng += delta
        try:
            points.append(Coordinate(lat / factor, lng / factor))
        except OverflowError as exc:
            raise PolylineDecodeError(f"value too large at offset {index}") from exc
    return points


def decode(encoded: Optional[str], precision: int = DEFAULT_PRECISION) -> List[Coordinate]:
    """Decode a polyline, returning an empty list for blank or corrupt input."""
    if encoded is None or not encoded.strip():
        LOGGER.debug("polyline_blank")
        return []
    try:
        points = decode_strict(encoded, precision)
    except PolylineDecodeError as exc:
        LOGGER.warning("polyline_decode_failed", error=str(exc), length=len(encoded), head=encoded[:100])
        return []
    LOGGER.debug("polyline_decoded", points=len(points), precision=precision)
    return points
