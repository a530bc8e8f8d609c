"""Coordinate extractors for place pages.

Place pages are not a documented format. Each extractor below looks for one
known way the page carries a position and returns the raw ``(lat, lng)``
strings, or ``None``. `run_cascade` tries them in order and stops at the first
hit. Only `decimal_pair` and `viewport` check ranges themselves; a hit from
any other extractor ends the cascade even when the final check later rejects
it.
"""
from __future__ import annotations

import re
from typing import Callable, List, NamedTuple, Optional, Tuple

import structlog

from placecore.models import Coordinate, is_valid_pair

LOGGER = structlog.get_logger(__name__)

RawPair = Tuple[str, str]
Extractor = Callable[[str], Optional[RawPair]]

_EMBEDDED_JSON_RE = re.compile(r"\[null,null,\[(-?\d+\.\d+),(-?\d+\.\d+)\]\]", re.ASCII)
_DECIMAL_PAIR_RE = re.compile(r"(?<!\d)(-?\d{1,2}\.\d{3,15}),(-?\d{1,3}\.\d{3,15})(?!\d)", re.ASCII)
_VIEWPORT_RE = re.compile(r"viewport([^}]*)", re.ASCII)
_DECIMAL_RE = re.compile(r"-?\d+\.\d+", re.ASCII)
_AT_MARKER_RE = re.compile(r"@(-?\d+\.\d+),(-?\d+\.\d+)", re.ASCII)
_STATIC_MAP_RE = re.compile(r"staticmap\?[^\"]*center=(-?\d+\.?\d*)[%,](-?\d+\.?\d*)", re.ASCII)


class Candidate(NamedTuple):
    stage: str
    raw_lat: str
    raw_lng: str


def _parse_float(raw: str) -> Optional[float]:
    try:
        return float(raw)
    except ValueError:
        return None


def extract_embedded_json(html: str) -> Optional[RawPair]:
    """``[null,null,[lng,lat]]`` arrays from the page's bootstrap data."""
    match = _EMBEDDED_JSON_RE.search(html)
    if match is None:
        return None
    return match.group(2), match.group(1)


def extract_decimal_pair(html: str) -> Optional[RawPair]:
    """First in-range bare ``lng,lat`` decimal pair in document order."""
    for match in _DECIMAL_PAIR_RE.finditer(html):
        lat = _parse_float(match.group(2))
        lng = _parse_float(match.group(1))
        if lat is not None and lng is not None and is_valid_pair(lat, lng):
            return match.group(2), match.group(1)
    return None


def extract_viewport(html: str) -> Optional[RawPair]:
    """Centre of the first viewport bounding box.

    The box is the first four decimals after a ``viewport`` keyword, all before
    the next closing brace.
    """
    for match in _VIEWPORT_RE.finditer(html):
        numbers = _DECIMAL_RE.findall(match.group(1))
        if len(numbers) >= 4:
            break
    else:
        return None
    values = [float(number) for number in numbers[:4]]
    lat = (values[0] + values[2]) / 2
    lng = (values[1] + values[3]) / 2
    if not is_valid_pair(lat, lng):
        return None
    return repr(lat), repr(lng)


def extract_at_marker(html: str) -> Optional[RawPair]:
    """``@lng,lat`` markers, swapped like the bootstrap arrays."""
    match = _AT_MARKER_RE.search(html)
    if match is None:
        return None
    return match.group(2), match.group(1)


def extract_static_map(html: str) -> Optional[RawPair]:
    """``center=lng,lat`` inside a ``staticmap?`` query string, swapped."""
    match = _STATIC_MAP_RE.search(html)
    if match is None:
        return None
    return match.group(2), match.group(1)


EXTRACTORS: List[Tuple[str, Extractor]] = [
    ("embedded_json", extract_embedded_json),
    ("decimal_pair", extract_decimal_pair),
    ("viewport", extract_viewport),
    ("at_marker", extract_at_marker),
    ("static_map", extract_static_map),
]


def run_cascade(html: str, extractors: Optional[List[Tuple[str, Extractor]]] = None) -> Optional[Candidate]:
    """Return the first extractor hit, or None when every stage misses."""
    for stage, extractor in extractors or EXTRACTORS:
        pair = extractor(html)
        if pair is not None:
            LOGGER.debug("cascade_hit", stage=stage, raw_lat=pair[0], raw_lng=pair[1])
            return Candidate(stage, pair[0], pair[1])
        LOGGER.debug("cascade_miss", stage=stage)
    return None


def validate_candidate(candidate: Candidate) -> Optional[Coordinate]:
    """Parse the raw strings and apply the final range check."""
    lat = _parse_float(candidate.raw_lat)
    lng = _parse_float(candidate.raw_lng)
    if lat is None or lng is None:
        return None
    coordinate = Coordinate(lat, lng)
    if not coordinate.is_valid:
        LOGGER.info("candidate_out_of_range", stage=candidate.stage, latitude=lat, longitude=lng)
        return None
    return coordinate
