"""Command-line entrypoints for the place resolver and polyline codec."""
from __future__ import annotations

import argparse
import asyncio
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Sequence

import orjson
from dotenv import load_dotenv
from pydantic import TypeAdapter

from placecore.fetch.fetcher import FetchError, fetch_page
from placecore.fetch.session import PageSession
from placecore.geocode.resolver import PlaceResolver, resolve_many
from placecore.models import Coordinate, FetchFailure, ResolveResult
from placecore.observability.log import configure_logging
from placecore.observability.metrics import MetricsRegistry, record_duration
from placecore.polyline.decoder import decode
from placecore.polyline.encoder import encode
from placecore.polyline.routes import parse_routes_response, route_details
from placecore.polyline.simplify import simplify
from placecore.settings import Settings, load_settings, settings_path

LOGGING_CONFIG = Path("config/logging.yaml")

_RESULTS = TypeAdapter(List[ResolveResult])


def _emit(payload: object) -> None:
    print(orjson.dumps(payload, option=orjson.OPT_INDENT_2).decode())


def _point_rows(points: Sequence[Coordinate]) -> List[List[float]]:
    return [[point.latitude, point.longitude] for point in points]


def load_points(path: Path) -> List[Coordinate]:
    """Read ``[[lat, lng], ...]`` or ``[{"latitude": .., "longitude": ..}, ...]``."""
    data = orjson.loads(path.read_bytes())
    points: List[Coordinate] = []
    for item in data:
        if isinstance(item, dict):
            points.append(Coordinate(float(item["latitude"]), float(item["longitude"])))
        else:
            lat, lng = item
            points.append(Coordinate(float(lat), float(lng)))
    return points


def build_arg_parser() -> argparse.ArgumentParser:
    """Create the CLI argument parser."""
    parser = argparse.ArgumentParser(prog="placecore", description="Place resolver and route geometry tools")
    sub = parser.add_subparsers(dest="command", required=True)

    resolve = sub.add_parser("resolve", help="Resolve place names to coordinates")
    resolve.add_argument("places", nargs="+", help="Free-text place names")
    resolve.add_argument("--timeout", type=float, help="Connect and read timeout in seconds")
    resolve.add_argument("--concurrency", type=int, help="Maximum concurrent lookups")
    resolve.add_argument("--metrics-out", type=Path, help="Write counters to this JSON file")

    extract = sub.add_parser("extract", help="Run coordinate extraction on a saved HTML page")
    extract.add_argument("html", type=Path)
    extract.add_argument("--place", help="Place name used as the label fallback")

    dec = sub.add_parser("decode", help="Decode an encoded polyline")
    dec.add_argument("encoded")
    dec.add_argument("--precision", type=int)
    dec.add_argument("--simplify", action="store_true", help="Apply Douglas-Peucker after decoding")
    dec.add_argument("--tolerance", type=float)

    enc = sub.add_parser("encode", help="Encode a JSON list of points")
    enc.add_argument("points", type=Path)
    enc.add_argument("--precision", type=int)

    simp = sub.add_parser("simplify", help="Simplify a JSON list of points")
    simp.add_argument("points", type=Path)
    simp.add_argument("--tolerance", type=float)

    routes = sub.add_parser("route-details", help="Summarise routes from a routing API response")
    routes.add_argument("response", type=Path)
    routes.add_argument("--precision", type=int)
    routes.add_argument("--tolerance", type=float)

    return parser


def run_resolve(args: argparse.Namespace, settings: Settings) -> List[ResolveResult]:
    """Resolve every requested place and print the results."""
    resolver_settings = settings.resolver
    if args.timeout is not None:
        resolver_settings = resolver_settings.model_copy(
            update={"connect_timeout": args.timeout, "read_timeout": args.timeout}
        )
    metrics = MetricsRegistry()
    resolver = PlaceResolver(resolver_settings, metrics=metrics)
    with record_duration(metrics, "run_duration_ms"):
        results = asyncio.run(resolve_many(resolver, args.places, concurrency=args.concurrency))
    _emit(_RESULTS.dump_python(results, mode="json"))
    if args.metrics_out is not None:
        run_id = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S")
        metrics.export(path=args.metrics_out, run_id=run_id)
    return results


def run_extract(args: argparse.Namespace, settings: Settings) -> ResolveResult:
    place = args.place or args.html.stem
    url = args.html.resolve().as_uri()
    try:
        snapshot = fetch_page(PageSession(None), url)
    except FetchError as exc:
        result: ResolveResult = FetchFailure(place=place, detail=str(exc))
    else:
        result = PlaceResolver(settings.resolver).resolve_html(place, snapshot.html)
    _emit(result.model_dump(mode="json"))
    return result


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for the CLI."""
    load_dotenv()
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    settings = load_settings(settings_path())
    configure_logging(LOGGING_CONFIG)
    codec = settings.codec

    if args.command == "resolve":
        results = run_resolve(args, settings)
        if not all(result.ok for result in results):
            raise SystemExit(1)
        return

    if args.command == "extract":
        if not run_extract(args, settings).ok:
            raise SystemExit(1)
        return

    if args.command == "decode":
        points = decode(args.encoded, args.precision if args.precision is not None else codec.precision)
        if args.simplify:
            points = simplify(points, args.tolerance if args.tolerance is not None else codec.tolerance)
        _emit(_point_rows(points))
        return

    if args.command == "encode":
        points = load_points(args.points)
        print(encode(points, args.precision if args.precision is not None else codec.precision))
        return

    if args.command == "simplify":
        points = load_points(args.points)
        _emit(_point_rows(simplify(points, args.tolerance if args.tolerance is not None else codec.tolerance)))
        return

    if args.command == "route-details":
        response = parse_routes_response(args.response.read_bytes())
        if response.error is not None:
            _emit({"error": response.error.model_dump(mode="json"), "routes": []})
            raise SystemExit(1)
        details = [
            route_details(
                route,
                precision=args.precision if args.precision is not None else codec.precision,
                tolerance=args.tolerance if args.tolerance is not None else codec.tolerance,
            )
            for route in response.routes
        ]
        _emit({"routes": [
            {**detail.model_dump(mode="json"), "duration_seconds": detail.duration_seconds}
            for detail in details
        ]})


if __name__ == "__main__":
    main()
