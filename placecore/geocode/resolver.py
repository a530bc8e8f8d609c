"""Resolve free-text place names to coordinates by scraping the place page."""
from __future__ import annotations

import asyncio
import contextlib
from typing import Iterable, Iterator, List, Optional
from urllib.parse import quote_plus

import httpx
import structlog

from placecore.fetch.fetcher import FetchError, fetch_page
from placecore.fetch.session import PageSession, create_page_session
from placecore.models import FetchFailure, NotFound, ResolvedLocation, ResolveResult
from placecore.observability.metrics import MetricsRegistry
from placecore.observability.tracing import bound_context
from placecore.parse.coordinates import run_cascade, validate_candidate
from placecore.parse.label import extract_label
from placecore.settings import ResolverSettings

LOGGER = structlog.get_logger(__name__)


def build_place_url(base_url: str, place: str) -> str:
    return f"{base_url}{quote_plus(place)}"


class PlaceResolver:
    """Maps a place name to a best-guess coordinate.

    Every call performs exactly one GET and never raises: failures come back
    as `FetchFailure` or `NotFound`. Instances hold no per-call state, so one
    resolver can serve concurrent callers.
    """

    def __init__(
        self,
        settings: Optional[ResolverSettings] = None,
        *,
        session: Optional[PageSession] = None,
        transport: Optional[httpx.BaseTransport] = None,
        metrics: Optional[MetricsRegistry] = None,
    ) -> None:
        self.settings = settings or ResolverSettings()
        self._session = session
        self._transport = transport
        self._metrics = metrics

    def _incr(self, name: str) -> None:
        if self._metrics is not None:
            self._metrics.incr(name)

    @contextlib.contextmanager
    def _open_session(self) -> Iterator[PageSession]:
        if self._session is not None:
            yield self._session
            return
        with create_page_session(self.settings, transport=self._transport) as session:
            yield session

    def resolve(self, place: str) -> ResolveResult:
        """Fetch the place page and run the extraction cascade over it."""
        self._incr("resolutions")
        if not place or not place.strip():
            self._incr("not_found")
            return NotFound(place=place or "", reason="blank place name")

        url = build_place_url(self.settings.base_url, place)
        with bound_context(place=place):
            try:
                with self._open_session() as session:
                    snapshot = fetch_page(session, url, metrics=self._metrics)
            except FetchError as exc:
                LOGGER.warning("place_fetch_failed", url=url, reason=exc.reason)
                self._incr("fetch_errors")
                return FetchFailure(place=place, detail=str(exc))
            LOGGER.debug("place_page_loaded", url=url, chars=snapshot.size)
            return self.resolve_html(place, snapshot.html)

    def resolve_html(self, place: str, html: str) -> ResolveResult:
        """Run the cascade and label extraction over an already fetched page."""
        candidate = run_cascade(html)
        if candidate is None:
            LOGGER.info("no_coordinates", place=place)
            self._incr("not_found")
            return NotFound(place=place, reason="no coordinates found")

        coordinate = validate_candidate(candidate)
        if coordinate is None:
            self._incr("not_found")
            return NotFound(
                place=place,
                reason=f"invalid coordinates from {candidate.stage}: {candidate.raw_lat},{candidate.raw_lng}",
            )

        address = postal_code = None
        try:
            label = extract_label(html, fallback=place)
            address, postal_code = label.address or None, label.postal_code
        except Exception:  # pragma: no cover - label is informational only
            LOGGER.warning("label_extraction_failed", place=place, exc_info=True)

        self._incr("resolved")
        self._incr(f"stage_{candidate.stage}")
        LOGGER.info(
            "place_resolved",
            place=place,
            stage=candidate.stage,
            latitude=coordinate.latitude,
            longitude=coordinate.longitude,
            address=address,
        )
        return ResolvedLocation(
            place=place,
            coordinate=coordinate,
            address=address,
            postal_code=postal_code,
            stage=candidate.stage,
        )


async def resolve_many(
    resolver: PlaceResolver,
    places: Iterable[str],
    *,
    concurrency: Optional[int] = None,
) -> List[ResolveResult]:
    """Resolve independent place names concurrently, preserving input order."""
    limit = asyncio.Semaphore(concurrency or resolver.settings.max_concurrency)

    async def _one(place: str) -> ResolveResult:
        async with limit:
            return await asyncio.to_thread(resolver.resolve, place)

    return list(await asyncio.gather(*(_one(place) for place in places)))


def resolve(place: str, settings: Optional[ResolverSettings] = None) -> ResolveResult:
    """Resolve a single place with a throwaway resolver."""
    return PlaceResolver(settings).resolve(place)
