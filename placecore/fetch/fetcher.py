"""Single-shot page fetching without retries."""
from __future__ import annotations

import time
from typing import Dict, Optional

import httpx
import structlog

from placecore.fetch.session import PageSession
from placecore.fetch.snapshot import Snapshot
from placecore.observability.metrics import MetricsRegistry
from placecore.observability.tracing import log_fetch_result, span

LOGGER = structlog.get_logger(__name__)


class FetchError(Exception):
    """Raised when a page cannot be retrieved or decoded."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"{reason} ({url})")
        self.url = url
        self.reason = reason


def fetch_page(
    session: PageSession,
    url: str,
    *,
    headers: Optional[Dict[str, str]] = None,
    metrics: Optional[MetricsRegistry] = None,
) -> Snapshot:
    """Perform exactly one GET and return the fully buffered page.

    Transport failures, timeouts, invalid URLs and non-2xx statuses are all
    raised as `FetchError`.
    """
    try:
        with span(name="fetch", url=url):
            start = time.perf_counter()
            response = session.fetch(url, headers=headers)
            elapsed_ms = int((time.perf_counter() - start) * 1000)
        log_fetch_result(
            url=url,
            status=response.status_code,
            bytes_read=len(response.content or b""),
            elapsed_ms=elapsed_ms,
        )
        if metrics is not None:
            metrics.incr("pages_fetched")
            metrics.incr(f"http_{response.status_code // 100}xx")
        response.raise_for_status()
        html = response.text
    except httpx.HTTPStatusError as exc:
        raise FetchError(url, f"HTTP {exc.response.status_code}") from exc
    except httpx.TimeoutException as exc:
        raise FetchError(url, f"timeout: {exc}") from exc
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        raise FetchError(url, f"{type(exc).__name__}: {exc}") from exc
    except (OSError, UnicodeError) as exc:
        raise FetchError(url, f"{type(exc).__name__}: {exc}") from exc

    return Snapshot(
        url=url,
        html=html,
        status_code=response.status_code,
        headers=dict(response.headers),
    )
