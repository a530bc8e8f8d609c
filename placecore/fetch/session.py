"""Factories for HTTP fetch sessions."""
from __future__ import annotations

import contextlib
from pathlib import Path
from typing import Dict, Iterator, Optional
from urllib.parse import unquote, urlparse

import httpx

from placecore.settings import ResolverSettings


class PageSession:
    """Thin wrapper over an `httpx.Client` that also reads `file://` URLs."""

    def __init__(self, client: Optional[httpx.Client]) -> None:
        self._client = client

    def fetch(self, url: str, *, headers: Optional[Dict[str, str]] = None) -> httpx.Response:
        """Fetch a URL returning an HTTPX response object."""
        parsed = urlparse(url)
        if parsed.scheme == "file":
            location = unquote(parsed.netloc + parsed.path) or parsed.path
            target = Path(location)
            if not target.is_absolute():
                target = Path.cwd() / target
            html = target.read_text(encoding="utf-8")
            return httpx.Response(200, text=html, request=httpx.Request("GET", url))
        if self._client is None:
            raise RuntimeError("No HTTP client available")
        return self._client.get(url, headers=headers)


def build_timeout(settings: ResolverSettings) -> httpx.Timeout:
    return httpx.Timeout(
        settings.read_timeout,
        connect=settings.connect_timeout,
        read=settings.read_timeout,
    )


@contextlib.contextmanager
def create_page_session(
    settings: ResolverSettings,
    *,
    transport: Optional[httpx.BaseTransport] = None,
) -> Iterator[PageSession]:
    """Yield a configured `PageSession` for the duration of the context."""
    with httpx.Client(
        headers=settings.headers(),
        timeout=build_timeout(settings),
        follow_redirects=True,
        transport=transport,
    ) as client:
        yield PageSession(client)
