"""Tracing helpers for fetch and resolve stages."""
from __future__ import annotations

import contextlib
import time
from typing import Iterator, Optional

import structlog
from structlog.contextvars import bound_contextvars


def _logger():
    return structlog.get_logger("placecore.trace")


@contextlib.contextmanager
def bound_context(**fields: str) -> Iterator[None]:
    """Bind fields for the block only; keys bound by the caller survive."""
    with bound_contextvars(**fields):
        _logger().debug("trace_context", **fields)
        yield


@contextlib.contextmanager
def span(*, name: str, url: Optional[str] = None) -> Iterator[None]:
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed_ms = int((time.perf_counter() - start) * 1000)
        _logger().info("trace_span", span=name, url=url, elapsed_ms=elapsed_ms)


def log_fetch_result(*, url: str, status: int, bytes_read: int, elapsed_ms: int) -> None:
    _logger().info(
        "fetch_result",
        url=url,
        status=status,
        bytes=bytes_read,
        elapsed_ms=elapsed_ms,
    )
