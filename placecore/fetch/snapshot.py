"""Representation of a fetched page held in memory."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict


@dataclass(slots=True)
class Snapshot:
    """A fetched page body along with response metadata."""

    url: str
    html: str
    status_code: int = 200
    headers: Dict[str, str] = field(default_factory=dict)
    fetched_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def size(self) -> int:
        return len(self.html)
