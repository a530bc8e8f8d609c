"""Best-effort address label and postal code extraction."""
from __future__ import annotations

import re
from typing import NamedTuple, Optional

from bs4 import BeautifulSoup

_BOILERPLATE = (" - Google Maps", "Google Maps")
_ESCAPES = (("\\u0026", "&"), ("\\u002F", "/"))

POSTAL_CODE_PATTERNS = [
    re.compile(r"\b(\d{6})\b", re.ASCII),
    re.compile(r"\b(\d{5})\b", re.ASCII),
    re.compile(r"\b([A-Z]\d[A-Z] \d[A-Z]\d)\b", re.ASCII),
]


class AddressLabel(NamedTuple):
    address: str
    postal_code: Optional[str]


def _og_title(soup: BeautifulSoup) -> Optional[str]:
    meta = soup.find("meta", attrs={"property": "og:title"})
    if meta is None:
        return None
    content = meta.get("content")
    if isinstance(content, str) and content.strip():
        return content
    return None


def _page_title(soup: BeautifulSoup) -> Optional[str]:
    if soup.title is None or soup.title.string is None:
        return None
    text = str(soup.title.string)
    return text if text.strip() else None


def clean_label(raw: str) -> str:
    """Drop provider boilerplate and unescape JSON-style sequences."""
    cleaned = raw
    for suffix in _BOILERPLATE:
        cleaned = cleaned.replace(suffix, "")
    for escaped, plain in _ESCAPES:
        cleaned = cleaned.replace(escaped, plain)
    return cleaned.strip()


def find_postal_code(label: str) -> Optional[str]:
    """Return the first postal-code-looking token, trying patterns in order."""
    for pattern in POSTAL_CODE_PATTERNS:
        match = pattern.search(label)
        if match is not None:
            return match.group(1)
    return None


def extract_label(html: str, fallback: str) -> AddressLabel:
    """Pick og:title, then <title>, then the fallback, and clean it up."""
    soup = BeautifulSoup(html, "html.parser")
    raw = _og_title(soup) or _page_title(soup) or fallback
    address = clean_label(raw)
    return AddressLabel(address=address, postal_code=find_postal_code(address))
