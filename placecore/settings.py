"""Runtime configuration loaded from TOML."""
from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Dict, Mapping

from pydantic import BaseModel, Field

DEFAULT_SETTINGS_PATH = Path("config/settings.toml")
SETTINGS_ENV_VAR = "PLACECORE_SETTINGS"

DESKTOP_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)


class ResolverSettings(BaseModel):
    """Knobs for the place page fetch."""

    base_url: str = "https://www.google.com/maps/place/"
    user_agent: str = DESKTOP_USER_AGENT
    accept_language: str = "en-US,en;q=0.9"
    connect_timeout: float = Field(10.0, gt=0)
    read_timeout: float = Field(10.0, gt=0)
    max_concurrency: int = Field(4, gt=0)

    def headers(self) -> Dict[str, str]:
        return {"User-Agent": self.user_agent, "Accept-Language": self.accept_language}


class CodecSettings(BaseModel):
    """Defaults for polyline decoding and simplification."""

    precision: int = Field(5, ge=0, le=10)
    tolerance: float = Field(0.0001, ge=0)


class Settings(BaseModel):
    resolver: ResolverSettings = Field(default_factory=ResolverSettings)
    codec: CodecSettings = Field(default_factory=CodecSettings)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Settings":
        return cls.model_validate({key: data[key] for key in ("resolver", "codec") if key in data})


def settings_path() -> Path:
    """Return the settings path, honouring the environment override."""
    return Path(os.environ.get(SETTINGS_ENV_VAR, str(DEFAULT_SETTINGS_PATH)))


def load_settings(path: Path) -> Settings:
    """Read the TOML configuration file, falling back to defaults when absent."""
    if not path.exists():
        return Settings()
    with path.open("rb") as handle:
        return Settings.from_mapping(tomllib.load(handle))
