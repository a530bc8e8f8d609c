from pathlib import Path

import pytest
from pydantic import ValidationError

from placecore.settings import SETTINGS_ENV_VAR, Settings, load_settings, settings_path


def test_missing_file_uses_defaults(tmp_path):
    settings = load_settings(tmp_path / "nope.toml")
    assert settings.resolver.connect_timeout == 10.0
    assert settings.resolver.read_timeout == 10.0
    assert settings.resolver.accept_language == "en-US,en;q=0.9"
    assert settings.codec.precision == 5
    assert settings.codec.tolerance == 0.0001


def test_partial_file_overrides(tmp_path):
    path = tmp_path / "settings.toml"
    path.write_text('[resolver]\nread_timeout = 3.5\n\n[other]\nignored = true\n', encoding="utf-8")
    settings = load_settings(path)
    assert settings.resolver.read_timeout == 3.5
    assert settings.resolver.connect_timeout == 10.0
    assert settings.codec.precision == 5


def test_repository_settings_file_loads():
    settings = load_settings(Path(__file__).parent.parent / "config" / "settings.toml")
    assert settings.resolver.base_url.startswith("https://")
    assert settings.resolver.headers()["User-Agent"].startswith("Mozilla/5.0")


def test_invalid_values_rejected():
    with pytest.raises(ValidationError):
        Settings.from_mapping({"resolver": {"connect_timeout": 0}})


def test_settings_path_env_override(monkeypatch, tmp_path):
    monkeypatch.setenv(SETTINGS_ENV_VAR, str(tmp_path / "custom.toml"))
    assert settings_path() == tmp_path / "custom.toml"
    monkeypatch.delenv(SETTINGS_ENV_VAR)
    assert settings_path() == Path("config/settings.toml")
