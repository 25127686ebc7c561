# src/civicreport/config/settings.py
"""
Application settings (Pydantic).

Settings are loaded from `src/civicreport/config/defaults.yaml`, then optionally overridden by:
- an external YAML file via `CIVICREPORT_CONFIG_PATH`
- environment variables (e.g., `CIVICREPORT_STORAGE_DIR`, `CIVICREPORT_LOG_LEVEL`)

Design rule:
- Tuning knobs live in YAML, not hard-coded in store or ranking logic.
"""

from __future__ import annotations

import os
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any
from civicreport.core.env import load_dotenv_if_present

import yaml
from pydantic import BaseModel, Field


def _read_package_yaml(filename: str) -> dict[str, Any]:
    """Read a YAML file packaged inside `civicreport.config`."""
    text = resources.files("civicreport.config").joinpath(filename).read_text(encoding="utf-8")
    data = yaml.safe_load(text) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML root object for {filename}; expected a mapping.")
    return data


def _read_yaml_file(path: str | Path) -> dict[str, Any]:
    """Read a YAML file from disk and return its mapping root."""
    data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML root object for {path}; expected a mapping.")
    return data


class AppSettings(BaseModel):
    name: str = "CivicReport"
    timezone: str = "UTC"
    http_timeout_seconds: float = 10
    log_level: str = "INFO"


class StorageSettings(BaseModel):
    dir: str = ".data/civicreport"
    write_retries: int = Field(2, ge=0, le=10)
    retry_delay_seconds: float = Field(0.2, ge=0)


class ReferencePoint(BaseModel):
    latitude: float = Field(37.78825, ge=-90, le=90)
    longitude: float = Field(-122.4324, ge=-180, le=180)


class NearbySettings(BaseModel):
    default_reference: ReferencePoint = Field(default_factory=ReferencePoint)
    focus_delta: float = Field(0.01, gt=0)
    max_distance_km: float | None = Field(default=None, gt=0)


class GeocodingSettings(BaseModel):
    enabled: bool = False
    base_url: str = "https://nominatim.openstreetmap.org"
    user_agent: str = "CivicReport/0.1 (set a contact address in geocoding.user_agent)"


class Settings(BaseModel):
    app: AppSettings = Field(default_factory=AppSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    nearby: NearbySettings = Field(default_factory=NearbySettings)
    geocoding: GeocodingSettings = Field(default_factory=GeocodingSettings)


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Overlay selected environment variables onto raw settings payload.

    Note: We intentionally keep this whitelist small.
    """
    load_dotenv_if_present()
    data = dict(data)
    storage_dir = os.getenv("CIVICREPORT_STORAGE_DIR")
    if storage_dir:
        data.setdefault("storage", {})["dir"] = storage_dir

    log_level = os.getenv("CIVICREPORT_LOG_LEVEL")
    if log_level:
        data.setdefault("app", {})["log_level"] = log_level

    geocoding = os.getenv("CIVICREPORT_GEOCODING_ENABLED")
    if geocoding:
        enabled = geocoding.strip().lower() in {"1", "true", "yes", "y"}
        data.setdefault("geocoding", {})["enabled"] = enabled

    return data


@lru_cache
def get_settings() -> Settings:
    """Load and validate settings (cached)."""
    load_dotenv_if_present()
    config_path = os.getenv("CIVICREPORT_CONFIG_PATH")
    raw = _read_yaml_file(config_path) if config_path else _read_package_yaml("defaults.yaml")
    raw = _apply_env_overrides(raw)
    return Settings.model_validate(raw)


@lru_cache
def get_logging_config() -> dict[str, Any]:
    """Load logging configuration (cached)."""
    return _read_package_yaml("logging.yaml")
