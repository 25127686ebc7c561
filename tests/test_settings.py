from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from civicreport.config.settings import get_settings
from civicreport.core.storage import FileKeyValueStore, build_blob_store
from civicreport.services.formatting import format_date, relative_time


@pytest.fixture
def fresh_settings():
    # get_settings() is lru_cached; clear around each test so env overrides apply.
    get_settings.cache_clear()
    yield get_settings
    get_settings.cache_clear()


def test_packaged_defaults_load(fresh_settings):
    settings = fresh_settings()

    assert settings.app.name == "CivicReport"
    assert settings.nearby.focus_delta == 0.01
    assert settings.nearby.default_reference.latitude == 37.78825
    assert settings.geocoding.enabled is False


def test_env_overrides_storage_dir_and_log_level(monkeypatch, tmp_path, fresh_settings):
    monkeypatch.setenv("CIVICREPORT_STORAGE_DIR", str(tmp_path / "store"))
    monkeypatch.setenv("CIVICREPORT_LOG_LEVEL", "DEBUG")
    monkeypatch.setenv("CIVICREPORT_GEOCODING_ENABLED", "yes")

    settings = fresh_settings()

    assert settings.storage.dir == str(tmp_path / "store")
    assert settings.app.log_level == "DEBUG"
    assert settings.geocoding.enabled is True

    blobs = build_blob_store(settings)
    blobs.write("reports", [])
    assert (tmp_path / "store" / "reports.json").read_text(encoding="utf-8") == "[]"


def test_external_config_file_replaces_defaults(monkeypatch, tmp_path, fresh_settings):
    path = tmp_path / "config.yaml"
    path.write_text("storage:\n  write_retries: 5\n", encoding="utf-8")
    monkeypatch.setenv("CIVICREPORT_CONFIG_PATH", str(path))

    settings = fresh_settings()

    assert settings.storage.write_retries == 5
    assert settings.app.name == "CivicReport"


def test_file_store_rejects_path_like_keys(tmp_path):
    with pytest.raises(ValueError):
        FileKeyValueStore(tmp_path).get_item("../etc/passwd")


def test_date_helpers():
    dt = datetime(2026, 1, 5, 10, 0, tzinfo=timezone.utc)
    assert format_date(dt) == "January 5, 2026"
    assert relative_time(dt, now=dt + timedelta(hours=2, minutes=5)) == "2 hours ago"
    assert relative_time(dt, now=dt + timedelta(minutes=1)) == "1 minute ago"
    assert relative_time(dt, now=dt) == "just now"
