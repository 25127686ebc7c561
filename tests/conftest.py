from datetime import datetime, timezone
from itertools import count

import pytest

from civicreport.core.storage import JsonBlobStore, MemoryKeyValueStore
from civicreport.domain.models import Location, ReportDraft
from civicreport.store.profile import ProfileStore
from civicreport.store.reports import ReportStore


class FlakyKeyValueStore(MemoryKeyValueStore):
    """Memory store whose writes raise OSError for the next `failures` calls."""

    def __init__(self, failures: int = 0):
        super().__init__()
        self.failures = failures
        self.write_attempts = 0

    def set_item(self, key: str, value: str) -> None:
        self.write_attempts += 1
        if self.failures > 0:
            self.failures -= 1
            raise OSError("disk full")
        super().set_item(key, value)


def fixed_clock():
    return datetime(2026, 1, 5, 10, 0, tzinfo=timezone.utc)


def sequential_ids():
    n = count(1)
    return lambda: f"r{next(n)}"


def make_draft(title="Overflowing bin", category="Waste Management", **kwargs):
    kwargs.setdefault("location", Location(latitude=37.78825, longitude=-122.4324, address="Market St"))
    return ReportDraft(title=title, category=category, **kwargs)


@pytest.fixture
def kv():
    return MemoryKeyValueStore()


@pytest.fixture
def blobs(kv):
    return JsonBlobStore(kv)


@pytest.fixture
def store(blobs):
    s = ReportStore(blobs, clock=fixed_clock, id_factory=sequential_ids())
    s.initialize()
    return s


@pytest.fixture
def profile_store(blobs):
    p = ProfileStore(blobs)
    p.initialize()
    return p
