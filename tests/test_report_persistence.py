import json
from concurrent.futures import ThreadPoolExecutor

import pytest

from civicreport.core.storage import FileKeyValueStore, JsonBlobStore, MemoryKeyValueStore
from civicreport.domain.errors import PersistenceError
from civicreport.store.reports import ReportStore

from conftest import FlakyKeyValueStore, fixed_clock, make_draft, sequential_ids


def test_reports_round_trip_through_file_storage(tmp_path):
    blobs = JsonBlobStore(FileKeyValueStore(tmp_path))
    writer = ReportStore(blobs, id_factory=sequential_ids())
    writer.initialize()
    for n in range(4):
        writer.add_report(make_draft(title=f"#{n}", images=[f"file:///{n}.jpg"]))
    writer.update_status("r2", "in-progress")
    writer.mark_milestone("r2", "department_assigned")

    reader = ReportStore(JsonBlobStore(FileKeyValueStore(tmp_path)))
    reader.initialize()

    assert reader.filtered_view() == writer.filtered_view()


def test_persisted_layout_uses_camel_case_keys(tmp_path):
    store = ReportStore(JsonBlobStore(FileKeyValueStore(tmp_path)), clock=fixed_clock, id_factory=sequential_ids())
    store.add_report(make_draft(voice_note="file:///n.m4a"))

    payload = json.loads((tmp_path / "reports.json").read_text(encoding="utf-8"))

    assert isinstance(payload, list) and len(payload) == 1
    item = payload[0]
    assert item["id"] == "r1"
    assert item["voiceNote"] == "file:///n.m4a"
    assert item["createdAt"].startswith("2026-01-05T10:00:00")
    assert item["resolutionProgress"] == {
        "issueReported": True,
        "departmentAssigned": False,
        "workersAssigned": False,
        "resolutionStarted": False,
        "issueResolved": False,
    }
    assert "author" not in item


def test_initialize_loads_blob_written_by_earlier_clients():
    legacy = [
        {
            "id": "1736071200000",
            "title": "Pothole on 5th",
            "category": "Roads and Potholes",
            "location": {"latitude": 37.7, "longitude": -122.4, "address": "5th St"},
            "images": [],
            "status": "in-progress",
            "createdAt": "2025-01-05T10:00:00.000Z",
            "resolutionProgress": {
                "issueReported": True,
                "departmentAssigned": True,
                "workersAssigned": False,
                "resolutionStarted": False,
                "issueResolved": False,
            },
        }
    ]
    store = ReportStore(JsonBlobStore(MemoryKeyValueStore({"reports": json.dumps(legacy)})))

    loaded = store.initialize()

    assert [r.id for r in loaded] == ["1736071200000"]
    assert loaded[0].status == "in-progress"
    assert loaded[0].resolution_progress.department_assigned is True


@pytest.mark.parametrize(
    "raw",
    [
        "not json at all",
        json.dumps({"reports": []}),
        json.dumps([{"id": "x", "title": "missing fields"}]),
    ],
)
def test_incompatible_blob_is_treated_as_absent(raw):
    store = ReportStore(JsonBlobStore(MemoryKeyValueStore({"reports": raw})))
    assert store.initialize() == []
    assert store.counts_by_status().total == 0


def test_non_utf8_blob_is_treated_as_absent(tmp_path):
    (tmp_path / "reports.json").write_bytes(b"\xff\xfe\x00garbage")
    store = ReportStore(JsonBlobStore(FileKeyValueStore(tmp_path)))

    assert store.initialize() == []

    # The next write replaces the unreadable file.
    store.add_report(make_draft())
    assert len(json.loads((tmp_path / "reports.json").read_text(encoding="utf-8"))) == 1


def test_initialize_is_idempotent(store):
    store.add_report(make_draft(title="A"))
    store.add_report(make_draft(title="B"))
    before = store.filtered_view()

    store.initialize()
    store.initialize()

    assert store.filtered_view() == before


def test_failed_write_leaves_memory_unchanged():
    kv = FlakyKeyValueStore()
    store = ReportStore(JsonBlobStore(kv), id_factory=sequential_ids())
    a = store.add_report(make_draft(title="A"))

    kv.failures = 1
    with pytest.raises(PersistenceError):
        store.add_report(make_draft(title="B"))
    kv.failures = 1
    with pytest.raises(PersistenceError):
        store.update_status(a, "resolved")
    kv.failures = 1
    with pytest.raises(PersistenceError):
        store.delete_report(a)

    assert [(r.title, r.status) for r in store.filtered_view()] == [("A", "pending")]

    # Memory still matches storage after the failures.
    reloaded = ReportStore(JsonBlobStore(kv))
    assert reloaded.initialize() == store.filtered_view()


def test_bounded_retry_recovers_from_transient_write_errors(monkeypatch):
    monkeypatch.setattr("civicreport.core.storage.time.sleep", lambda *_args, **_kwargs: None)
    kv = FlakyKeyValueStore(failures=2)
    store = ReportStore(JsonBlobStore(kv, write_retries=2, retry_delay_seconds=0.5))

    store.add_report(make_draft())

    assert kv.write_attempts == 3
    assert store.counts_by_status().total == 1


def test_bounded_retry_gives_up_after_limit(monkeypatch):
    monkeypatch.setattr("civicreport.core.storage.time.sleep", lambda *_args, **_kwargs: None)
    kv = FlakyKeyValueStore(failures=5)
    store = ReportStore(JsonBlobStore(kv, write_retries=2))

    with pytest.raises(PersistenceError):
        store.add_report(make_draft())

    assert kv.write_attempts == 3
    assert store.filtered_view() == []


def test_concurrent_mutations_queue_instead_of_interleaving(tmp_path):
    store = ReportStore(JsonBlobStore(FileKeyValueStore(tmp_path)), id_factory=sequential_ids())
    store.initialize()

    def submit(n):
        report_id = store.add_report(make_draft(title=f"#{n}"))
        store.update_status(report_id, "resolved" if n % 2 else "in-progress")
        return report_id

    with ThreadPoolExecutor(max_workers=16) as pool:
        ids = list(pool.map(submit, range(50)))

    counts = store.counts_by_status()
    assert len(set(ids)) == 50
    assert counts.total == 50
    assert (counts.resolved, counts.in_progress, counts.pending) == (25, 25, 0)

    reloaded = ReportStore(JsonBlobStore(FileKeyValueStore(tmp_path)))
    assert reloaded.initialize() == store.filtered_view()
