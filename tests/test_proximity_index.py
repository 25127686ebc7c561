from datetime import datetime, timezone

from civicreport.core.geo import GeoPoint
from civicreport.domain.models import Location, MapRegion, NearbyIssue
from civicreport.proximity.feed import ReportCandidateFeed, SimulatedCandidateFeed
from civicreport.proximity.index import ProximityIndex, compute_nearby, focus_region

from conftest import make_draft

REFERENCE = GeoPoint(lat=37.78825, lon=-122.4324)
NOW = datetime(2026, 1, 5, 12, 0, tzinfo=timezone.utc)


def _issue(issue_id, dlat, dlon, category="Waste Management"):
    return NearbyIssue(
        id=issue_id,
        latitude=REFERENCE.lat + dlat,
        longitude=REFERENCE.lon + dlon,
        category=category,
        description=f"issue {issue_id}",
        author="someone",
        reported_at=NOW,
    )


def _candidates():
    return [_issue("1", 0.01, 0.01), _issue("2", -0.015, 0.008), _issue("3", 0.008, -0.012)]


def test_compute_nearby_ranks_smallest_offset_first():
    ranked = compute_nearby(REFERENCE, _candidates())

    assert [i.id for i in ranked] == ["3", "1", "2"]
    distances = [i.distance_km for i in ranked]
    assert distances == sorted(distances)
    assert distances == [1.4, 1.4, 1.8]


def test_compute_nearby_does_not_mutate_candidates():
    candidates = _candidates()
    ranked = compute_nearby(REFERENCE, candidates)

    assert all(c.distance_km is None for c in candidates)
    assert [c.id for c in candidates] == ["1", "2", "3"]
    assert ranked is not candidates


def test_compute_nearby_keeps_input_order_on_exact_ties():
    candidates = [_issue("first", 0.01, 0.01), _issue("second", 0.01, 0.01), _issue("near", 0.0, 0.001)]

    ranked = compute_nearby(REFERENCE, candidates)

    assert [i.id for i in ranked] == ["near", "first", "second"]


def test_refresh_replaces_previous_distances():
    index = ProximityIndex()
    index.refresh(REFERENCE, _candidates())

    far_reference = GeoPoint(lat=REFERENCE.lat - 0.015, lon=REFERENCE.lon + 0.008)
    ranked = index.refresh(far_reference, _candidates())

    assert ranked[0].id == "2"
    assert ranked[0].distance_km == 0.0
    assert index.reference == far_reference


def test_select_drives_markers_and_focus_region():
    index = ProximityIndex()
    index.refresh(REFERENCE, _candidates())

    selected = index.select("2")

    assert selected.id == "2"
    assert [m.id for m in index.markers() if m.selected] == ["2"]
    region = index.focus_region()
    assert region == MapRegion(
        latitude=selected.latitude,
        longitude=selected.longitude,
        latitude_delta=0.01,
        longitude_delta=0.01,
    )


def test_select_unknown_issue_clears_cursor():
    index = ProximityIndex()
    index.refresh(REFERENCE, _candidates())
    index.select("1")

    assert index.select("nope") is None
    assert index.selected_id is None
    assert not any(m.selected for m in index.markers())
    assert index.focus_region() is None


def test_refresh_drops_selection_missing_from_new_set():
    index = ProximityIndex()
    index.refresh(REFERENCE, _candidates())
    index.select("3")

    index.refresh(REFERENCE, _candidates()[:2])

    assert index.selected_id is None


def test_focus_region_is_pure():
    issue = _issue("1", 0.01, 0.01)
    assert focus_region(issue) == focus_region(issue)
    assert focus_region(issue, delta=0.05).latitude_delta == 0.05


def test_filtered_preserves_rank_order():
    index = ProximityIndex()
    index.refresh(REFERENCE, [*_candidates(), _issue("4", 0.001, 0.0, category="Streetlights")])

    assert [i.id for i in index.filtered(category="Waste Management")] == ["3", "1", "2"]
    assert [i.id for i in index.filtered(max_distance_km=1.5)] == ["4", "3", "1"]
    assert index.filtered(category="Water Supply") == []


def test_simulated_feed_offsets_around_region_centre():
    region = MapRegion(latitude=REFERENCE.lat, longitude=REFERENCE.lon, latitude_delta=1.0, longitude_delta=1.0)
    issues = SimulatedCandidateFeed(clock=lambda: NOW).fetch_candidate_issues(region)

    assert [i.id for i in issues] == ["1", "2", "3"]
    assert [i.author for i in issues] == ["John Doe", "Jane Smith", "Mike Johnson"]
    assert [i.id for i in compute_nearby(REFERENCE, issues)] == ["3", "1", "2"]


def test_report_feed_projects_reports_inside_region(store):
    store.add_report(make_draft(title="inside"))
    store.add_report(
        make_draft(title="outside", location=Location(latitude=40.7128, longitude=-74.006, address="NYC"))
    )
    region = MapRegion(latitude=REFERENCE.lat, longitude=REFERENCE.lon, latitude_delta=0.5, longitude_delta=0.5)

    issues = ReportCandidateFeed(store).fetch_candidate_issues(region)

    assert [i.description for i in issues] == ["inside"]
    assert issues[0].category == "Waste Management"
