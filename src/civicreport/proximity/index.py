"""
Nearby-issue ranking.

Given a reference point and candidate issues, annotate each with its distance
and sort ascending. The list view and the map view both derive from the same
ranked sequence and share one "selected issue" cursor.

Ordering contract: ascending true distance; exact ties keep input order
(Python's sort is stable). The displayed `distance_km` is rounded to 0.1 km.
"""

from __future__ import annotations

from typing import Iterable

from civicreport.core.geo import GeoPoint, haversine_km
from civicreport.domain.models import MapMarker, MapRegion, NearbyIssue

DEFAULT_FOCUS_DELTA = 0.01


def compute_nearby(reference: GeoPoint, candidates: Iterable[NearbyIssue]) -> list[NearbyIssue]:
    """Return new `NearbyIssue`s annotated with distance, nearest first.

    Ranking uses the unrounded distance, so two issues that both display as
    1.4 km still come out in true distance order.
    """
    keyed = []
    for c in candidates:
        exact = haversine_km(reference.lat, reference.lon, c.latitude, c.longitude)
        keyed.append((exact, c.model_copy(update={"distance_km": round(exact, 1)})))
    keyed.sort(key=lambda pair: pair[0])
    return [issue for _, issue in keyed]


def focus_region(issue: NearbyIssue, *, delta: float = DEFAULT_FOCUS_DELTA) -> MapRegion:
    """Viewport centred on `issue` with a fixed zoom span."""
    return MapRegion(
        latitude=issue.latitude,
        longitude=issue.longitude,
        latitude_delta=delta,
        longitude_delta=delta,
    )


class ProximityIndex:
    """One discovery session: ranked view + selected-issue cursor."""

    def __init__(self, *, focus_delta: float = DEFAULT_FOCUS_DELTA):
        self._focus_delta = float(focus_delta)
        self._reference: GeoPoint | None = None
        self._ranked: list[NearbyIssue] = []
        self._selected_id: str | None = None

    @property
    def reference(self) -> GeoPoint | None:
        return self._reference

    @property
    def ranked(self) -> list[NearbyIssue]:
        return list(self._ranked)

    @property
    def selected_id(self) -> str | None:
        return self._selected_id

    @property
    def selected(self) -> NearbyIssue | None:
        if self._selected_id is None:
            return None
        return next((i for i in self._ranked if i.id == self._selected_id), None)

    def refresh(self, reference: GeoPoint, candidates: Iterable[NearbyIssue]) -> list[NearbyIssue]:
        """Replace the ranked view wholesale (no incremental update)."""
        self._reference = reference
        self._ranked = compute_nearby(reference, candidates)
        if self.selected is None:
            self._selected_id = None
        return list(self._ranked)

    def select(self, issue_id: str | None) -> NearbyIssue | None:
        """Move the cursor; an id outside the current set clears it."""
        self._selected_id = issue_id
        found = self.selected
        if found is None:
            self._selected_id = None
        return found

    def focus_region(self, issue: NearbyIssue | None = None) -> MapRegion | None:
        """Viewport for `issue`, or for the current selection when omitted."""
        target = issue if issue is not None else self.selected
        if target is None:
            return None
        return focus_region(target, delta=self._focus_delta)

    def filtered(
        self,
        *,
        category: str | None = None,
        max_distance_km: float | None = None,
    ) -> list[NearbyIssue]:
        """Subset of the ranked view; ordering is preserved."""
        out = []
        for issue in self._ranked:
            if category and issue.category != category:
                continue
            if max_distance_km is not None and issue.distance_km > max_distance_km:
                continue
            out.append(issue)
        return out

    def markers(self, issues: Iterable[NearbyIssue] | None = None) -> list[MapMarker]:
        source = self._ranked if issues is None else issues
        return [
            MapMarker(
                id=i.id,
                latitude=i.latitude,
                longitude=i.longitude,
                category=i.category,
                selected=i.id == self._selected_id,
            )
            for i in source
        ]
