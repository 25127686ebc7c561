"""
Candidate issue feeds.

A feed supplies other parties' issues around a region; the proximity index only
ranks them. There is no shared backend, so two local feeds exist:
- `SimulatedCandidateFeed`: fixed demo issues offset from the region centre.
- `ReportCandidateFeed`: the local report collection projected as candidates
  (useful to see one's own reports on the map).
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Callable, Protocol

from civicreport.core.time import utc_now
from civicreport.domain.models import MapRegion, NearbyIssue
from civicreport.store.reports import ReportStore


class CandidateFeed(Protocol):
    def fetch_candidate_issues(self, region: MapRegion) -> list[NearbyIssue]: ...


# (lat offset, lon offset, category, description, author, age)
_SIMULATED = [
    (0.01, 0.01, "Waste Management", "Garbage piled up on street corner", "John Doe", timedelta(hours=2)),
    (-0.015, 0.008, "Waste Management", "Broken waste bin", "Jane Smith", timedelta(hours=4)),
    (0.008, -0.012, "Waste Management", "Littering on road", "Mike Johnson", timedelta(hours=1)),
]


class SimulatedCandidateFeed:
    def __init__(self, *, clock: Callable[[], datetime] = utc_now):
        self._clock = clock

    def fetch_candidate_issues(self, region: MapRegion) -> list[NearbyIssue]:
        now = self._clock()
        return [
            NearbyIssue(
                id=str(n),
                latitude=region.latitude + dlat,
                longitude=region.longitude + dlon,
                category=category,
                description=description,
                author=author,
                reported_at=now - age,
            )
            for n, (dlat, dlon, category, description, author, age) in enumerate(_SIMULATED, start=1)
        ]


class ReportCandidateFeed:
    """Projects stored reports that fall inside `region` as candidates."""

    def __init__(self, store: ReportStore):
        self._store = store

    def fetch_candidate_issues(self, region: MapRegion) -> list[NearbyIssue]:
        half_lat = region.latitude_delta / 2
        half_lon = region.longitude_delta / 2
        out = []
        for r in self._store.filtered_view():
            loc = r.location
            if abs(loc.latitude - region.latitude) > half_lat:
                continue
            if abs(loc.longitude - region.longitude) > half_lon:
                continue
            out.append(
                NearbyIssue(
                    id=r.id,
                    latitude=loc.latitude,
                    longitude=loc.longitude,
                    category=r.category,
                    description=r.title,
                    author=r.author or "",
                    reported_at=r.created_at,
                )
            )
        return out
