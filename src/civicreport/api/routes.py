"""
API routes.

Endpoints:
- `/api/reports...`: create, list/filter, count, status, milestones, delete.
- `/api/profile`: local profile (login/logout).
- GET `/api/nearby`: rank candidate issues around a reference point.
- GET `/api/categories`: the fixed category list.

Handlers are sync so FastAPI runs them in its threadpool; the stores serialize
their own writes.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from fastapi import APIRouter, HTTPException, Query, Response
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from civicreport.config.settings import get_settings
from civicreport.core.geo import GeoPoint
from civicreport.core.storage import build_blob_store
from civicreport.domain.models import (
    CATEGORIES,
    MapMarker,
    MapRegion,
    NearbyIssue,
    Report,
    ReportDraft,
    ReportStatus,
    StatusCounts,
    UserProfile,
)
from civicreport.proximity.feed import CandidateFeed, ReportCandidateFeed, SimulatedCandidateFeed
from civicreport.proximity.index import ProximityIndex
from civicreport.store.profile import ProfileStore
from civicreport.store.reports import ReportStore

router = APIRouter()


@lru_cache
def _stores() -> tuple[ReportStore, ProfileStore]:
    settings = get_settings()
    blobs = build_blob_store(settings)
    profile = ProfileStore(blobs)
    profile.initialize()
    reports = ReportStore(blobs, profile=profile)
    reports.initialize()
    return reports, profile


@lru_cache
def _candidate_feed() -> CandidateFeed:
    return SimulatedCandidateFeed()


class CreatedResponse(BaseModel):
    id: str


class StatusUpdate(BaseModel):
    status: ReportStatus


class MilestoneUpdate(BaseModel):
    milestone: str


class NearbyResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    reference: dict[str, float]
    issues: list[NearbyIssue]
    markers: list[MapMarker]
    selected_id: str | None = None
    focus: MapRegion | None = None


@router.get("/api/categories")
def get_categories() -> dict:
    return {"categories": list(CATEGORIES)}


@router.get("/api/reports", response_model=list[Report])
def list_reports(
    status: Literal["all", "pending", "in-progress", "resolved"] = "all",
    newest_first: bool = False,
) -> list[Report]:
    """Reports filtered by status, in submission order unless `newest_first`."""
    reports, _ = _stores()
    return reports.filtered_view(status, newest_first=newest_first)


@router.get("/api/reports/counts", response_model=StatusCounts)
def get_counts() -> StatusCounts:
    reports, _ = _stores()
    return reports.counts_by_status()


@router.post("/api/reports", response_model=CreatedResponse, status_code=201)
def create_report(draft: ReportDraft) -> CreatedResponse:
    reports, _ = _stores()
    return CreatedResponse(id=reports.add_report(draft))


@router.get("/api/reports/{report_id}", response_model=Report)
def get_report(report_id: str) -> Report:
    reports, _ = _stores()
    return reports.get_report(report_id)


@router.patch("/api/reports/{report_id}/status", response_model=Report)
def update_status(report_id: str, body: StatusUpdate) -> Report:
    reports, _ = _stores()
    return reports.update_status(report_id, body.status)


@router.post("/api/reports/{report_id}/milestones", response_model=Report)
def mark_milestone(report_id: str, body: MilestoneUpdate) -> Report:
    reports, _ = _stores()
    return reports.mark_milestone(report_id, body.milestone)


@router.delete("/api/reports/{report_id}", status_code=204)
def delete_report(report_id: str) -> Response:
    reports, _ = _stores()
    reports.delete_report(report_id)
    return Response(status_code=204)


@router.get("/api/profile", response_model=UserProfile)
def get_profile() -> UserProfile:
    _, profile = _stores()
    if profile.user is None:
        raise HTTPException(status_code=404, detail="No profile saved")
    return profile.user


@router.put("/api/profile", response_model=UserProfile)
def put_profile(body: UserProfile) -> UserProfile:
    _, profile = _stores()
    return profile.login(body)


@router.delete("/api/profile", status_code=204)
def delete_profile() -> Response:
    _, profile = _stores()
    profile.logout()
    return Response(status_code=204)


@router.get("/api/nearby", response_model=NearbyResponse)
def get_nearby(
    lat: float | None = Query(default=None, ge=-90, le=90),
    lon: float | None = Query(default=None, ge=-180, le=180),
    category: str | None = None,
    max_distance_km: float | None = Query(default=None, gt=0),
    selected: str | None = None,
    source: Literal["simulated", "reports"] = "simulated",
) -> NearbyResponse:
    """Rank candidate issues around (lat, lon); falls back to the configured reference.

    `source=reports` ranks the locally stored reports instead of the demo feed.
    """
    settings = get_settings()
    ref = settings.nearby.default_reference
    reference = GeoPoint(
        lat=lat if lat is not None else ref.latitude,
        lon=lon if lon is not None else ref.longitude,
    )
    # The feed is queried with a wide window; the index does the exact ranking.
    region = MapRegion(latitude=reference.lat, longitude=reference.lon, latitude_delta=1.0, longitude_delta=1.0)

    if source == "reports":
        reports, _ = _stores()
        feed: CandidateFeed = ReportCandidateFeed(reports)
    else:
        feed = _candidate_feed()

    index = ProximityIndex(focus_delta=settings.nearby.focus_delta)
    index.refresh(reference, feed.fetch_candidate_issues(region))
    if selected:
        index.select(selected)

    limit = max_distance_km if max_distance_km is not None else settings.nearby.max_distance_km
    issues = index.filtered(category=category, max_distance_km=limit)
    return NearbyResponse(
        reference={"lat": reference.lat, "lon": reference.lon},
        issues=issues,
        markers=index.markers(issues),
        selected_id=index.selected_id,
        focus=index.focus_region(),
    )
