"""
Domain models (Pydantic).

These types are the stable "contract" between layers:
- user input (`ReportDraft`, `UserProfile`)
- the persisted collection (`Report`), stored as camelCase JSON
- the discovery projection (`NearbyIssue`) and map descriptors

All models accept both snake_case field names and their camelCase aliases, so
blobs written by earlier clients load unchanged.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal, get_args

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel, to_snake


Category = Literal[
    "Waste Management",
    "Roads and Potholes",
    "Streetlights",
    "Water Supply",
    "Sewage and Drainage",
    "Public Parks",
    "Illegal Constructions",
    "Others",
]
CATEGORIES: tuple[str, ...] = get_args(Category)

ReportStatus = Literal["pending", "in-progress", "resolved"]
STATUSES: tuple[str, ...] = get_args(ReportStatus)

Milestone = Literal[
    "issue_reported",
    "department_assigned",
    "workers_assigned",
    "resolution_started",
    "issue_resolved",
]
MILESTONES: tuple[str, ...] = get_args(Milestone)


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Location(_CamelModel):
    """Where an issue was observed; `address` is best-effort and may be stale."""

    model_config = ConfigDict(frozen=True)

    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    address: str = ""


class ResolutionProgress(_CamelModel):
    """Five ordered checkpoints of government-side processing."""

    model_config = ConfigDict(frozen=True)

    issue_reported: bool = True
    department_assigned: bool = False
    workers_assigned: bool = False
    resolution_started: bool = False
    issue_resolved: bool = False

    def completed(self) -> list[str]:
        return [m for m in MILESTONES if getattr(self, m)]

    def with_milestone(self, milestone: str) -> "ResolutionProgress":
        """Return a copy with `milestone` and every earlier milestone set.

        Accepts snake_case or camelCase names (`workers_assigned`, `workersAssigned`).

        Milestones already true stay true; nothing is ever reset.
        """
        milestone = to_snake(milestone)
        if milestone not in MILESTONES:
            raise ValueError(f"Unknown milestone '{milestone}'")
        upto = MILESTONES.index(milestone)
        return self.model_copy(update={m: True for m in MILESTONES[: upto + 1]})


class ReportDraft(_CamelModel):
    """Caller-supplied fields for a new report.

    Required-field checks (title, location) are done by the store so that they
    surface as `civicreport.domain.errors.ValidationError`.
    """

    title: str = ""
    category: Category = "Others"
    location: Location | None = None
    images: list[str] = Field(default_factory=list)
    voice_note: str | None = None


class Report(_CamelModel):
    """A citizen-submitted civic issue tracked through its resolution lifecycle.

    Instances are immutable; the store replaces a report with `model_copy` on
    every change.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    category: Category
    location: Location
    images: tuple[str, ...] = ()
    voice_note: str | None = None
    status: ReportStatus = "pending"
    created_at: datetime
    resolution_progress: ResolutionProgress = Field(default_factory=ResolutionProgress)
    author: str | None = None


class StatusCounts(_CamelModel):
    pending: int = 0
    in_progress: int = 0
    resolved: int = 0
    total: int = 0


class UserProfile(_CamelModel):
    """The local user identity record (not a security boundary)."""

    name: str
    phone: str
    email: str | None = None
    profile_picture: str | None = None


class NearbyIssue(_CamelModel):
    """Read-only projection of another party's report used for discovery.

    `distance_km` is None until the issue has been ranked against a reference.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    latitude: float
    longitude: float
    category: str
    description: str = ""
    author: str = ""
    reported_at: datetime
    distance_km: float | None = None


class MapRegion(_CamelModel):
    """Map viewport descriptor (centre + span in degrees)."""

    latitude: float
    longitude: float
    latitude_delta: float
    longitude_delta: float


class MapMarker(_CamelModel):
    id: str
    latitude: float
    longitude: float
    category: str
    selected: bool = False
