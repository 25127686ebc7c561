"""
Report store: owns the collection of citizen reports.

Mutation discipline (persist-then-commit):
1. build the next collection from the current one,
2. write the whole collection to the `reports` blob,
3. only then swap it in as the in-memory collection.

A failed write raises `PersistenceError` and leaves memory untouched, so memory
never claims a mutation that storage does not have. All mutations hold one lock,
so concurrent callers queue instead of losing each other's updates.

Status and resolution milestones are independent: `update_status` never touches
milestones, and `mark_milestone` only ever sets milestones (as a prefix).
"""

from __future__ import annotations

import logging
import threading
import uuid
from datetime import datetime
from typing import Callable, Iterable

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from civicreport.core.storage import JsonBlobStore
from civicreport.core.time import utc_now
from civicreport.domain.errors import NotFoundError, ValidationError
from civicreport.domain.models import (
    STATUSES,
    Report,
    ReportDraft,
    ResolutionProgress,
    StatusCounts,
)
from civicreport.store.profile import ProfileStore

logger = logging.getLogger(__name__)

REPORTS_KEY = "reports"

_REPORTS_ADAPTER = TypeAdapter(list[Report])


def _new_id() -> str:
    return uuid.uuid4().hex


class ReportStore:
    """The only component allowed to mutate the report collection."""

    def __init__(
        self,
        blobs: JsonBlobStore,
        *,
        profile: ProfileStore | None = None,
        clock: Callable[[], datetime] = utc_now,
        id_factory: Callable[[], str] = _new_id,
    ):
        self._blobs = blobs
        self._profile = profile
        self._clock = clock
        self._id_factory = id_factory
        self._lock = threading.RLock()
        self._reports: list[Report] = []

    def initialize(self) -> list[Report]:
        """Load the persisted collection (last load wins).

        Memory only ever holds what was successfully written, so reloading cannot
        discard unsynced changes. Missing or incompatible data yields an empty collection.
        """
        with self._lock:
            self._reports = self._load()
            logger.info("Loaded %s report(s)", len(self._reports))
            return list(self._reports)

    def _load(self) -> list[Report]:
        raw = self._blobs.read(REPORTS_KEY)
        if raw is None:
            return []
        try:
            return _REPORTS_ADAPTER.validate_python(raw)
        except PydanticValidationError as exc:
            logger.warning(
                "Stored reports have an incompatible shape (%s error(s)); treating as absent.",
                exc.error_count(),
            )
            return []

    def _commit(self, reports: list[Report]) -> None:
        payload = _REPORTS_ADAPTER.dump_python(reports, mode="json", by_alias=True, exclude_none=True)
        self._blobs.write(REPORTS_KEY, payload)
        self._reports = reports

    def _index_of(self, report_id: str) -> int:
        for i, r in enumerate(self._reports):
            if r.id == report_id:
                return i
        raise NotFoundError(report_id)

    def add_report(self, draft: ReportDraft) -> str:
        """Validate, stamp and persist a new report; returns its id."""
        if not draft.title.strip():
            raise ValidationError("Report title is required")
        if draft.location is None:
            raise ValidationError("Report location is required")

        with self._lock:
            report = Report(
                id=self._id_factory(),
                title=draft.title,
                category=draft.category,
                location=draft.location,
                images=tuple(draft.images),
                voice_note=draft.voice_note,
                status="pending",
                created_at=self._clock(),
                resolution_progress=ResolutionProgress(),
                author=self._profile.author_tag() if self._profile else None,
            )
            self._commit([*self._reports, report])
        logger.info("Report %s created (%s)", report.id, report.category)
        return report.id

    def delete_report(self, report_id: str) -> None:
        """Remove a report; deleting an unknown id is a no-op."""
        with self._lock:
            remaining = [r for r in self._reports if r.id != report_id]
            if len(remaining) == len(self._reports):
                return
            self._commit(remaining)
        logger.info("Report %s deleted", report_id)

    def get_report(self, report_id: str) -> Report:
        with self._lock:
            return self._reports[self._index_of(report_id)]

    def update_status(self, report_id: str, status: str) -> Report:
        """Set a report's status. Any transition is allowed; milestones are left alone."""
        if status not in STATUSES:
            raise ValidationError(f"Unknown status '{status}'")
        with self._lock:
            i = self._index_of(report_id)
            updated = self._reports[i].model_copy(update={"status": status})
            self._commit([*self._reports[:i], updated, *self._reports[i + 1 :]])
        logger.info("Report %s status -> %s", report_id, status)
        return updated

    def mark_milestone(self, report_id: str, milestone: str) -> Report:
        """Advance resolution progress up to and including `milestone`."""
        with self._lock:
            i = self._index_of(report_id)
            current = self._reports[i]
            try:
                progress = current.resolution_progress.with_milestone(milestone)
            except ValueError as exc:
                raise ValidationError(str(exc)) from exc
            if progress == current.resolution_progress:
                return current
            updated = current.model_copy(update={"resolution_progress": progress})
            self._commit([*self._reports[:i], updated, *self._reports[i + 1 :]])
        logger.info("Report %s milestone -> %s", report_id, milestone)
        return updated

    def filtered_view(self, status: str | None = None, *, newest_first: bool = False) -> list[Report]:
        """Reports with `status` (all for None/"all"), in collection order."""
        if status not in (None, "all") and status not in STATUSES:
            raise ValidationError(f"Unknown status filter '{status}'")
        with self._lock:
            out = [r for r in self._reports if status in (None, "all") or r.status == status]
        if newest_first:
            out.reverse()
        return out

    def counts_by_status(self) -> StatusCounts:
        with self._lock:
            return count_statuses(self._reports)


def count_statuses(reports: Iterable[Report]) -> StatusCounts:
    counts = {s: 0 for s in STATUSES}
    total = 0
    for r in reports:
        counts[r.status] += 1
        total += 1
    return StatusCounts(
        pending=counts["pending"],
        in_progress=counts["in-progress"],
        resolved=counts["resolved"],
        total=total,
    )
