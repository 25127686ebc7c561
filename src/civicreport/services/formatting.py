"""Human-readable date helpers for listings."""

from __future__ import annotations

from datetime import datetime

from civicreport.core.time import utc_now

_MONTHS = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)


def format_date(dt: datetime) -> str:
    """`January 5, 2026` (locale-independent)."""
    return f"{_MONTHS[dt.month - 1]} {dt.day}, {dt.year}"


def relative_time(dt: datetime, *, now: datetime | None = None) -> str:
    """Coarse age such as `2 hours ago`."""
    now = now or utc_now()
    seconds = max(0, int((now - dt).total_seconds()))
    for unit, size in (("day", 86400), ("hour", 3600), ("minute", 60)):
        n = seconds // size
        if n:
            return f"{n} {unit}{'s' if n != 1 else ''} ago"
    return "just now"
