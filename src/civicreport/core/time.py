"""
Time helpers.

CivicReport stores timezone-aware timestamps only, so reports written by the API
and by the CLI compare and sort consistently.
"""

from __future__ import annotations

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)
