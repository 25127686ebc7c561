"""
Error taxonomy.

Every failure in the core is per-operation and recoverable; none of these should
take the process down. The HTTP and CLI layers translate them into status codes.
"""

from __future__ import annotations


class CivicReportError(Exception):
    """Base class for all CivicReport errors."""


class ValidationError(CivicReportError):
    """A report or profile is missing required fields; no state was changed."""


class NotFoundError(CivicReportError):
    """An operation referenced a report id that does not exist."""

    def __init__(self, report_id: str):
        super().__init__(f"Report '{report_id}' not found")
        self.report_id = report_id


class PersistenceError(CivicReportError):
    """Reading or writing the durable key-value store failed."""


class PermissionDenied(CivicReportError):
    """Raised by location/media collaborators when the user refused access."""
