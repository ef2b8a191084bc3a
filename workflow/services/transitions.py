"""Report status lifecycle.

Normal moves go forward along ``pending -> in_progress -> report_uploaded
-> reviewed -> approved`` (skipping ahead is allowed), with ``cancelled``
and ``paid`` reachable from any non-terminal status.  ``approved`` and
``cancelled`` are terminal.  Administrators may bypass the table through
the override path; the file rule still applies there.
"""
from __future__ import annotations

from workflow.exceptions import InvalidArgument, PreconditionFailed
from workflow.models import Report

REPORT_STATUSES = frozenset(value for value, _ in Report.STATUS_CHOICES)

TERMINAL_STATUSES = frozenset({Report.STATUS_APPROVED, Report.STATUS_CANCELLED})

# Statuses a report holding an uploaded file may never fall back to.
PRE_UPLOAD_STATUSES = frozenset({Report.STATUS_PENDING, Report.STATUS_IN_PROGRESS})

TRANSITIONS = {
    Report.STATUS_PENDING: {
        Report.STATUS_IN_PROGRESS, Report.STATUS_REPORT_UPLOADED,
        Report.STATUS_CANCELLED, Report.STATUS_PAID,
    },
    Report.STATUS_IN_PROGRESS: {
        Report.STATUS_REPORT_UPLOADED, Report.STATUS_CANCELLED, Report.STATUS_PAID,
    },
    Report.STATUS_REPORT_UPLOADED: {
        Report.STATUS_REVIEWED, Report.STATUS_APPROVED,
        Report.STATUS_CANCELLED, Report.STATUS_PAID,
    },
    Report.STATUS_REVIEWED: {
        Report.STATUS_APPROVED, Report.STATUS_CANCELLED, Report.STATUS_PAID,
    },
    Report.STATUS_PAID: {
        Report.STATUS_IN_PROGRESS, Report.STATUS_REPORT_UPLOADED, Report.STATUS_REVIEWED,
        Report.STATUS_APPROVED, Report.STATUS_CANCELLED,
    },
    Report.STATUS_APPROVED: set(),
    Report.STATUS_CANCELLED: set(),
}


def can_transition(current: str, new: str) -> bool:
    """Return True if a report may move from ``current`` to ``new`` in normal mode."""
    return new in TRANSITIONS.get(current, set())


def validate_status_value(new: str) -> str:
    if new not in REPORT_STATUSES:
        raise InvalidArgument(f'Invalid status: {new!r}')
    return new


def ensure_transition(report: Report, new: str, *, override: bool = False) -> None:
    """Raise unless ``report`` may move to ``new``.

    Unknown values are an ``InvalidArgument``; a known value that the
    lifecycle does not allow from the current status is a
    ``PreconditionFailed``.
    """
    validate_status_value(new)
    if report.has_file and new in PRE_UPLOAD_STATUSES:
        raise PreconditionFailed(f'Report {report.case_number} has an uploaded file; cannot move back to {new}')
    if override:
        return
    if not can_transition(report.status, new):
        raise PreconditionFailed(f'Cannot change report status from {report.status} to {new}')
