# SPDX-License-Identifier: Apache-2.0

"""
Report domain logic for drafting and describing reports.

This module contains pure functions for report draft validation, report
construction and the label keys the presentation layer resolves.
"""

from typing import List, Dict, Any, Optional, Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone

from ..models.entities import Report, User, ReportType
from ..models.enums import ReportStatus
from ..models.requests import ReportDraft

DEFAULT_REPORT_TYPE = "other"
UNKNOWN_REPORTER = "unknown"

# Fields fixed at creation time
IMMUTABLE_FIELDS = ("reportID", "userID", "timestamp")


@dataclass
class ValidationResult:
    """Result of report draft validation; errors are localization keys."""
    is_valid: bool
    errors: List[str] = field(default_factory=list)


def validate_report_draft(draft: ReportDraft) -> ValidationResult:
    """
    Validate a report draft before submission.

    Args:
        draft: Report form contents

    Returns:
        ValidationResult listing the form messages to show
    """
    errors = []

    if not draft.description.strip():
        errors.append("report_form.description_required")

    if draft.geo_point is None:
        errors.append("report_form.location_required")

    return ValidationResult(is_valid=not errors, errors=errors)


def generate_report_id(now: datetime, taken_ids: Iterable[str] = ()) -> str:
    """
    Generate the time-derived report token.

    The millisecond count is bumped until the token is not already taken.

    Args:
        now: Creation instant
        taken_ids: Identifiers already in use

    Returns:
        Identifier of the form ``rep<epoch milliseconds>``
    """
    taken = set(taken_ids)
    millis = int(now.timestamp() * 1000)
    while f"rep{millis}" in taken:
        millis += 1
    return f"rep{millis}"


def build_report(draft: ReportDraft, user: Optional[User], now: Optional[datetime] = None,
                 taken_ids: Iterable[str] = ()) -> Report:
    """
    Build a new report from a validated draft.

    Args:
        draft: Validated report form contents
        user: Reporter, or None when the session was lost
        now: Creation instant, defaults to the current UTC time
        taken_ids: Report identifiers already stored or queued

    Returns:
        Report in Submitted status
    """
    now = now or datetime.now(timezone.utc)

    return Report(
        report_id=generate_report_id(now, taken_ids),
        user_id=user.user_id if user else UNKNOWN_REPORTER,
        type=draft.type or DEFAULT_REPORT_TYPE,
        description=draft.description,
        geo_point=draft.geo_point,
        photos=list(draft.photos),
        timestamp=now,
        status=ReportStatus.SUBMITTED,
        is_private=draft.is_private
    )


def immutable_fields_in(updates: Dict[str, Any]) -> List[str]:
    """List the creation-time fields an update tries to change."""
    return [name for name in IMMUTABLE_FIELDS if name in updates]


def report_type_name(type_id: str, catalog: Iterable[ReportType], translate: Callable[[str], str]) -> str:
    """
    Localized name of a report type.

    Falls back to the raw type id when the type is not in the catalog.
    """
    for report_type in catalog:
        if report_type.id == type_id:
            return translate(report_type.name_id)
    return type_id


def status_label_key(status: str) -> str:
    """Localization key of a status badge."""
    value = getattr(status, "value", status)
    return f"reports.status.{value.lower()}"


def privacy_label_key(report: Report) -> str:
    """Localization key of the privacy label; isPrivate only affects this label."""
    return "report_form.private" if report.is_private else "common.public"
