# SPDX-License-Identifier: Apache-2.0

"""
Visibility and authorization domain logic for role-based report access.

This module contains pure functions deciding which reports a user may list,
which status transitions a role may perform, and where a navigation request
is redirected when the user may not open a view.
"""

from typing import List, Optional, Sequence, Iterable
from dataclasses import dataclass

from ..models.entities import Report, User
from ..models.enums import ReportStatus, UserRole

LOGIN_ROUTE = "/login"
HOME_ROUTE = "/home"

# Status targets offered to triaging roles, each selectable independently
TRANSITION_TARGETS = (
    ReportStatus.VERIFIED,
    ReportStatus.IN_PROGRESS,
    ReportStatus.RESOLVED,
)

TRIAGE_ROLES = (UserRole.GOVERNMENT_OFFICIAL, UserRole.ADMINISTRATOR)

RECENT_REPORTS_LIMIT = 3


@dataclass
class AuthorizationResult:
    """Result of an authorization check."""
    allowed: bool
    reason: Optional[str] = None


@dataclass
class RouteDecision:
    """Outcome of gating a navigation request."""
    allowed: bool
    redirect_to: Optional[str] = None


def can_list_all_reports(user: User) -> bool:
    """Officials and administrators list every report regardless of owner."""
    return user.role in TRIAGE_ROLES


def filter_visible_reports(user: User, reports: Iterable[Report]) -> List[Report]:
    """
    Filter reports to those the user may list.

    Residents only see their own reports. ``isPrivate`` is a display label
    and does not take part in filtering.

    Args:
        user: Signed-in user
        reports: Reports in insertion order

    Returns:
        Visible reports, insertion order preserved
    """
    if can_list_all_reports(user):
        return list(reports)
    return [report for report in reports if report.user_id == user.user_id]


def sort_newest_first(reports: Iterable[Report]) -> List[Report]:
    """
    Sort reports by creation time, most recent first.

    The sort is stable, so reports with equal timestamps keep insertion order.
    """
    return sorted(reports, key=lambda report: report.timestamp, reverse=True)


def list_reports_for(user: User, reports: Iterable[Report]) -> List[Report]:
    """Visible reports for a user, newest first."""
    return sort_newest_first(filter_visible_reports(user, reports))


def recent_reports_for(user: User, reports: Iterable[Report], limit: int = RECENT_REPORTS_LIMIT) -> List[Report]:
    """Most recent visible reports for the home view."""
    return list_reports_for(user, reports)[:limit]


def map_reports(reports: Iterable[Report]) -> List[Report]:
    """Reports plotted on the public map; every stored report is shown."""
    return list(reports)


def can_view_report(user: Optional[User], report: Report) -> AuthorizationResult:
    """
    Check if a user may open a report's detail view.

    The detail view is reachable from the public map, so any signed-in user
    may open it.
    """
    if user is None:
        return AuthorizationResult(allowed=False, reason="Authentication required")
    return AuthorizationResult(allowed=True)


def can_create_report(user: Optional[User]) -> AuthorizationResult:
    """Check if a user may file new reports."""
    if user is None:
        return AuthorizationResult(allowed=False, reason="Authentication required")

    if user.role != UserRole.RESIDENT:
        return AuthorizationResult(
            allowed=False,
            reason=f"Role {user.role} does not file reports"
        )

    return AuthorizationResult(allowed=True)


def check_status_transition(user: Optional[User], report: Optional[Report],
                            target: ReportStatus) -> AuthorizationResult:
    """
    Check if a user may move a report to a target status.

    Args:
        user: Signed-in user
        report: Report being triaged, None if it is not in the store
        target: Requested status

    Returns:
        AuthorizationResult indicating if the transition is allowed
    """
    if user is None:
        return AuthorizationResult(allowed=False, reason="Authentication required")

    if user.role not in TRIAGE_ROLES:
        return AuthorizationResult(
            allowed=False,
            reason=f"Role {user.role} cannot change report status"
        )

    if report is None:
        return AuthorizationResult(allowed=False, reason="Report not found")

    if target not in TRANSITION_TARGETS:
        return AuthorizationResult(
            allowed=False,
            reason=f"Status {target} is not a transition target"
        )

    if report.status == target:
        return AuthorizationResult(
            allowed=False,
            reason=f"Report is already {target}"
        )

    return AuthorizationResult(allowed=True)


def allowed_transitions(user: Optional[User], report: Report) -> List[str]:
    """Status targets the detail view offers to this user."""
    return [
        target.value for target in TRANSITION_TARGETS
        if check_status_transition(user, report, target).allowed
    ]


def check_route_access(user: Optional[User], roles: Optional[Sequence[str]] = None) -> RouteDecision:
    """
    Gate a navigation request.

    Args:
        user: Signed-in user, None when unauthenticated
        roles: Roles allowed to open the view, any role if empty

    Returns:
        RouteDecision with the redirect target when access is refused
    """
    if user is None:
        return RouteDecision(allowed=False, redirect_to=LOGIN_ROUTE)

    if roles and user.role not in roles:
        return RouteDecision(allowed=False, redirect_to=HOME_ROUTE)

    return RouteDecision(allowed=True)
