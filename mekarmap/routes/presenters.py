# SPDX-License-Identifier: Apache-2.0

"""
View-model builders shared by the route blueprints.

Everything the client displays is resolved in the active language here, so
the views only decide which model to return.
"""

from typing import Any, Dict, List, Optional

from ..domain import reports as report_domain
from ..domain.visibility import allowed_transitions
from ..models.entities import Report, User
from ..services.offline import OfflineStatus
from ..utils.context import AppState


def present_report(report: Report, state: AppState) -> Dict[str, Any]:
    """Report record plus its resolved labels."""
    t = state.localization.t
    view = report.to_record()
    view.update({
        "typeLabel": report_domain.report_type_name(report.type, state.catalog.report_types(), t),
        "statusLabel": t(report_domain.status_label_key(report.status)),
        "privacyLabel": t(report_domain.privacy_label_key(report)),
    })
    return view


def present_reports(reports: List[Report], state: AppState) -> List[Dict[str, Any]]:
    return [present_report(report, state) for report in reports]


def present_report_detail(report: Report, user: User, state: AppState) -> Dict[str, Any]:
    """Detail view with the status actions the user may take."""
    t = state.localization.t
    return {
        "view": "report_detail",
        "report": present_report(report, state),
        "actions": [
            {"status": status, "label": t(report_domain.status_label_key(status))}
            for status in allowed_transitions(user, report)
        ]
    }


def present_offline_status(status: OfflineStatus, state: AppState) -> Dict[str, Any]:
    """Offline indicator; ``message`` is None while online and not in offline mode."""
    t = state.localization.t
    message = t(status.message_key) if status.message_key else None
    return {
        "isOffline": status.is_offline,
        "offlineMode": status.offline_mode,
        "queueing": status.queueing,
        "pending": status.pending,
        "pendingLabel": t("common.pending_items", {"count": status.pending}) if status.pending else None,
        "message": message
    }


def present_user(user: User, state: AppState) -> Dict[str, Any]:
    """Session user with the role label; reward points are shown to Residents only."""
    view = {
        "userID": user.user_id,
        "name": user.name,
        "role": user.role,
        "roleLabel": state.localization.t(f"roles.{user.role}"),
        "languagePref": user.language_pref
    }
    if user.is_resident() and user.has_reward_points():
        view["rewardPoints"] = user.reward_points
        view["rewardPointsLabel"] = state.localization.t("profile.points")
    return view


def present_tutorial(state: AppState, user: Optional[User] = None) -> List[Dict[str, Any]]:
    """Ordered tutorial steps with resolved title and body."""
    t = state.localization.t
    params = {"name": user.name} if user else None
    return [
        {
            "icon": step.icon,
            "title": t(step.text_id, params),
            "content": t(step.content_id, params),
            "audio": step.audio_id
        }
        for step in state.catalog.tutorial_steps()
    ]
