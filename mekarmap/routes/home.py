# SPDX-License-Identifier: Apache-2.0

"""
Home and map views.
"""

import logging
from flask import jsonify
from flask_openapi3 import APIBlueprint, Tag

from ..domain.visibility import can_create_report
from ..middleware.auth import require_session, get_current_user
from ..services.storage import Slots, StorageWriteError
from ..utils.context import get_app_state
from .presenters import present_reports, present_offline_status, present_user, present_tutorial

logger = logging.getLogger(__name__)

home_tag = Tag(name="Home", description="Dashboard and map views")
home_bp = APIBlueprint(
    'home',
    __name__,
    abp_tags=[home_tag]
)


def _consume_first_run(state) -> bool:
    """True on the first visit; marks the tutorial as shown."""
    if state.storage.exists(Slots.FIRST_RUN):
        return False

    try:
        state.storage.write(Slots.FIRST_RUN, True)
    except StorageWriteError as e:
        logger.warning("Failed to persist first-run flag", extra={"error": str(e)})
    return True


@home_bp.get('/home')
@require_session()
def home():
    """Dashboard with the most recent visible reports."""
    state = get_app_state()
    user = get_current_user()
    t = state.localization.t

    return jsonify({
        "view": "home",
        "greeting": f"{t('common.welcome')}, {user.name}",
        "user": present_user(user, state),
        "offline": present_offline_status(state.offline.status(), state),
        "recentReports": present_reports(state.reports.recent_for(user), state),
        "canCreateReport": can_create_report(user).allowed,
        "showTutorial": _consume_first_run(state),
        "tutorial": present_tutorial(state, user)
    })


@home_bp.get('/map')
@require_session()
def map_view():
    """Every stored report with its location."""
    state = get_app_state()

    return jsonify({
        "view": "map",
        "title": state.localization.t("map.title"),
        "reports": present_reports(state.reports.map_reports(), state)
    })
