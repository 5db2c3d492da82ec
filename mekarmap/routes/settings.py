# SPDX-License-Identifier: Apache-2.0

"""
Client settings endpoints: offline mode, sync, connectivity, language and
profile.
"""

import asyncio
import logging
from flask import jsonify
from flask_openapi3 import APIBlueprint, Tag
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from ..models.requests import ChangeLanguageRequest, ConnectivityRequest, UpdateProfileRequest
from ..middleware.auth import require_session
from ..middleware.error_handler import build_problem
from ..middleware.validation import validate_json
from ..services.offline import SyncError
from ..utils.context import get_app_state
from .presenters import present_offline_status, present_user

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

settings_tag = Tag(name="Settings", description="Offline mode, language and profile")
settings_bp = APIBlueprint(
    'settings',
    __name__,
    url_prefix='/api',
    abp_tags=[settings_tag]
)


@settings_bp.get('/offline')
@require_session()
def offline_status():
    """Offline indicator and pending queue size."""
    state = get_app_state()
    return jsonify(present_offline_status(state.offline.status(), state))


@settings_bp.post('/offline/toggle')
@require_session()
def toggle_offline_mode():
    """Flip the user-controlled offline mode."""
    state = get_app_state()
    state.offline.toggle_offline_mode()
    return jsonify(present_offline_status(state.offline.status(), state))


@settings_bp.post('/offline/sync')
@require_session()
def sync_offline_queue():
    """
    Commit every queued entry.

    When storage fails part way, entries committed so far stay committed and
    the rest remain queued; the response reports both counts with 503.
    """
    state = get_app_state()
    t = state.localization.t

    with tracer.start_as_current_span("settings.sync") as span:
        try:
            committed = asyncio.run(state.offline.sync())
        except SyncError as e:
            span.set_status(Status(StatusCode.ERROR, str(e)))
            problem = build_problem(
                "sync-interrupted",
                "Sync interrupted",
                503,
                str(e),
                "/api/offline/sync",
                message=t("common.error"),
                committed=e.committed,
                remaining=e.remaining
            )
            return jsonify(problem), 503

        span.set_attribute("offline.committed", committed)

    return jsonify({
        "synced": committed,
        "message": t("common.synced", {"count": committed}),
        "offline": present_offline_status(state.offline.status(), state)
    })


@settings_bp.put('/offline/connectivity')
@validate_json(ConnectivityRequest)
def update_connectivity(connectivity: ConnectivityRequest):
    """Network-status signal reported by the client shell."""
    state = get_app_state()
    if connectivity.online:
        state.connectivity.set_online()
    else:
        state.connectivity.set_offline()
    return jsonify(present_offline_status(state.offline.status(), state))


def _language_view(state):
    return {
        "language": state.localization.language,
        "available": [
            {"code": code, "name": name}
            for code, name in state.localization.available_languages.items()
        ]
    }


@settings_bp.get('/language')
def get_language():
    """Active language and the supported languages."""
    return jsonify(_language_view(get_app_state()))


@settings_bp.put('/language')
@validate_json(ChangeLanguageRequest)
def change_language(change: ChangeLanguageRequest):
    """Switch the active language; takes effect on the next lookup."""
    state = get_app_state()
    state.localization.set_language(change.language)
    return jsonify(_language_view(state))


@settings_bp.patch('/profile')
@require_session()
@validate_json(UpdateProfileRequest)
def update_profile(profile: UpdateProfileRequest):
    """Rename the signed-in user."""
    state = get_app_state()
    state.session.update_name(profile.name)

    return jsonify({
        "success": True,
        "message": state.localization.t("profile.name_updated"),
        "user": present_user(state.session.current_user(), state)
    })
