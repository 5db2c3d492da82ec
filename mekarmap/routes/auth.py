# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Sign-in and sign-out endpoints.
"""

import asyncio
import logging
from flask import jsonify
from flask_openapi3 import APIBlueprint, Tag
from opentelemetry import trace

from ..domain.visibility import HOME_ROUTE, LOGIN_ROUTE
from ..models.requests import LoginRequest
from ..middleware.validation import validate_json
from ..utils.context import get_app_state
from .presenters import present_user

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

auth_tag = Tag(name="Authentication", description="Session sign-in and sign-out")
auth_bp = APIBlueprint(
    'auth',
    __name__,
    abp_tags=[auth_tag]
)


@auth_bp.get('/login')
def login_form():
    """Sign-in view; public."""
    state = get_app_state()
    t = state.localization.t
    user = state.session.current_user()

    return jsonify({
        "view": "login",
        "title": t("login.title"),
        "fields": {
            "userID": t("login.user_id"),
            "credentials": t("login.credentials")
        },
        "submit": t("login.submit"),
        "authenticated": user is not None
    })


@auth_bp.post('/login')
@validate_json(LoginRequest)
def login(login_request: LoginRequest):
    """
    Authenticate with a user id and credential.

    A failed attempt returns 401 with the localized error message and leaves
    any existing session untouched.
    """
    state = get_app_state()
    t = state.localization.t

    if not login_request.user_id or not login_request.credentials:
        return jsonify({"success": False, "message": t("login.required")}), 400

    with tracer.start_as_current_span("auth.login", attributes={"user.id": login_request.user_id}):
        success = asyncio.run(state.session.login(login_request.user_id, login_request.credentials))

    if not success:
        return jsonify({"success": False, "message": t("login.error")}), 401

    user = state.session.current_user()
    return jsonify({
        "success": True,
        "redirect": HOME_ROUTE,
        "user": present_user(user, state)
    })


@auth_bp.post('/logout')
def logout():
    """End the session; signing out without a session is a no-op."""
    state = get_app_state()
    state.session.logout()
    return jsonify({"success": True, "redirect": LOGIN_ROUTE})
