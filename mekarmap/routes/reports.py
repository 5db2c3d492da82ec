# SPDX-License-Identifier: Apache-2.0

"""
Report list, creation, detail and status-transition endpoints.
"""

import logging
from flask import jsonify
from flask_openapi3 import APIBlueprint, Tag
from pydantic import BaseModel, Field
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from ..domain.visibility import can_view_report, can_create_report, TRIAGE_ROLES
from ..models.enums import UserRole, SubmitOutcome
from ..models.requests import ReportDraft, UpdateStatusRequest
from ..middleware.auth import require_session, get_current_user
from ..middleware.error_handler import NotFoundException, AuthorizationException, ConflictException
from ..middleware.validation import validate_json
from ..utils.context import get_app_state
from .presenters import present_report, present_reports, present_report_detail

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

reports_tag = Tag(name="Reports", description="Issue report workflow")
reports_bp = APIBlueprint(
    'reports',
    __name__,
    url_prefix='/reports',
    abp_tags=[reports_tag]
)


class ReportPath(BaseModel):
    report_id: str = Field(..., description="Report identifier")


@reports_bp.get('')
@require_session()
def list_reports():
    """Reports visible to the signed-in user, newest first."""
    state = get_app_state()
    user = get_current_user()
    reports = state.reports.list_for(user)

    return jsonify({
        "view": "reports",
        "title": state.localization.t("reports.title"),
        "reports": present_reports(reports, state),
        "empty": state.localization.t("reports.empty") if not reports else None,
        "canCreateReport": can_create_report(user).allowed
    })


@reports_bp.get('/create')
@require_session(roles=[UserRole.RESIDENT])
def report_form():
    """Report form with the report-type catalog."""
    state = get_app_state()
    t = state.localization.t

    return jsonify({
        "view": "report_create",
        "title": t("report_form.title"),
        "reportTypes": [
            {"id": report_type.id, "label": t(report_type.name_id)}
            for report_type in state.catalog.report_types()
        ],
        "offline": state.offline.should_queue
    })


@reports_bp.post('/create')
@require_session(roles=[UserRole.RESIDENT])
@validate_json(ReportDraft)
def create_report(draft: ReportDraft):
    """
    Submit a new report.

    Returns 201 when the report was committed, 202 when it was queued for a
    later sync and 400 with the form messages when the draft is incomplete.
    """
    state = get_app_state()
    t = state.localization.t

    result = state.reports.submit_draft(draft, get_current_user())
    if not result.success:
        return jsonify({
            "success": False,
            "errors": [{"key": key, "message": t(key)} for key in result.errors]
        }), 400

    status_code = 202 if result.outcome == SubmitOutcome.QUEUED else 201
    return jsonify({
        "success": True,
        "outcome": result.outcome.value,
        "message": t(result.message_key),
        "report": present_report(result.report, state)
    }), status_code


@reports_bp.get('/<report_id>')
@require_session()
def report_detail(path: ReportPath):
    """Report detail with the status actions available to the user."""
    state = get_app_state()
    user = get_current_user()

    report = state.reports.find_report(path.report_id)
    if report is None:
        raise NotFoundException(f"Report {path.report_id} not found", "reports.not_found")

    access = can_view_report(user, report)
    if not access.allowed:
        raise AuthorizationException(access.reason)

    return jsonify(present_report_detail(report, user, state))


@reports_bp.post('/<report_id>/status')
@require_session(roles=TRIAGE_ROLES)
@validate_json(UpdateStatusRequest)
def update_status(status_request: UpdateStatusRequest, path: ReportPath):
    """
    Move a report to a new status.

    Roles that cannot triage are redirected home. An unknown report gets 404
    and a target that is not a valid next status 409; the report is left
    unchanged.
    """
    state = get_app_state()
    user = get_current_user()
    t = state.localization.t

    with tracer.start_as_current_span("reports.update_status") as span:
        result = state.reports.transition_status(user, path.report_id, status_request.status)

        if not result.success:
            span.set_status(Status(StatusCode.ERROR, result.reason))
            if result.report is None:
                raise NotFoundException(f"Report {path.report_id} not found", "reports.not_found")
            raise ConflictException(result.reason)

        return jsonify({
            "success": True,
            "message": t("common.status_updated"),
            **present_report_detail(result.report, user, state)
        })
