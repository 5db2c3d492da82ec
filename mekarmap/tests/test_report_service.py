# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Tests for the report service.
"""

import pytest
from datetime import datetime, timezone

from mekarmap.domain import reports as report_domain
from mekarmap.middleware.error_handler import ValidationException
from mekarmap.models.entities import GeoPoint
from mekarmap.models.enums import ReportStatus, SubmitOutcome
from mekarmap.models.requests import ReportDraft
from mekarmap.services.record_store import RecordStore
from mekarmap.services.storage import Slots

SEEDED_ID = "rep1714550400000"


class TestPersistence:
    """Test report reads and writes."""

    def test_get_local_reports(self, report_service):
        reports = report_service.get_local_reports()

        assert len(reports) == 5
        assert reports[0].report_id == SEEDED_ID

    def test_save_then_find(self, report_service, make_report):
        """Test that a saved report is found with the same fields."""
        report = make_report(report_id="rep42")

        report_service.save_report(report)

        assert report_service.find_report("rep42") == report

    def test_find_missing(self, report_service):
        assert report_service.find_report("rep0") is None

    def test_update_then_find(self, report_service):
        """Test that an update is reflected on the next read."""
        assert report_service.update_report(SEEDED_ID, {"description": "Hole repaired partially"}) is True

        assert report_service.find_report(SEEDED_ID).description == "Hole repaired partially"

    def test_update_missing_report(self, report_service):
        assert report_service.update_report("rep0", {"description": "x"}) is False

    @pytest.mark.parametrize("field", ["reportID", "userID", "timestamp"])
    def test_creation_fields_are_immutable(self, report_service, field):
        """Test that creation-time fields cannot be updated."""
        with pytest.raises(ValidationException) as exc_info:
            report_service.update_report(SEEDED_ID, {field: "changed"})

        assert exc_info.value.validation_errors[0]["field"] == field
        assert report_service.find_report(SEEDED_ID).user_id == "res001"

    def test_status_cannot_move_back_to_submitted(self, report_service):
        """Test that a triaged report cannot be updated back to Submitted."""
        with pytest.raises(ValidationException) as exc_info:
            report_service.update_report(SEEDED_ID, {"status": ReportStatus.SUBMITTED})

        assert exc_info.value.validation_errors[0]["field"] == "status"
        assert report_service.find_report(SEEDED_ID).status == ReportStatus.VERIFIED

    def test_status_update_forward(self, report_service):
        assert report_service.update_report(SEEDED_ID, {"status": "Resolved"}) is True

        assert report_service.find_report(SEEDED_ID).status == ReportStatus.RESOLVED

    def test_invalid_update_is_not_saved(self, report_service):
        """Test that an update leaving the report invalid is refused."""
        with pytest.raises(ValidationException):
            report_service.update_report(SEEDED_ID, {"description": ""})

        assert report_service.find_report(SEEDED_ID).description

    def test_delete_report(self, report_service):
        assert report_service.delete_report(SEEDED_ID) is True
        assert report_service.find_report(SEEDED_ID) is None
        assert report_service.delete_report(SEEDED_ID) is False

    def test_reset_reports_is_idempotent(self, report_service, make_report):
        """Test that resetting twice equals resetting once."""
        report_service.save_report(make_report(report_id="rep42"))

        report_service.reset_reports()
        once = report_service.get_local_reports()
        report_service.reset_reports()

        assert report_service.get_local_reports() == once
        assert report_service.find_report("rep42") is None

    def test_invalid_stored_report_is_skipped(self, report_service, storage, record_store):
        """Test that one bad record does not hide the others."""
        records = record_store.load_all(RecordStore.REPORTS)
        records.append({"reportID": "broken"})
        storage.write(Slots.REPORTS, records)

        assert len(report_service.get_local_reports()) == 5
        assert report_service.find_report("broken") is None


class TestViews:
    """Test the visibility-aware reads."""

    def test_resident_list(self, report_service, resident):
        reports = report_service.list_for(resident)

        assert len(reports) == 3
        assert [r.timestamp for r in reports] == sorted((r.timestamp for r in reports), reverse=True)

    def test_official_list(self, report_service, official):
        assert len(report_service.list_for(official)) == 5

    def test_recent(self, report_service, other_resident):
        assert [r.user_id for r in report_service.recent_for(other_resident)] == ["res002", "res002"]

    def test_map(self, report_service):
        assert len(report_service.map_reports()) == 5


class TestSubmitDraft:
    """Test submitting report drafts."""

    def draft(self, **overrides):
        fields = {"description": "Fallen tree blocks the road", "geoPoint": {"lat": -6.9, "lon": 107.6}}
        fields.update(overrides)
        return ReportDraft.model_validate(fields)

    def test_online_submission(self, report_service, resident):
        now = datetime(2024, 6, 1, tzinfo=timezone.utc)

        result = report_service.submit_draft(self.draft(), resident, now)

        assert result.success
        assert result.outcome == SubmitOutcome.COMMITTED
        assert result.message_key == "report_form.success"
        assert report_service.find_report(result.report.report_id).user_id == "res001"

    def test_same_instant_submissions_get_distinct_ids(self, report_service, resident):
        """Test that two drafts submitted in the same millisecond can both be triaged."""
        now = datetime(2024, 6, 1, 10, 0, 0, 123000, tzinfo=timezone.utc)

        first = report_service.submit_draft(self.draft(), resident, now)
        second = report_service.submit_draft(self.draft(description="Second tree"), resident, now)

        assert first.report.report_id == report_domain.generate_report_id(now)
        assert second.report.report_id == f"rep{int(first.report.report_id[3:]) + 1}"
        assert report_service.find_report(second.report.report_id).description == "Second tree"

    def test_queued_id_is_not_reused(self, report_service, connectivity, resident):
        """Test that an id waiting in the offline queue counts as taken."""
        now = datetime(2024, 6, 1, tzinfo=timezone.utc)
        connectivity.set_offline()
        queued = report_service.submit_draft(self.draft(), resident, now)
        connectivity.set_online()

        committed = report_service.submit_draft(self.draft(), resident, now)

        assert queued.outcome == SubmitOutcome.QUEUED
        assert committed.report.report_id != queued.report.report_id

    def test_invalid_draft_saves_nothing(self, report_service, offline_manager, resident):
        """Test that validation failures leave no partial save."""
        result = report_service.submit_draft(self.draft(description="", geoPoint=None), resident)

        assert not result.success
        assert result.outcome is None
        assert result.message_key is None
        assert len(result.errors) == 2
        assert len(report_service.get_local_reports()) == 5
        assert offline_manager.pending_count == 0

    @pytest.mark.asyncio
    async def test_offline_submission_appears_after_sync(self, report_service, offline_manager,
                                                         connectivity, resident):
        """Test that a queued report is only visible after sync."""
        connectivity.set_offline()

        result = report_service.submit_draft(self.draft(), resident)

        assert result.outcome == SubmitOutcome.QUEUED
        assert result.message_key == "report_form.offline_saved"
        assert report_service.find_report(result.report.report_id) is None

        await offline_manager.sync()

        assert report_service.find_report(result.report.report_id) is not None
        assert offline_manager.pending_count == 0


class TestTransitions:
    """Test status transitions."""

    def test_official_transition(self, report_service, official):
        result = report_service.transition_status(official, SEEDED_ID, ReportStatus.RESOLVED)

        assert result.success
        assert result.report.status == ReportStatus.RESOLVED
        assert report_service.find_report(SEEDED_ID).status == ReportStatus.RESOLVED

    def test_resident_transition_has_no_effect(self, report_service, resident):
        """Test that a refused transition leaves storage untouched."""
        before = report_service.get_local_reports()

        result = report_service.transition_status(resident, SEEDED_ID, ReportStatus.RESOLVED)

        assert not result.success
        assert result.reason
        assert report_service.get_local_reports() == before

    def test_same_status_refused(self, report_service, administrator):
        result = report_service.transition_status(administrator, SEEDED_ID, ReportStatus.VERIFIED)

        assert not result.success
        assert result.report.status == ReportStatus.VERIFIED

    def test_missing_report(self, report_service, official):
        result = report_service.transition_status(official, "rep0", ReportStatus.VERIFIED)

        assert not result.success
        assert result.report is None
