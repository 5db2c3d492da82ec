# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Unit tests for Pydantic models.
"""

import pytest
from datetime import datetime, timezone
from pydantic import ValidationError

from mekarmap.models.entities import User, UserRecord, GeoPoint, Report, OfflineQueueEntry
from mekarmap.models.enums import ReportStatus, UserRole, QueueEntryKind
from mekarmap.models.requests import (
    LoginRequest, ReportDraft, UpdateStatusRequest, ChangeLanguageRequest, UpdateProfileRequest
)


class TestUserModel:
    """Test User model validation."""

    def test_user_from_stored_record(self):
        """Test building a user from camelCase stored fields."""
        user = User.from_record({
            "userID": "res001",
            "name": "Budi Santoso",
            "role": "Resident",
            "languagePref": "id",
            "rewardPoints": 120
        })

        assert user.user_id == "res001"
        assert user.role == UserRole.RESIDENT
        assert user.is_resident()
        assert user.has_reward_points()

    def test_official_has_no_reward_points(self):
        """Test that reward points are optional."""
        user = User(userID="gov001", name="Ahmad", role="GovernmentOfficial", languagePref="id")

        assert not user.is_resident()
        assert not user.has_reward_points()
        assert "rewardPoints" not in user.to_record()

    def test_language_pref_must_be_regional(self):
        """Test that English is not a provisioned language preference."""
        with pytest.raises(ValidationError) as exc_info:
            User(userID="u1", name="Test", role="Resident", languagePref="en")

        assert 'Language preference must be "id" or "su"' in str(exc_info.value)

    def test_negative_reward_points_rejected(self):
        """Test reward points lower bound."""
        with pytest.raises(ValidationError):
            User(userID="u1", name="Test", role="Resident", languagePref="id", rewardPoints=-1)

    def test_unknown_role_rejected(self):
        """Test role enumeration."""
        with pytest.raises(ValidationError):
            User(userID="u1", name="Test", role="Mayor", languagePref="id")

    def test_session_user_drops_credentials(self):
        """Test that the session copy never carries the credential."""
        record = UserRecord.from_record({
            "userID": "res001",
            "name": "Budi Santoso",
            "role": "Resident",
            "languagePref": "id",
            "credentials": "warga123",
            "rewardPoints": 120
        })

        session_user = record.to_session_user()

        assert type(session_user) is User
        assert "credentials" not in session_user.to_record()
        assert session_user.reward_points == 120


class TestReportModel:
    """Test Report model validation."""

    def test_report_round_trips_through_record(self, make_report):
        """Test the stored shape of a report."""
        report = make_report(is_private=True, photos=["photo-1"])

        record = report.to_record()

        assert record["reportID"] == "rep1"
        assert record["userID"] == "res001"
        assert record["geoPoint"] == {"lat": -6.9175, "lon": 107.6191}
        assert record["status"] == "Submitted"
        assert record["isPrivate"] is True
        assert record["timestamp"].startswith("2024-05-01T08:00:00")
        assert Report.from_record(record) == report

    def test_empty_description_rejected(self, make_report):
        """Test that a report needs a description."""
        with pytest.raises(ValidationError) as exc_info:
            make_report(description="   ")

        assert "Report description cannot be empty" in str(exc_info.value)

    def test_naive_timestamp_is_utc(self, make_report):
        """Test timestamp normalization."""
        report = make_report(timestamp=datetime(2024, 5, 1, 8, 0))

        assert report.timestamp.tzinfo == timezone.utc

    def test_status_defaults_to_submitted(self):
        """Test default status."""
        report = Report(
            reportID="rep1",
            userID="res001",
            type="other",
            description="Broken bench",
            geoPoint={"lat": 0, "lon": 0},
            timestamp="2024-05-01T08:00:00Z"
        )

        assert report.status == ReportStatus.SUBMITTED
        assert report.is_private is False
        assert report.photos == []

    def test_invalid_status_assignment_rejected(self, make_report):
        """Test that assignment is validated."""
        report = make_report()

        with pytest.raises(ValidationError):
            report.status = "Closed"

    @pytest.mark.parametrize("lat,lon", [(91, 0), (-91, 0), (0, 181), (0, -181)])
    def test_geo_point_bounds(self, lat, lon):
        """Test coordinate ranges."""
        with pytest.raises(ValidationError):
            GeoPoint(lat=lat, lon=lon)


class TestOfflineQueueEntry:
    """Test the persisted queue entry shape."""

    def test_entry_wire_format(self, make_report):
        """Test that entries are stored as type/data pairs."""
        entry = OfflineQueueEntry(kind=QueueEntryKind.REPORT, payload=make_report())

        record = entry.to_record()

        assert record["type"] == "report"
        assert record["data"]["reportID"] == "rep1"
        assert OfflineQueueEntry.from_record(record).payload.report_id == "rep1"


class TestRequestModels:
    """Test request body models."""

    def test_login_request_strips_whitespace(self):
        """Test login body parsing."""
        login = LoginRequest.model_validate({"userID": " res001 ", "credentials": "warga123"})

        assert login.user_id == "res001"
        assert login.credentials == "warga123"

    def test_empty_draft_is_parseable(self):
        """Test that incomplete drafts reach form validation."""
        draft = ReportDraft.model_validate({})

        assert draft.type is None
        assert draft.description == ""
        assert draft.geo_point is None
        assert draft.is_private is False

    def test_status_request_rejects_unknown_status(self):
        """Test status enumeration on requests."""
        assert UpdateStatusRequest(status="Resolved").status == "Resolved"

        with pytest.raises(ValidationError):
            UpdateStatusRequest(status="Closed")

    def test_language_request_accepts_english(self):
        """Test that the interface language may be English."""
        assert ChangeLanguageRequest(language="en").language == "en"

        with pytest.raises(ValidationError):
            ChangeLanguageRequest(language="fr")

    def test_profile_name_cannot_be_blank(self):
        """Test profile name validation."""
        with pytest.raises(ValidationError):
            UpdateProfileRequest(name="   ")
