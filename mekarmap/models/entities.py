# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Core entity models for the MekarMap reporting core.
"""

from datetime import datetime, timezone
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator
from .base import BaseRecord
from .enums import UserRole, Language, ReportStatus, QueueEntryKind


class User(BaseRecord):
    """Authenticated user as held in the session (never carries credentials)."""

    user_id: str = Field(..., alias="userID", min_length=1, description="Unique user identifier")
    name: str = Field(..., description="Display name")
    role: UserRole = Field(..., description="Role driving visibility and transition rights")
    language_pref: Language = Field(..., alias="languagePref", description="Preferred language")
    reward_points: Optional[int] = Field(None, alias="rewardPoints", ge=0, description="Resident reward points")

    @field_validator('language_pref')
    @classmethod
    def validate_language_pref(cls, v):
        """Users are provisioned with a regional language preference."""
        if v not in (Language.INDONESIAN, Language.SUNDANESE):
            raise ValueError('Language preference must be "id" or "su"')
        return v

    def is_resident(self) -> bool:
        """Check if the user files reports rather than triaging them."""
        return self.role == UserRole.RESIDENT

    def has_reward_points(self) -> bool:
        """Check if the user's role carries a reward-points field."""
        return self.reward_points is not None


class UserRecord(User):
    """User as provisioned in the fixture and stored in the users collection."""

    credentials: str = Field(..., description="Plaintext credential from the provisioning fixture")

    def to_session_user(self) -> User:
        """Strip the credential before the user is placed in the session."""
        return User.model_validate(self.model_dump(by_alias=True, exclude={"credentials"}))


class GeoPoint(BaseModel):
    """WGS84 coordinate pair."""

    lat: float = Field(..., ge=-90, le=90, description="Latitude")
    lon: float = Field(..., ge=-180, le=180, description="Longitude")


class Report(BaseRecord):
    """Citizen-submitted issue report."""

    report_id: str = Field(..., alias="reportID", min_length=1, description="Time-derived report token")
    user_id: str = Field(..., alias="userID", description="Owning reporter")
    type: str = Field(..., description="Report type catalog identifier")
    description: str = Field(..., description="Issue description")
    geo_point: GeoPoint = Field(..., alias="geoPoint", description="Report location")
    photos: List[str] = Field(default_factory=list, description="Opaque photo references")
    timestamp: datetime = Field(..., description="Creation instant")
    status: ReportStatus = Field(default=ReportStatus.SUBMITTED, description="Triage status")
    is_private: bool = Field(default=False, alias="isPrivate", description="Display-only privacy label")

    @field_validator('description')
    @classmethod
    def validate_description(cls, v):
        """Validate report description."""
        if not v.strip():
            raise ValueError('Report description cannot be empty')
        return v

    @field_validator('timestamp')
    @classmethod
    def validate_timestamp(cls, v):
        """Naive timestamps are taken as UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v


class OfflineQueueEntry(BaseRecord):
    """Pending write buffered while offline."""

    kind: QueueEntryKind = Field(default=QueueEntryKind.REPORT, alias="type", description="Entry kind")
    payload: Report = Field(..., alias="data", description="Buffered report")


class ReportType(BaseModel):
    """Entry of the report-type catalog."""

    id: str = Field(..., description="Type identifier")
    name_id: str = Field(..., description="Localization key of the type name")


class TutorialStep(BaseModel):
    """Step of the first-run tutorial."""

    icon: str = Field(..., description="Icon name")
    text_id: str = Field(..., description="Localization key of the step title")
    content_id: str = Field(..., description="Localization key of the step body")
    audio_id: str = Field(..., description="Audio narration reference")
