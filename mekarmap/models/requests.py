# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Request models for the view endpoints.
"""

from typing import List, Optional
from pydantic import Field, field_validator
from .base import BaseRequest
from .entities import GeoPoint
from .enums import Language, ReportStatus


class LoginRequest(BaseRequest):
    """Request model for signing in."""

    user_id: str = Field("", alias="userID", description="User identifier")
    credentials: str = Field("", description="Plaintext credential")


class ReportDraft(BaseRequest):
    """
    Report form contents as submitted by the presentation layer.

    Description and location are optional here so that missing values are
    reported as inline form messages instead of request validation errors.
    """

    type: Optional[str] = Field(None, description="Report type identifier")
    description: str = Field("", description="Issue description")
    geo_point: Optional[GeoPoint] = Field(None, alias="geoPoint", description="Captured location")
    photos: List[str] = Field(default_factory=list, description="Photo references")
    is_private: bool = Field(False, alias="isPrivate", description="Privacy toggle")


class UpdateStatusRequest(BaseRequest):
    """Request model for a report status transition."""

    status: ReportStatus = Field(..., description="Target status")


class ChangeLanguageRequest(BaseRequest):
    """Request model for switching the active language."""

    language: Language = Field(..., description="Language code")


class UpdateProfileRequest(BaseRequest):
    """Request model for renaming the signed-in user."""

    name: str = Field(..., min_length=1, max_length=200, description="Display name")

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        """Validate display name."""
        if not v.strip():
            raise ValueError('Name cannot be empty')
        return v


class ConnectivityRequest(BaseRequest):
    """Network-status signal reported by the shell."""

    online: bool = Field(..., description="Whether the device currently has connectivity")
