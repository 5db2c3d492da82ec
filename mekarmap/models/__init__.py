# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Models package - Pydantic schemas and data models for the MekarMap core.
"""

# Base models
from .base import BaseRecord, BaseRequest

# Enumerations
from .enums import (
    UserRole,
    Language,
    ReportStatus,
    QueueEntryKind,
    LookupStatus,
    SubmitOutcome
)

# Core entities
from .entities import (
    User,
    UserRecord,
    GeoPoint,
    Report,
    OfflineQueueEntry,
    ReportType,
    TutorialStep
)

# Request models
from .requests import (
    LoginRequest,
    ReportDraft,
    UpdateStatusRequest,
    ChangeLanguageRequest,
    UpdateProfileRequest,
    ConnectivityRequest
)

__all__ = [
    # Base models
    "BaseRecord",
    "BaseRequest",

    # Enumerations
    "UserRole",
    "Language",
    "ReportStatus",
    "QueueEntryKind",
    "LookupStatus",
    "SubmitOutcome",

    # Core entities
    "User",
    "UserRecord",
    "GeoPoint",
    "Report",
    "OfflineQueueEntry",
    "ReportType",
    "TutorialStep",

    # Request models
    "LoginRequest",
    "ReportDraft",
    "UpdateStatusRequest",
    "ChangeLanguageRequest",
    "UpdateProfileRequest",
    "ConnectivityRequest"
]
