# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Enumeration types for the MekarMap reporting core.
"""

from enum import Enum


class UserRole(str, Enum):
    """Roles determining report visibility and transition rights."""
    RESIDENT = "Resident"
    GOVERNMENT_OFFICIAL = "GovernmentOfficial"
    ADMINISTRATOR = "Administrator"


class Language(str, Enum):
    """Supported interface languages."""
    INDONESIAN = "id"
    SUNDANESE = "su"
    ENGLISH = "en"


class ReportStatus(str, Enum):
    """Report triage status enumeration."""
    SUBMITTED = "Submitted"
    VERIFIED = "Verified"
    IN_PROGRESS = "InProgress"
    RESOLVED = "Resolved"


class QueueEntryKind(str, Enum):
    """Kinds of writes buffered in the offline queue."""
    REPORT = "report"


class LookupStatus(str, Enum):
    """Outcome of a storage, record or translation lookup."""
    OK = "ok"
    NOT_FOUND = "not_found"
    CORRUPT = "corrupt"
    UNAVAILABLE = "unavailable"


class SubmitOutcome(str, Enum):
    """Where a submitted write ended up."""
    COMMITTED = "committed"
    QUEUED = "queued"
