# SPDX-License-Identifier: Apache-2.0

"""
Report persistence and workflow on top of the record store.

Reads go through the visibility policy, new reports go through the offline
queue manager, and status transitions are checked against the triage rules
before anything is written.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Set
from pydantic import ValidationError
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from ..domain import reports as report_domain
from ..domain import visibility
from ..models.entities import Report, User
from ..models.enums import QueueEntryKind, ReportStatus, SubmitOutcome
from ..models.requests import ReportDraft
from ..middleware.error_handler import ValidationException
from .record_store import RecordStore, RecordLookup
from .offline import OfflineQueueManager

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)


@dataclass
class SubmissionResult:
    """Result of submitting a report draft."""
    success: bool
    outcome: Optional[SubmitOutcome] = None
    report: Optional[Report] = None
    errors: List[str] = field(default_factory=list)

    @property
    def message_key(self) -> Optional[str]:
        if self.outcome == SubmitOutcome.QUEUED:
            return "report_form.offline_saved"
        if self.outcome == SubmitOutcome.COMMITTED:
            return "report_form.success"
        return None


@dataclass
class TransitionResult:
    """Result of a status transition."""
    success: bool
    report: Optional[Report] = None
    reason: Optional[str] = None


class ReportService:
    """Report operations used by the view layer."""

    def __init__(self, record_store: RecordStore, offline_queue: OfflineQueueManager):
        self.record_store = record_store
        self.offline_queue = offline_queue

    # Persistence

    def get_local_reports(self) -> List[Report]:
        """Every stored report in insertion order; invalid records are skipped."""
        reports = []
        for record in self.record_store.load_all(RecordStore.REPORTS):
            try:
                reports.append(Report.from_record(record))
            except ValidationError as e:
                logger.error(
                    "Skipping invalid stored report",
                    extra={"report_id": record.get("reportID"), "validation_errors": str(e)}
                )
        return reports

    def lookup_report(self, report_id: str) -> RecordLookup:
        return self.record_store.find(RecordStore.REPORTS, report_id)

    def find_report(self, report_id: str) -> Optional[Report]:
        """Report with the given id, or None."""
        lookup = self.lookup_report(report_id)
        if not lookup.found:
            return None
        try:
            return Report.from_record(lookup.record)
        except ValidationError as e:
            logger.error("Stored report is invalid", extra={"report_id": report_id, "validation_errors": str(e)})
            return None

    def save_report(self, report: Report) -> None:
        """Append a report directly to the reports collection."""
        self.record_store.append(RecordStore.REPORTS, report.to_record())

    def update_report(self, report_id: str, updates: Dict[str, Any]) -> bool:
        """
        Merge field updates into a stored report.

        Args:
            report_id: Report identifier
            updates: Stored (camelCase) field names and their new values

        Returns:
            True if the report existed and was updated

        Raises:
            ValidationException: If the update touches creation-time fields, moves
                the report back to Submitted or leaves it invalid
        """
        blocked = report_domain.immutable_fields_in(updates)
        if blocked:
            raise ValidationException(
                f"Fields cannot be changed after creation: {', '.join(blocked)}",
                [{"field": name, "message": "Immutable after creation"} for name in blocked]
            )

        lookup = self.lookup_report(report_id)
        if not lookup.found:
            return False

        normalized = {key: getattr(value, "value", value) for key, value in updates.items()}
        if (normalized.get("status") == ReportStatus.SUBMITTED.value
                and lookup.record.get("status") != ReportStatus.SUBMITTED.value):
            raise ValidationException(
                f"Report {report_id} cannot move back to {ReportStatus.SUBMITTED.value}",
                [{"field": "status", "message": "Cannot move back to Submitted"}]
            )

        try:
            merged = Report.from_record({**lookup.record, **normalized})
        except ValidationError as e:
            raise ValidationException(
                f"Invalid report update for {report_id}",
                e.errors(include_url=False, include_context=False)
            ) from e

        return self.record_store.update(RecordStore.REPORTS, report_id, merged.to_record())

    def taken_report_ids(self) -> Set[str]:
        """Identifiers of stored reports and of reports waiting in the offline queue."""
        stored = {record.get("reportID") for record in self.record_store.load_all(RecordStore.REPORTS)}
        queued = {entry.payload.report_id for entry in self.offline_queue.pending()
                  if entry.kind == QueueEntryKind.REPORT}
        return stored | queued

    def delete_report(self, report_id: str) -> bool:
        return self.record_store.remove_by_key(RecordStore.REPORTS, report_id)

    def reset_reports(self) -> None:
        """Replace the reports collection with the seed dataset."""
        self.record_store.reset_to_seed(RecordStore.REPORTS)

    # Views

    def list_for(self, user: User) -> List[Report]:
        return visibility.list_reports_for(user, self.get_local_reports())

    def recent_for(self, user: User) -> List[Report]:
        return visibility.recent_reports_for(user, self.get_local_reports())

    def map_reports(self) -> List[Report]:
        return visibility.map_reports(self.get_local_reports())

    # Workflow

    def submit_draft(self, draft: ReportDraft, user: Optional[User],
                     now: Optional[datetime] = None) -> SubmissionResult:
        """
        Validate a draft and submit it through the offline queue manager.

        Returns:
            SubmissionResult; on validation failure nothing is saved
        """
        with tracer.start_as_current_span("report.submit") as span:
            validation = report_domain.validate_report_draft(draft)
            if not validation.is_valid:
                span.set_status(Status(StatusCode.ERROR, "Invalid draft"))
                return SubmissionResult(success=False, errors=validation.errors)

            report = report_domain.build_report(draft, user, now, self.taken_report_ids())
            outcome = self.offline_queue.submit_report(report)

            span.set_attributes({
                "report.id": report.report_id,
                "report.outcome": outcome.value
            })
            return SubmissionResult(success=True, outcome=outcome, report=report)

    def transition_status(self, user: Optional[User], report_id: str,
                          target: ReportStatus) -> TransitionResult:
        """
        Move a report to a new status if the user's role allows it.

        A refused transition leaves the stored report untouched.
        """
        with tracer.start_as_current_span(
            "report.transition",
            attributes={"report.id": report_id, "report.target": getattr(target, "value", target)}
        ) as span:
            report = self.find_report(report_id)
            check = visibility.check_status_transition(user, report, target)

            if not check.allowed:
                span.set_status(Status(StatusCode.ERROR, check.reason))
                logger.warning(
                    "Status transition refused",
                    extra={
                        "report_id": report_id,
                        "user_id": user.user_id if user else None,
                        "reason": check.reason
                    }
                )
                return TransitionResult(success=False, report=report, reason=check.reason)

            if not self.update_report(report_id, {"status": target}):
                return TransitionResult(success=False, reason="Report not found")

            updated = self.find_report(report_id)
            logger.info(
                "Report status updated",
                extra={"report_id": report_id, "user_id": user.user_id, "status": updated.status}
            )
            span.set_status(Status(StatusCode.OK))
            return TransitionResult(success=True, report=updated)
