# SPDX-License-Identifier: Apache-2.0

"""
Read-only reference datasets shipped with the package.

Seed users and reports, the report-type catalog, the tutorial steps and the
per-language string tables are loaded once from ``mekarmap/data``.
"""

import copy
import json
import logging
from functools import lru_cache
from importlib import resources
from typing import Any, Dict, List, Optional

from ..models.entities import ReportType, TutorialStep, UserRecord, Report
from ..models.enums import Language

logger = logging.getLogger(__name__)

DATA_PACKAGE = "mekarmap"
DATA_DIR = "data"


@lru_cache(maxsize=None)
def _load_json(*parts: str) -> Any:
    resource = resources.files(DATA_PACKAGE).joinpath(DATA_DIR, *parts)
    with resource.open("r", encoding="utf-8") as fh:
        return json.load(fh)


class ReferenceCatalog:
    """
    Access to the packaged fixtures.

    Every accessor returns a fresh copy so callers can mutate the result
    without touching the cached dataset.
    """

    def seed_users(self) -> List[Dict[str, Any]]:
        """Provisioning fixture for the users collection."""
        records = copy.deepcopy(_load_json("users.json"))
        for record in records:
            UserRecord.model_validate(record)
        return records

    def seed_reports(self) -> List[Dict[str, Any]]:
        """Initial contents of the reports collection."""
        records = copy.deepcopy(_load_json("reports.json"))
        for record in records:
            Report.model_validate(record)
        return records

    def report_types(self) -> List[ReportType]:
        """Report-type catalog in display order."""
        return [ReportType(**item) for item in _load_json("report_types.json")]

    def find_report_type(self, type_id: str) -> Optional[ReportType]:
        """Look up a report type by id."""
        for report_type in self.report_types():
            if report_type.id == type_id:
                return report_type
        return None

    def tutorial_steps(self) -> List[TutorialStep]:
        """Ordered tutorial steps."""
        return [TutorialStep(**item) for item in _load_json("tutorial_steps.json")]

    def string_tables(self) -> Dict[str, Dict[str, Any]]:
        """Nested key to string tables for every supported language."""
        tables = {}
        for language in Language:
            tables[language.value] = copy.deepcopy(_load_json("locales", f"{language.value}.json"))
        logger.debug("Loaded string tables", extra={"languages": sorted(tables)})
        return tables


def get_reference_catalog() -> ReferenceCatalog:
    """Factory function for the packaged catalog."""
    return ReferenceCatalog()
