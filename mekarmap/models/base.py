# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Base models with the shared serialization conventions of stored records.
"""

from typing import Any, Dict
from pydantic import BaseModel, ConfigDict


class BaseRecord(BaseModel):
    """Base for every record persisted as JSON in the local store."""

    model_config = ConfigDict(
        # Stored JSON uses camelCase, Python code uses snake_case
        populate_by_name=True,
        # Use enum values instead of enum objects
        use_enum_values=True,
        # Validate assignment
        validate_assignment=True
    )

    def to_record(self) -> Dict[str, Any]:
        """Serialize to the JSON-compatible dict stored in a collection."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    @classmethod
    def from_record(cls, record: Dict[str, Any]):
        """Build a model from a stored collection record."""
        return cls.model_validate(record)


class BaseRequest(BaseModel):
    """Base model for request bodies sent by the presentation layer."""

    model_config = ConfigDict(
        populate_by_name=True,
        use_enum_values=True,
        str_strip_whitespace=True
    )
