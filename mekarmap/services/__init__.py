# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Services package - Storage, session, offline queue, localization and reports.
"""

from .storage import StorageService, StorageError, StorageWriteError, Slots, create_storage_service
from .catalog import ReferenceCatalog, get_reference_catalog
from .record_store import RecordStore, RecordLookup, CollectionRead, UnknownCollectionError

__all__ = [
    "StorageService",
    "StorageError",
    "StorageWriteError",
    "Slots",
    "create_storage_service",
    "ReferenceCatalog",
    "get_reference_catalog",
    "RecordStore",
    "RecordLookup",
    "CollectionRead",
    "UnknownCollectionError"
]
