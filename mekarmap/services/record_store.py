# SPDX-License-Identifier: Apache-2.0

"""
Generic persistent key-to-collection store.

Each collection is a single slot holding an ordered JSON array of records.
Every write re-serializes the whole collection, which keeps the store simple
and crash-safe at the cost of O(N) writes; it is sized for the few hundred
records a single device holds.
"""

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional
from opentelemetry import trace

from ..models.enums import LookupStatus
from .storage import StorageService, Slots
from .catalog import ReferenceCatalog

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)

Record = Dict[str, Any]


class UnknownCollectionError(KeyError):
    """Raised when an operation names a collection that was never registered."""
    pass


@dataclass
class CollectionSpec:
    """Where a collection lives and how its records are keyed."""
    name: str
    slot: str
    key_field: str
    seed: Callable[[], List[Record]]


@dataclass
class CollectionRead:
    """Result of reading a whole collection."""
    status: LookupStatus
    records: List[Record] = field(default_factory=list)

    @property
    def from_seed(self) -> bool:
        return self.status != LookupStatus.OK


@dataclass
class RecordLookup:
    """Result of looking up a single record by key."""
    status: LookupStatus
    record: Optional[Record] = None

    @property
    def found(self) -> bool:
        return self.status == LookupStatus.OK


class RecordStore:
    """
    Key-to-collection store over persisted slots.

    Collections are seeded explicitly with ``initialize``; reading a collection
    that was never initialized, or whose stored data cannot be parsed, returns
    the seed dataset instead of raising.
    """

    REPORTS = "reports"
    USERS = "users"

    def __init__(self, storage: StorageService, catalog: Optional[ReferenceCatalog] = None,
                 collections: Optional[List[CollectionSpec]] = None):
        self.storage = storage
        catalog = catalog or ReferenceCatalog()
        if collections is None:
            collections = [
                CollectionSpec(self.REPORTS, Slots.REPORTS, "reportID", catalog.seed_reports),
                CollectionSpec(self.USERS, Slots.USERS, "userID", catalog.seed_users),
            ]
        self._collections = {spec.name: spec for spec in collections}

    def _spec(self, collection: str) -> CollectionSpec:
        try:
            return self._collections[collection]
        except KeyError:
            raise UnknownCollectionError(collection) from None

    def _persist(self, spec: CollectionSpec, records: List[Record]) -> None:
        self.storage.write(spec.slot, records)

    @property
    def collections(self) -> List[str]:
        return list(self._collections)

    def initialize(self, collection: Optional[str] = None) -> List[str]:
        """
        Persist the seed dataset for collections with no stored data.

        Args:
            collection: Collection to initialize, all registered ones if omitted

        Returns:
            Names of the collections that were seeded
        """
        names = [collection] if collection else self.collections
        seeded = []

        with tracer.start_as_current_span("record_store.initialize") as span:
            for name in names:
                spec = self._spec(name)
                if self.storage.exists(spec.slot):
                    continue
                self._persist(spec, spec.seed())
                seeded.append(name)
                logger.info(f"Seeded collection {name}", extra={"collection": name})

            span.set_attribute("record_store.seeded", ",".join(seeded))

        return seeded

    def read_collection(self, collection: str) -> CollectionRead:
        """
        Read every record of a collection.

        Args:
            collection: Collection name

        Returns:
            CollectionRead; on any non-OK status the records are the seed dataset
        """
        spec = self._spec(collection)
        result = self.storage.read(spec.slot)

        if result.ok:
            records = result.value
            if isinstance(records, list) and all(isinstance(r, dict) for r in records):
                return CollectionRead(LookupStatus.OK, records)
            logger.error(
                f"Stored collection {collection} has an unexpected shape, using seed data",
                extra={"collection": collection, "type": type(records).__name__}
            )
            return CollectionRead(LookupStatus.CORRUPT, spec.seed())

        if result.status == LookupStatus.NOT_FOUND:
            logger.warning(
                f"Collection {collection} read before initialization, using seed data",
                extra={"collection": collection}
            )
        else:
            logger.error(
                f"Failed to read collection {collection}, using seed data",
                extra={"collection": collection, "status": result.status.value, "error": result.error}
            )
        return CollectionRead(result.status, spec.seed())

    def load_all(self, collection: str) -> List[Record]:
        """Ordered records of a collection, in insertion order."""
        return self.read_collection(collection).records

    def find(self, collection: str, key: str) -> RecordLookup:
        """
        Look up one record by its key field.

        Args:
            collection: Collection name
            key: Value of the collection's key field

        Returns:
            RecordLookup with a copy of the record when found
        """
        spec = self._spec(collection)
        for record in self.load_all(collection):
            if record.get(spec.key_field) == key:
                return RecordLookup(LookupStatus.OK, copy.deepcopy(record))
        return RecordLookup(LookupStatus.NOT_FOUND)

    def append(self, collection: str, record: Record) -> None:
        """
        Append a record at the end of a collection.

        Raises:
            StorageWriteError: If the collection could not be persisted
        """
        spec = self._spec(collection)
        with tracer.start_as_current_span("record_store.append") as span:
            span.set_attributes({
                "record_store.collection": collection,
                "record_store.key": str(record.get(spec.key_field))
            })
            records = self.load_all(collection)
            records.append(copy.deepcopy(record))
            self._persist(spec, records)

    def update(self, collection: str, key: str, partial_fields: Record) -> bool:
        """
        Shallow-merge fields into the record with the given key.

        Returns:
            True if the record existed and was updated, False otherwise

        Raises:
            StorageWriteError: If the collection could not be persisted
        """
        spec = self._spec(collection)
        with tracer.start_as_current_span("record_store.update") as span:
            span.set_attributes({
                "record_store.collection": collection,
                "record_store.key": key
            })
            records = self.load_all(collection)

            for index, record in enumerate(records):
                if record.get(spec.key_field) == key:
                    records[index] = {**record, **copy.deepcopy(partial_fields)}
                    self._persist(spec, records)
                    span.set_attribute("record_store.result", "updated")
                    return True

            span.set_attribute("record_store.result", "not_found")
            return False

    def remove_by_key(self, collection: str, key: str) -> bool:
        """
        Remove the record with the given key.

        Returns:
            True if a record was removed, False if the key was absent

        Raises:
            StorageWriteError: If the collection could not be persisted
        """
        spec = self._spec(collection)
        records = self.load_all(collection)
        remaining = [r for r in records if r.get(spec.key_field) != key]

        if len(remaining) == len(records):
            return False

        self._persist(spec, remaining)
        return True

    def reset_to_seed(self, collection: str) -> None:
        """
        Replace a collection with its seed dataset.

        Raises:
            StorageWriteError: If the collection could not be persisted
        """
        spec = self._spec(collection)
        self._persist(spec, spec.seed())
        logger.info(f"Collection {collection} reset to seed data", extra={"collection": collection})
