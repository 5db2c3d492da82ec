# SPDX-License-Identifier: Apache-2.0

"""
Offline-first write path.

Writes commit straight to the record store while the client is online. When
the device reports no connectivity, or the user switched offline mode on,
writes are appended to a persisted FIFO queue instead. The queue is drained
only by an explicit ``sync``; regaining connectivity does not flush it.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Tuple
from pydantic import ValidationError
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from ..models.entities import OfflineQueueEntry, Report
from ..models.enums import QueueEntryKind, SubmitOutcome
from .storage import StorageService, StorageWriteError, Slots
from .record_store import RecordStore

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)

DEFAULT_SYNC_LATENCY = 1.0

ConnectivityListener = Callable[[bool], None]


class SyncError(Exception):
    """Raised when a sync stopped before the queue was drained."""

    def __init__(self, message: str, committed: int, remaining: int):
        super().__init__(message)
        self.committed = committed
        self.remaining = remaining


class ConnectivityMonitor:
    """
    Network-status signal of the device.

    The shell reports changes through ``set_online``/``set_offline``;
    interested components subscribe with ``add_listener`` and must
    ``remove_listener`` on teardown.
    """

    def __init__(self, online: bool = True):
        self._online = online
        self._listeners: List[ConnectivityListener] = []

    @property
    def is_offline(self) -> bool:
        return not self._online

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def add_listener(self, listener: ConnectivityListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_listener(self, listener: ConnectivityListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def set_online(self) -> None:
        self._update(True)

    def set_offline(self) -> None:
        self._update(False)

    def _update(self, online: bool) -> None:
        if online == self._online:
            return

        self._online = online
        logger.info("Connectivity changed", extra={"online": online})
        for listener in list(self._listeners):
            listener(online)


@dataclass
class OfflineStatus:
    """Snapshot for the offline indicator."""
    is_offline: bool
    offline_mode: bool
    pending: int

    @property
    def queueing(self) -> bool:
        return self.is_offline or self.offline_mode

    @property
    def message_key(self) -> Optional[str]:
        """Indicator message, None while online."""
        if self.offline_mode:
            return "common.offline_mode_active"
        if self.is_offline:
            return "common.offline"
        return None


class OfflineQueueManager:
    """
    Routes writes to the record store or the persisted offline queue.

    Usable as a context manager; the connectivity listener is registered on
    enter and removed on exit.
    """

    def __init__(self, storage: StorageService, record_store: RecordStore,
                 connectivity: Optional[ConnectivityMonitor] = None,
                 sync_latency: float = DEFAULT_SYNC_LATENCY):
        """
        Initialize the offline queue manager.

        Args:
            storage: Slot storage holding the queue and the offline-mode flag
            record_store: Durable destination of queued writes
            connectivity: Network-status signal, a fresh online monitor if omitted
            sync_latency: Simulated network delay of a sync, in seconds
        """
        self.storage = storage
        self.record_store = record_store
        self.connectivity = connectivity or ConnectivityMonitor()
        self.sync_latency = sync_latency
        self._sync_task: Optional[asyncio.Task] = None
        self._started = False

    # Lifecycle

    def start(self) -> None:
        """Subscribe to connectivity changes."""
        if not self._started:
            self.connectivity.add_listener(self._on_connectivity_change)
            self._started = True

    def close(self) -> None:
        """Unsubscribe from connectivity changes."""
        if self._started:
            self.connectivity.remove_listener(self._on_connectivity_change)
            self._started = False

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    def _on_connectivity_change(self, online: bool) -> None:
        pending = self.pending_count
        if online and pending:
            logger.info("Back online with pending items, waiting for explicit sync", extra={"pending": pending})

    # State

    @property
    def is_offline(self) -> bool:
        return self.connectivity.is_offline

    @property
    def offline_mode(self) -> bool:
        return bool(self.storage.read_value(Slots.OFFLINE_MODE, False))

    @property
    def should_queue(self) -> bool:
        """Either flag routes writes into the queue."""
        return self.is_offline or self.offline_mode

    def toggle_offline_mode(self) -> bool:
        """
        Flip the user-controlled offline flag.

        Returns:
            The new flag value
        """
        mode = not self.offline_mode
        self.storage.write(Slots.OFFLINE_MODE, mode)
        logger.info("Offline mode toggled", extra={"offline_mode": mode})
        return mode

    def status(self) -> OfflineStatus:
        return OfflineStatus(
            is_offline=self.is_offline,
            offline_mode=self.offline_mode,
            pending=self.pending_count
        )

    # Queue

    def _raw_queue(self) -> List[Any]:
        raw = self.storage.read_value(Slots.OFFLINE_QUEUE, [])
        if not isinstance(raw, list):
            logger.error("Stored offline queue has an unexpected shape, ignoring it")
            return []
        return raw

    def _read_queue(self) -> List[Tuple[Any, Optional[OfflineQueueEntry]]]:
        """Stored items paired with their parsed entry, None when unreadable."""
        items = []
        for item in self._raw_queue():
            try:
                items.append((item, OfflineQueueEntry.model_validate(item)))
            except ValidationError as e:
                logger.error("Skipping unreadable offline queue entry", extra={"validation_errors": str(e)})
                items.append((item, None))
        return items

    def pending(self) -> List[OfflineQueueEntry]:
        """
        Readable queued entries in FIFO order.

        Unreadable items are skipped here but stay in the stored queue.
        """
        return [entry for _, entry in self._read_queue() if entry is not None]

    @property
    def pending_count(self) -> int:
        return len(self.pending())

    def _save_queue(self, items: List[Any]) -> None:
        self.storage.write(Slots.OFFLINE_QUEUE, items)

    def enqueue(self, entry: OfflineQueueEntry) -> None:
        """Append an entry at the tail of the queue."""
        items = self._raw_queue()
        items.append(entry.to_record())
        self._save_queue(items)

    def clear(self) -> None:
        """Discard every queued item without committing it."""
        self._save_queue([])

    # Writes

    def submit_report(self, report: Report) -> SubmitOutcome:
        """
        Commit a report, or queue it while offline.

        Raises:
            StorageWriteError: If neither the store nor the queue could be written
        """
        with tracer.start_as_current_span(
            "offline.submit_report",
            attributes={"report.id": report.report_id}
        ) as span:
            if self.should_queue:
                self.enqueue(OfflineQueueEntry(kind=QueueEntryKind.REPORT, payload=report))
                span.set_attribute("offline.outcome", SubmitOutcome.QUEUED.value)
                logger.info("Report queued for sync", extra={"report_id": report.report_id})
                return SubmitOutcome.QUEUED

            self.record_store.append(RecordStore.REPORTS, report.to_record())
            span.set_attribute("offline.outcome", SubmitOutcome.COMMITTED.value)
            logger.info("Report committed", extra={"report_id": report.report_id})
            return SubmitOutcome.COMMITTED

    def _commit(self, entry: OfflineQueueEntry) -> None:
        if entry.kind != QueueEntryKind.REPORT:
            logger.warning("Skipping offline queue entry of unknown kind", extra={"kind": entry.kind})
            return

        report_id = entry.payload.report_id
        if self.record_store.find(RecordStore.REPORTS, report_id).found:
            logger.warning("Queued report is already committed, skipping it", extra={"report_id": report_id})
            return
        self.record_store.append(RecordStore.REPORTS, entry.payload.to_record())

    def _interrupted(self, span, error: StorageWriteError, committed: int, remaining: int) -> SyncError:
        span.set_status(Status(StatusCode.ERROR, "Sync interrupted"))
        logger.error(
            "Sync interrupted by storage failure",
            extra={"committed": committed, "remaining": remaining, "error": str(error)}
        )
        return SyncError(str(error), committed, remaining)

    async def _flush(self) -> int:
        with tracer.start_as_current_span("offline.sync") as span:
            await asyncio.sleep(self.sync_latency)

            items = self._read_queue()
            unreadable = [item for item, entry in items if entry is None]
            readable = [(item, entry) for item, entry in items if entry is not None]
            committed = 0

            for index, (_, entry) in enumerate(readable):
                try:
                    self._commit(entry)
                except StorageWriteError as e:
                    raise self._interrupted(span, e, committed, len(readable) - index) from e
                committed += 1

                # The queue shrinks after every commit
                try:
                    self._save_queue(unreadable + [item for item, _ in readable[index + 1:]])
                except StorageWriteError as e:
                    raise self._interrupted(span, e, committed, len(readable) - index - 1) from e

            span.set_attribute("offline.committed", committed)
            span.set_status(Status(StatusCode.OK))
            logger.info("Offline queue synced", extra={"committed": committed, "unreadable": len(unreadable)})
            return committed

    async def sync(self) -> int:
        """
        Commit every queued entry into the record store and empty the queue.

        A sync requested while another is in flight shares its result.

        Returns:
            Number of entries committed

        Raises:
            SyncError: If a storage failure stopped the sync; entries committed
                before the failure are never committed twice
        """
        if self._sync_task is None or self._sync_task.done():
            self._sync_task = asyncio.ensure_future(self._flush())
        else:
            logger.info("Sync already in progress, awaiting it")
        return await self._sync_task
