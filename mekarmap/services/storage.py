# SPDX-License-Identifier: Apache-2.0

"""
Persisted keyed slots backed by Redis.

Every slot holds one JSON document that is read and replaced whole. Reads never
raise: the outcome is reported through ``SlotRead.status`` so callers can fall
back to a safe default. Writes raise ``StorageWriteError`` when the value could
not be persisted.
"""

import os
import json
import logging
from dataclasses import dataclass
from typing import Any, List, Optional
import redis
from opentelemetry import trace

from ..models.enums import LookupStatus

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Base class for storage failures."""
    pass


class StorageWriteError(StorageError):
    """Raised when a slot could not be written or removed."""
    pass


class Slots:
    """Names of the persisted keyed slots."""
    CURRENT_USER = "current-user"
    OFFLINE_MODE = "offline-mode-flag"
    OFFLINE_QUEUE = "offline-queue"
    ACTIVE_LANGUAGE = "active-language"
    REPORTS = "reports-collection"
    USERS = "users-collection"
    FIRST_RUN = "first-run-flag"
    ASSET_CACHES = "asset-caches"


@dataclass
class SlotRead:
    """Result of reading a slot."""
    status: LookupStatus
    value: Any = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == LookupStatus.OK


class StorageService:
    """
    Key to JSON blob storage on a redis-py client.

    Keys are prefixed with the configured namespace so several clients can share
    one Redis database.
    """

    def __init__(self, redis_url: Optional[str] = None, namespace: Optional[str] = None,
                 client: Optional[Any] = None):
        """
        Initialize the storage service.

        Args:
            redis_url: Redis connection URL (redis://host:port/db)
            namespace: Prefix applied to every slot key
            client: Pre-built redis client, skips connecting by URL
        """
        self.redis_url = redis_url or os.getenv("REDIS_URL", "redis://localhost:6379/0")
        if namespace is None:
            namespace = os.getenv("STORAGE_NAMESPACE", "mekarmap")
        self.namespace = namespace

        if client is not None:
            self.client = client
            return

        try:
            self.client = redis.from_url(self.redis_url, decode_responses=True)
            self._test_connection()
            logger.info(f"Storage service initialized at {self.redis_url}")
        except Exception as e:
            logger.error(f"Failed to initialize storage service: {str(e)}")
            self.client = None

    def _test_connection(self) -> None:
        """Test Redis connection."""
        if not self.client.ping():
            raise StorageError("Redis ping failed")

    def _key(self, key: str) -> str:
        return f"{self.namespace}:{key}" if self.namespace else key

    def is_available(self) -> bool:
        """Check if the backing Redis client is available."""
        return self.client is not None

    def read(self, key: str) -> SlotRead:
        """
        Read and decode a slot.

        Args:
            key: Slot name

        Returns:
            SlotRead with status OK, NOT_FOUND, CORRUPT or UNAVAILABLE
        """
        if not self.client:
            logger.warning(f"Storage unavailable, cannot read slot {key}")
            return SlotRead(LookupStatus.UNAVAILABLE, error="storage unavailable")

        with tracer.start_as_current_span("storage.read") as span:
            span.set_attribute("storage.key", key)

            try:
                raw = self.client.get(self._key(key))
            except Exception as e:
                span.set_attribute("storage.result", "error")
                logger.error(f"Storage read failed for slot {key}: {str(e)}")
                return SlotRead(LookupStatus.UNAVAILABLE, error=str(e))

            if raw is None:
                span.set_attribute("storage.result", "not_found")
                return SlotRead(LookupStatus.NOT_FOUND)

            try:
                value = json.loads(raw)
            except (json.JSONDecodeError, TypeError) as e:
                span.set_attribute("storage.result", "corrupt")
                logger.error(
                    f"Failed to parse stored slot {key}",
                    extra={"slot": key, "parse_error": str(e)}
                )
                return SlotRead(LookupStatus.CORRUPT, error=str(e))

            span.set_attribute("storage.result", "success")
            return SlotRead(LookupStatus.OK, value=value)

    def read_value(self, key: str, default: Any = None) -> Any:
        """Read a slot, returning ``default`` on any non-OK outcome."""
        result = self.read(key)
        return result.value if result.ok else default

    def write(self, key: str, value: Any) -> None:
        """
        Serialize and replace a slot.

        Args:
            key: Slot name
            value: JSON-serializable value

        Raises:
            StorageWriteError: If the value could not be persisted
        """
        if not self.client:
            raise StorageWriteError(f"Storage unavailable, cannot write slot {key}")

        with tracer.start_as_current_span("storage.write") as span:
            span.set_attribute("storage.key", key)

            try:
                payload = json.dumps(value)
                result = self.client.set(self._key(key), payload)
            except (TypeError, ValueError) as e:
                span.set_attribute("storage.result", "error")
                raise StorageWriteError(f"Value for slot {key} is not serializable: {str(e)}") from e
            except Exception as e:
                span.set_attribute("storage.result", "error")
                logger.error(f"Storage write failed for slot {key}: {str(e)}")
                raise StorageWriteError(f"Storage write failed for slot {key}: {str(e)}") from e

            if not result:
                span.set_attribute("storage.result", "rejected")
                raise StorageWriteError(f"Storage rejected write for slot {key}")

            span.set_attributes({
                "storage.result": "success",
                "storage.size": len(payload)
            })
            logger.debug(f"Storage write successful: {key}")

    def remove(self, key: str) -> bool:
        """
        Delete a slot.

        Args:
            key: Slot name

        Returns:
            True if the slot existed and was deleted

        Raises:
            StorageWriteError: If the delete could not be issued
        """
        if not self.client:
            raise StorageWriteError(f"Storage unavailable, cannot remove slot {key}")

        with tracer.start_as_current_span("storage.remove") as span:
            span.set_attribute("storage.key", key)

            try:
                result = self.client.delete(self._key(key))
            except Exception as e:
                span.set_attribute("storage.result", "error")
                logger.error(f"Storage delete failed for slot {key}: {str(e)}")
                raise StorageWriteError(f"Storage delete failed for slot {key}: {str(e)}") from e

            span.set_attribute("storage.result", "success")
            return bool(result)

    def exists(self, key: str) -> bool:
        """Check if a slot holds a value."""
        if not self.client:
            return False

        try:
            return bool(self.client.exists(self._key(key)))
        except Exception as e:
            logger.error(f"Storage exists check failed for slot {key}: {str(e)}")
            return False

    def keys(self, pattern: str = "*") -> List[str]:
        """
        List slot names matching a glob pattern.

        Args:
            pattern: Glob pattern applied below the namespace

        Returns:
            Slot names without the namespace prefix
        """
        if not self.client:
            return []

        prefix = self._key("")
        try:
            return sorted(key[len(prefix):] for key in self.client.scan_iter(match=self._key(pattern)))
        except Exception as e:
            logger.error(f"Storage key scan failed for pattern {pattern}: {str(e)}")
            return []


def create_storage_service(redis_url: Optional[str] = None, namespace: Optional[str] = None) -> StorageService:
    """
    Factory function to create the storage service.

    Returns:
        StorageService instance
    """
    return StorageService(redis_url=redis_url, namespace=namespace)
