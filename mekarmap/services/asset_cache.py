# SPDX-License-Identifier: Apache-2.0

"""
Versioned cache of the application shell assets.

The shell list is precached on install, caches left behind by older versions
are purged on activation, and fetches are served cache-first with a network
fallback. Cached bodies live in storage slots named ``asset-cache:<version>``.
"""

import base64
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence
from urllib.parse import urljoin, urlparse
import requests
from opentelemetry import trace

from .storage import StorageService, StorageWriteError, Slots

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)

DEFAULT_CACHE_VERSION = "mekarmap-v1"
OFFLINE_PAGE = "/offline.html"

SHELL_ASSETS = (
    "/",
    "/index.html",
    "/manifest.json",
    "/logo.svg",
    "/icons/icon-192x192.png",
    "/icons/icon-512x512.png",
    OFFLINE_PAGE,
)


class AssetFetchError(Exception):
    """Raised when an asset is neither cached nor reachable."""
    pass


@dataclass
class Asset:
    """A fetched or cached response."""
    path: str
    status: int
    body: bytes
    content_type: Optional[str] = None
    same_origin: bool = True
    from_cache: bool = False

    @property
    def cacheable(self) -> bool:
        return self.status == 200 and self.same_origin

    def to_record(self) -> Dict[str, object]:
        return {
            "status": self.status,
            "contentType": self.content_type,
            "body": base64.b64encode(self.body).decode("ascii")
        }

    @classmethod
    def from_record(cls, path: str, record: Dict[str, object]) -> "Asset":
        return cls(
            path=path,
            status=int(record["status"]),
            body=base64.b64decode(record["body"]),
            content_type=record.get("contentType"),
            from_cache=True
        )


class RequestsFetcher:
    """Fetches shell assets from the asset origin over HTTP."""

    def __init__(self, base_url: str, timeout: float = 10.0, session: Optional[requests.Session] = None):
        self.base_url = base_url
        self.timeout = timeout
        self.session = session or requests.Session()

    def fetch(self, path: str) -> Asset:
        """
        GET an asset relative to the origin.

        Raises:
            AssetFetchError: On connection failures and timeouts
        """
        url = urljoin(self.base_url, path)
        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            raise AssetFetchError(f"Failed to fetch {url}: {str(e)}") from e

        same_origin = urlparse(response.url).netloc == urlparse(self.base_url).netloc
        return Asset(
            path=path,
            status=response.status_code,
            body=response.content,
            content_type=response.headers.get("Content-Type"),
            same_origin=same_origin
        )

    def close(self) -> None:
        self.session.close()


class AssetCache:
    """
    Cache-first asset access with offline fallback for navigations.
    """

    def __init__(self, storage: StorageService, fetcher, version: str = DEFAULT_CACHE_VERSION,
                 shell_assets: Sequence[str] = SHELL_ASSETS, offline_page: str = OFFLINE_PAGE):
        """
        Initialize the asset cache.

        Args:
            storage: Slot storage holding the caches
            fetcher: Object with a ``fetch(path) -> Asset`` method
            version: Name of the current cache version
            shell_assets: Paths precached on install
            offline_page: Cached page served when a navigation cannot reach the network
        """
        self.storage = storage
        self.fetcher = fetcher
        self.version = version
        self.shell_assets = tuple(shell_assets)
        self.offline_page = offline_page

    @staticmethod
    def _slot(version: str) -> str:
        return f"asset-cache:{version}"

    def cache_names(self) -> List[str]:
        names = self.storage.read_value(Slots.ASSET_CACHES, [])
        return list(names) if isinstance(names, list) else []

    def _entries(self, version: Optional[str] = None) -> Dict[str, Dict[str, object]]:
        entries = self.storage.read_value(self._slot(version or self.version), {})
        return entries if isinstance(entries, dict) else {}

    def _register(self) -> None:
        names = self.cache_names()
        if self.version not in names:
            names.append(self.version)
            self.storage.write(Slots.ASSET_CACHES, names)

    def _put(self, asset: Asset) -> None:
        entries = self._entries()
        entries[asset.path] = asset.to_record()
        self.storage.write(self._slot(self.version), entries)
        self._register()

    def match(self, path: str) -> Optional[Asset]:
        """Cached asset for a path in the current version, or None."""
        record = self._entries().get(path)
        if record is None:
            return None
        try:
            return Asset.from_record(path, record)
        except (KeyError, ValueError, TypeError) as e:
            logger.error("Dropping unreadable cached asset", extra={"path": path, "error": str(e)})
            return None

    def install(self) -> int:
        """
        Precache every shell asset under the current version.

        Nothing is stored unless every asset was fetched successfully.

        Returns:
            Number of assets cached

        Raises:
            AssetFetchError: If any shell asset could not be fetched
        """
        with tracer.start_as_current_span(
            "asset_cache.install",
            attributes={"cache.version": self.version}
        ) as span:
            fetched = []
            for path in self.shell_assets:
                asset = self.fetcher.fetch(path)
                if not asset.cacheable:
                    raise AssetFetchError(f"Shell asset {path} returned status {asset.status}")
                fetched.append(asset)

            entries = self._entries()
            for asset in fetched:
                entries[asset.path] = asset.to_record()
            self.storage.write(self._slot(self.version), entries)
            self._register()

            span.set_attribute("cache.assets", len(fetched))
            logger.info("Shell assets cached", extra={"version": self.version, "assets": len(fetched)})
            return len(fetched)

    def activate(self) -> List[str]:
        """
        Delete every cache whose version differs from the current one.

        Returns:
            Names of the deleted caches
        """
        with tracer.start_as_current_span("asset_cache.activate") as span:
            names = self.cache_names()
            stale = [name for name in names if name != self.version]

            for name in stale:
                logger.info("Deleting stale asset cache", extra={"cache": name})
                self.storage.remove(self._slot(name))

            if stale:
                self.storage.write(Slots.ASSET_CACHES, [name for name in names if name == self.version])

            span.set_attribute("cache.deleted", len(stale))
            return stale

    def fetch(self, path: str, navigate: bool = False) -> Asset:
        """
        Serve an asset from the cache, falling back to the network.

        Successful same-origin responses are added to the cache. Other
        responses are returned without caching.

        Args:
            path: Asset path
            navigate: Whether the request is a page navigation

        Returns:
            The cached or fetched asset

        Raises:
            AssetFetchError: If the network is unreachable and no fallback applies
        """
        cached = self.match(path)
        if cached is not None:
            return cached

        try:
            asset = self.fetcher.fetch(path)
        except AssetFetchError:
            if navigate:
                fallback = self.match(self.offline_page)
                if fallback is not None:
                    logger.info("Serving offline page for navigation", extra={"path": path})
                    return fallback
            raise

        if asset.cacheable:
            try:
                self._put(asset)
            except StorageWriteError as e:
                logger.warning("Failed to cache fetched asset", extra={"path": path, "error": str(e)})
        return asset
