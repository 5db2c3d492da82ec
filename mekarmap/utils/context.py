# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Application state handle.
Holds the services built by the app factory so views reach them explicitly.
"""

from dataclasses import dataclass
from typing import Optional
from flask import current_app

from ..services.storage import StorageService
from ..services.catalog import ReferenceCatalog
from ..services.record_store import RecordStore
from ..services.session import SessionService
from ..services.offline import ConnectivityMonitor, OfflineQueueManager
from ..services.localization import LocalizationService
from ..services.reports import ReportService
from ..services.asset_cache import AssetCache


@dataclass
class AppState:
    """Services shared by every request of one application instance."""
    storage: StorageService
    catalog: ReferenceCatalog
    record_store: RecordStore
    session: SessionService
    connectivity: ConnectivityMonitor
    offline: OfflineQueueManager
    localization: LocalizationService
    reports: ReportService
    asset_cache: Optional[AssetCache] = None

    def close(self) -> None:
        """Release listeners registered at startup and the asset fetcher."""
        self.offline.close()
        if self.asset_cache is not None:
            close_fetcher = getattr(self.asset_cache.fetcher, "close", None)
            if close_fetcher is not None:
                close_fetcher()


def get_app_state() -> AppState:
    """Application state of the app handling the current request."""
    return current_app.extensions["mekarmap"]
