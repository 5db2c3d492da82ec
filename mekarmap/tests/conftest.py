# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Pytest configuration and fixtures.
"""

import os
import fnmatch
import pytest
from datetime import datetime, timezone
from unittest.mock import Mock

from mekarmap.app import create_app
from mekarmap.models.entities import GeoPoint, Report, User
from mekarmap.models.enums import ReportStatus
from mekarmap.services.storage import StorageService
from mekarmap.services.catalog import ReferenceCatalog
from mekarmap.services.record_store import RecordStore
from mekarmap.services.session import SessionService
from mekarmap.services.offline import ConnectivityMonitor, OfflineQueueManager
from mekarmap.services.localization import LocalizationService
from mekarmap.services.reports import ReportService

# Set test environment
os.environ['ENVIRONMENT'] = 'testing'
os.environ['OTEL_ENABLED'] = 'false'

TEST_NAMESPACE = "test"

CREDENTIALS = {
    "res001": "warga123",
    "res002": "warga456",
    "gov001": "dinas123",
    "admin001": "admin123",
}


def make_redis_mock(data=None):
    """Redis client mock backed by a dict, with decode_responses semantics."""
    data = {} if data is None else data
    client = Mock()
    client.data = data

    def _set(key, value):
        data[key] = value
        return True

    def _delete(*keys):
        removed = 0
        for key in keys:
            if key in data:
                del data[key]
                removed += 1
        return removed

    client.get.side_effect = lambda key: data.get(key)
    client.set.side_effect = _set
    client.delete.side_effect = _delete
    client.exists.side_effect = lambda *keys: sum(1 for key in keys if key in data)
    client.ping.return_value = True
    client.scan_iter.side_effect = lambda match="*": [key for key in list(data) if fnmatch.fnmatch(key, match)]
    return client


@pytest.fixture
def redis_client():
    """Dict-backed Redis client mock."""
    return make_redis_mock()


@pytest.fixture
def storage(redis_client):
    """Storage service on the mock client."""
    return StorageService(namespace=TEST_NAMESPACE, client=redis_client)


@pytest.fixture
def catalog():
    return ReferenceCatalog()


@pytest.fixture
def record_store(storage, catalog):
    """Record store with seeded collections."""
    store = RecordStore(storage, catalog)
    store.initialize()
    return store


@pytest.fixture
def session_service(storage, record_store):
    return SessionService(storage, record_store, login_latency=0)


@pytest.fixture
def connectivity():
    return ConnectivityMonitor()


@pytest.fixture
def offline_manager(storage, record_store, connectivity):
    manager = OfflineQueueManager(storage, record_store, connectivity, sync_latency=0)
    manager.start()
    yield manager
    manager.close()


@pytest.fixture
def localization(storage, catalog):
    return LocalizationService(storage, catalog.string_tables())


@pytest.fixture
def report_service(record_store, offline_manager):
    return ReportService(record_store, offline_manager)


@pytest.fixture
def resident():
    """Resident with reward points."""
    return User(userID="res001", name="Budi Santoso", role="Resident", languagePref="id", rewardPoints=120)


@pytest.fixture
def other_resident():
    return User(userID="res002", name="Siti Nurhaliza", role="Resident", languagePref="su", rewardPoints=45)


@pytest.fixture
def official():
    return User(userID="gov001", name="Ahmad Hidayat", role="GovernmentOfficial", languagePref="id")


@pytest.fixture
def administrator():
    return User(userID="admin001", name="Dewi Lestari", role="Administrator", languagePref="su")


@pytest.fixture
def make_report():
    """Factory for reports with sensible defaults."""
    def _make(report_id="rep1", user_id="res001", timestamp=None, status=ReportStatus.SUBMITTED, **overrides):
        fields = {
            "report_id": report_id,
            "user_id": user_id,
            "type": "infra_road",
            "description": "Pothole on the main road",
            "geo_point": GeoPoint(lat=-6.9175, lon=107.6191),
            "timestamp": timestamp or datetime(2024, 5, 1, 8, 0, tzinfo=timezone.utc),
            "status": status,
        }
        fields.update(overrides)
        return Report(**fields)
    return _make


@pytest.fixture
def app(storage):
    """Application on the mock storage with no artificial latency."""
    application = create_app(
        test_config={
            "ENVIRONMENT": "testing",
            "LOGIN_LATENCY": 0,
            "SYNC_LATENCY": 0,
            "OTEL_ENABLED": False,
            "TESTING": True,
        },
        storage=storage
    )
    yield application
    application.extensions["mekarmap"].close()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def sign_in(client):
    """Sign a fixture user in through the login endpoint."""
    def _sign_in(user_id):
        response = client.post('/login', json={"userID": user_id, "credentials": CREDENTIALS[user_id]})
        assert response.status_code == 200
        return response
    return _sign_in
