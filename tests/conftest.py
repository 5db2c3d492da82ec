# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Fixtures for the acceptance suites, which drive the whole application
through the Flask test client.
"""

import pytest

from mekarmap.app import create_app
from mekarmap.services.storage import StorageService
from mekarmap.tests.conftest import make_redis_mock, CREDENTIALS


@pytest.fixture
def test_storage():
    """Storage on a dict-backed Redis mock, fresh for every test."""
    return StorageService(namespace="acceptance", client=make_redis_mock())


@pytest.fixture
def test_app(test_storage):
    application = create_app(
        test_config={
            "ENVIRONMENT": "testing",
            "LOGIN_LATENCY": 0,
            "SYNC_LATENCY": 0,
            "OTEL_ENABLED": False,
            "TESTING": True,
        },
        storage=test_storage
    )
    yield application
    application.extensions["mekarmap"].close()


@pytest.fixture
def test_client(test_app):
    return test_app.test_client()


@pytest.fixture
def login_as(test_client):
    """Sign a seeded user in and return the login body."""
    def _login(user_id):
        response = test_client.post('/login', json={"userID": user_id, "credentials": CREDENTIALS[user_id]})
        assert response.status_code == 200
        return response.get_json()
    return _login
