# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Tests for the session and identity manager.
"""

import asyncio
import pytest

from mekarmap.services.record_store import RecordStore
from mekarmap.services.session import SessionService
from mekarmap.services.storage import Slots


class TestLogin:
    """Test sign-in against the users collection."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("user_id,credential", [
        ("res001", "warga123"),
        ("res002", "warga456"),
        ("gov001", "dinas123"),
        ("admin001", "admin123"),
    ])
    async def test_fixture_pairs_sign_in(self, session_service, user_id, credential):
        """Test every provisioned pair."""
        assert await session_service.login(user_id, credential) is True

        user = session_service.current_user()
        assert user.user_id == user_id
        assert session_service.is_authenticated

    @pytest.mark.asyncio
    async def test_session_never_holds_credentials(self, session_service, storage):
        """Test the persisted session shape."""
        await session_service.login("res001", "warga123")

        stored = storage.read_value(Slots.CURRENT_USER)
        assert "credentials" not in stored
        assert stored["rewardPoints"] == 120

    @pytest.mark.asyncio
    @pytest.mark.parametrize("user_id,credential", [
        ("res001", "wrong"),
        ("res001", "warga456"),
        ("nobody", "warga123"),
        ("", ""),
        ("RES001", "warga123"),
    ])
    async def test_mismatch_fails(self, session_service, user_id, credential):
        """Test that only exact matches sign in."""
        assert await session_service.login(user_id, credential) is False
        assert session_service.current_user() is None

    @pytest.mark.asyncio
    async def test_failed_login_keeps_existing_session(self, session_service):
        """Test that a bad attempt does not sign the current user out."""
        await session_service.login("res001", "warga123")

        assert await session_service.login("gov001", "wrong") is False
        assert session_service.current_user().user_id == "res001"

    @pytest.mark.asyncio
    async def test_concurrent_login_is_refused(self, storage, record_store):
        """Test the busy guard while a sign-in is in flight."""
        service = SessionService(storage, record_store, login_latency=0.05)

        first, second = await asyncio.gather(
            service.login("res001", "warga123"),
            service.login("gov001", "dinas123")
        )

        assert first is True
        assert second is False
        assert service.current_user().user_id == "res001"

    @pytest.mark.asyncio
    async def test_guard_is_released_after_login(self, session_service):
        """Test that a finished sign-in does not block the next one."""
        await session_service.login("res001", "wrong")

        assert await session_service.login("res001", "warga123") is True

    @pytest.mark.asyncio
    async def test_renamed_user_signs_in_with_new_name(self, session_service, record_store):
        """Test that sign-in reads the users collection, not the fixture."""
        record_store.update(RecordStore.USERS, "res002", {"name": "Siti N."})

        await session_service.login("res002", "warga456")

        assert session_service.current_user().name == "Siti N."


class TestSessionLifecycle:
    """Test session persistence and sign-out."""

    @pytest.mark.asyncio
    async def test_session_survives_new_service(self, session_service, storage, record_store):
        """Test that the session is restored from storage."""
        await session_service.login("gov001", "dinas123")

        restored = SessionService(storage, record_store, login_latency=0)

        assert restored.current_user().user_id == "gov001"

    @pytest.mark.asyncio
    async def test_logout(self, session_service, storage):
        """Test ending the session."""
        await session_service.login("res001", "warga123")

        session_service.logout()

        assert session_service.current_user() is None
        assert not storage.exists(Slots.CURRENT_USER)

    def test_logout_without_session(self, session_service):
        """Test that signing out twice is harmless."""
        session_service.logout()

        assert session_service.current_user() is None

    def test_invalid_stored_session_is_signed_out(self, session_service, storage):
        """Test that a malformed session does not raise."""
        storage.write(Slots.CURRENT_USER, {"userID": "res001"})

        assert session_service.current_user() is None

    def test_corrupt_session_is_signed_out(self, session_service, redis_client):
        """Test that an unparsable session does not raise."""
        redis_client.data["test:current-user"] = "{oops"

        assert session_service.current_user() is None


class TestProfileUpdates:
    """Test name and reward point updates."""

    def test_update_name_without_session(self, session_service):
        """Test renaming while signed out."""
        assert session_service.update_name("Someone") is False

    @pytest.mark.asyncio
    async def test_update_name(self, session_service, record_store):
        """Test that both the session and the users collection change."""
        await session_service.login("res001", "warga123")

        assert session_service.update_name("Budi S.") is True

        assert session_service.current_user().name == "Budi S."
        assert record_store.find(RecordStore.USERS, "res001").record["name"] == "Budi S."

    @pytest.mark.asyncio
    async def test_update_name_of_removed_user(self, session_service, record_store):
        """Test renaming a session user missing from the collection."""
        await session_service.login("res001", "warga123")
        record_store.remove_by_key(RecordStore.USERS, "res001")

        assert session_service.update_name("Budi S.") is False
        assert session_service.current_user().name == "Budi S."

    @pytest.mark.asyncio
    async def test_reward_points_are_additive(self, session_service, record_store):
        """Test accumulating reward points."""
        await session_service.login("res001", "warga123")

        assert session_service.add_reward_points(10) is True
        assert session_service.add_reward_points(5) is True

        assert session_service.current_user().reward_points == 135
        assert record_store.find(RecordStore.USERS, "res001").record["rewardPoints"] == 135

    @pytest.mark.asyncio
    async def test_reward_points_never_decrease(self, session_service):
        """Test that negative deltas are ignored."""
        await session_service.login("res002", "warga456")

        assert session_service.add_reward_points(-50) is False
        assert session_service.current_user().reward_points == 45

    @pytest.mark.asyncio
    async def test_roles_without_points_are_unchanged(self, session_service):
        """Test that officials do not accumulate points."""
        await session_service.login("gov001", "dinas123")

        assert session_service.add_reward_points(10) is False
        assert session_service.current_user().reward_points is None

    def test_reward_points_without_session(self, session_service):
        """Test adding points while signed out."""
        assert session_service.add_reward_points(10) is False
