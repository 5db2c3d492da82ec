# SPDX-License-Identifier: Apache-2.0

"""
Session and identity management.

Users sign in by matching a user id and plaintext credential against the
provisioning fixture held in the users collection. This is a stand-in for a
real credential-issuance protocol and is not a security boundary.
"""

import asyncio
import logging
from typing import Optional
from pydantic import ValidationError
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from ..models.entities import User, UserRecord
from .storage import StorageService, Slots
from .record_store import RecordStore

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)

DEFAULT_LOGIN_LATENCY = 0.5


class SessionService:
    """
    Holds the single active session of this client.

    The session user is persisted in the ``current-user`` slot and survives
    restarts until ``logout``.
    """

    def __init__(self, storage: StorageService, record_store: RecordStore,
                 login_latency: float = DEFAULT_LOGIN_LATENCY):
        """
        Initialize the session service.

        Args:
            storage: Slot storage holding the session
            record_store: Store holding the users collection
            login_latency: Simulated network delay of a sign-in, in seconds
        """
        self.storage = storage
        self.record_store = record_store
        self.login_latency = login_latency
        self._login_in_flight = False

    def current_user(self) -> Optional[User]:
        """Signed-in user, or None when unauthenticated."""
        result = self.storage.read(Slots.CURRENT_USER)
        if not result.ok:
            return None

        try:
            return User.model_validate(result.value)
        except ValidationError as e:
            logger.error(
                "Stored session is invalid, treating client as signed out",
                extra={"validation_errors": str(e)}
            )
            return None

    @property
    def is_authenticated(self) -> bool:
        return self.current_user() is not None

    def _find_user_record(self, user_id: str, credential: str) -> Optional[UserRecord]:
        for record in self.record_store.load_all(RecordStore.USERS):
            if record.get("userID") == user_id and record.get("credentials") == credential:
                return UserRecord.model_validate(record)
        return None

    async def login(self, user_id: str, credential: str) -> bool:
        """
        Authenticate against the users collection.

        Args:
            user_id: User identifier
            credential: Plaintext credential

        Returns:
            True and a persisted session on an exact match, False otherwise
        """
        if self._login_in_flight:
            logger.warning("Sign-in already in progress, ignoring request", extra={"user_id": user_id})
            return False

        self._login_in_flight = True
        try:
            with tracer.start_as_current_span(
                "session.login",
                attributes={"user.id": user_id}
            ) as span:
                await asyncio.sleep(self.login_latency)

                record = self._find_user_record(user_id, credential)
                if record is None:
                    span.set_status(Status(StatusCode.ERROR, "Invalid credentials"))
                    logger.warning("Login attempt with unknown user or wrong credential", extra={"user_id": user_id})
                    return False

                user = record.to_session_user()
                self._save_session(user)

                span.set_status(Status(StatusCode.OK))
                logger.info("User signed in", extra={"user_id": user.user_id, "role": user.role})
                return True
        finally:
            self._login_in_flight = False

    def logout(self) -> None:
        """End the active session."""
        user = self.current_user()
        self.storage.remove(Slots.CURRENT_USER)
        if user:
            logger.info("User signed out", extra={"user_id": user.user_id})

    def _save_session(self, user: User) -> None:
        self.storage.write(Slots.CURRENT_USER, user.to_record())

    def update_name(self, name: str) -> bool:
        """
        Rename the signed-in user.

        Returns:
            False when no session exists or the user is no longer in the users
            collection; the session itself is still renamed in the latter case
        """
        user = self.current_user()
        if user is None:
            return False

        user.name = name
        self._save_session(user)

        updated = self.record_store.update(RecordStore.USERS, user.user_id, {"name": name})
        if not updated:
            logger.warning("Renamed session user is missing from users collection", extra={"user_id": user.user_id})
        return updated

    def add_reward_points(self, delta: int) -> bool:
        """
        Add reward points to the signed-in user.

        Only roles that carry a reward-points field accumulate points; the
        total only ever grows.

        Returns:
            True if points were added
        """
        user = self.current_user()
        if user is None or not user.has_reward_points():
            return False

        if delta < 0:
            logger.warning("Ignoring negative reward point delta", extra={"user_id": user.user_id, "delta": delta})
            return False

        user.reward_points = (user.reward_points or 0) + delta
        self._save_session(user)
        self.record_store.update(RecordStore.USERS, user.user_id, {"rewardPoints": user.reward_points})

        logger.info(
            "Reward points added",
            extra={"user_id": user.user_id, "delta": delta, "total": user.reward_points}
        )
        return True
