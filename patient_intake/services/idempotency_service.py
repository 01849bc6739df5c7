# patient_intake/services/idempotency_service.py
"""
Server-side guard against double submission of a registration.

The client sends a request id with each submission. Ids are scoped to the
user registering, so one user never replays into another user's record.
The first submission claims the id in Redis (SET NX) and, once it
succeeds, stores the created document id under it. Replays of a finished
id get that document back; replays while the first one is still running
are rejected as duplicates.

Without Redis the guard is disabled and every submission runs.
"""
import logging
from typing import Optional

import redis

from patient_intake.core.config import get_settings
from patient_intake.core.errors import DuplicateSubmissionError
from patient_intake.core.redis import get_redis_client

logger = logging.getLogger(__name__)

PENDING = "__pending__"


class RegistrationGuard:
    def __init__(
        self,
        client: Optional[redis.Redis],
        ttl_seconds: int = 24 * 60 * 60,
        prefix: str = "intake:registration",
    ):
        self.client = client
        self.ttl_seconds = ttl_seconds
        self.prefix = prefix

    @property
    def enabled(self) -> bool:
        return self.client is not None

    def _key(self, user_id: str, request_id: str) -> str:
        return f"{self.prefix}:{user_id}:{request_id}"

    def claim(self, user_id: str, request_id: str) -> Optional[str]:
        """
        Claim a request id for a user.

        Returns the document id of an earlier, finished submission with the
        same request id, or None when this submission may proceed.
        Raises DuplicateSubmissionError while the earlier one is running.
        """
        if not self.client:
            return None

        key = self._key(user_id, request_id)
        try:
            if self.client.set(key, PENDING, nx=True, ex=self.ttl_seconds):
                return None
            existing = self.client.get(key)
        except redis.RedisError as e:
            logger.warning(f"Redis error claiming '{key}': {e}. Proceeding without guard.")
            return None

        if existing is None:
            # Expired between SET and GET
            logger.warning(f"Request id '{request_id}' expired while claiming. Proceeding without guard.")
            return None
        if existing == PENDING:
            raise DuplicateSubmissionError(
                "This registration is already being processed.",
                code=409,
                type_="duplicate_submission",
            )
        return existing

    def complete(self, user_id: str, request_id: str, document_id: str) -> None:
        if not self.client:
            return
        key = self._key(user_id, request_id)
        try:
            self.client.set(key, document_id, ex=self.ttl_seconds)
        except redis.RedisError as e:
            logger.warning(f"Redis error completing '{key}': {e}")

    def release(self, user_id: str, request_id: str) -> None:
        if not self.client:
            return
        key = self._key(user_id, request_id)
        try:
            self.client.delete(key)
        except redis.RedisError as e:
            logger.warning(f"Redis error releasing '{key}': {e}")


def get_registration_guard() -> RegistrationGuard:
    """
    FastAPI dependency for the registration guard.
    """
    return RegistrationGuard(
        get_redis_client(),
        ttl_seconds=get_settings().idempotency_ttl_seconds,
    )
