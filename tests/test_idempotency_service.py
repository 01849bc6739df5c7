# tests/test_idempotency_service.py
from unittest.mock import MagicMock

import pytest
import redis

from patient_intake.core.errors import DuplicateSubmissionError
from patient_intake.services.idempotency_service import PENDING, RegistrationGuard


def test_first_claim_proceeds_and_marks_pending(guard, fake_redis):
    assert guard.claim("user-1", "abc") is None
    assert fake_redis.store[guard._key("user-1", "abc")] == PENDING


def test_claim_after_complete_returns_document_id(guard):
    guard.claim("user-1", "abc")
    guard.complete("user-1", "abc", "doc-1")

    assert guard.claim("user-1", "abc") == "doc-1"


def test_claim_while_pending_raises(guard):
    guard.claim("user-1", "abc")

    with pytest.raises(DuplicateSubmissionError) as exc_info:
        guard.claim("user-1", "abc")
    assert exc_info.value.http_status == 409


def test_release_allows_new_claim(guard):
    guard.claim("user-1", "abc")
    guard.release("user-1", "abc")

    assert guard.claim("user-1", "abc") is None


def test_disabled_guard_never_blocks():
    guard = RegistrationGuard(None)

    assert not guard.enabled
    assert guard.claim("user-1", "abc") is None
    assert guard.claim("user-1", "abc") is None


def test_redis_errors_degrade_to_unguarded():
    client = MagicMock()
    client.set.side_effect = redis.ConnectionError("redis gone")
    client.delete.side_effect = redis.ConnectionError("redis gone")
    guard = RegistrationGuard(client)

    assert guard.claim("user-1", "abc") is None
    guard.complete("user-1", "abc", "doc-1")
    guard.release("user-1", "abc")


def test_request_ids_are_scoped_to_the_user(guard):
    guard.claim("user-1", "abc")
    guard.complete("user-1", "abc", "doc-1")

    assert guard.claim("user-2", "abc") is None
    assert guard._key("user-1", "abc") != guard._key("user-2", "abc")
