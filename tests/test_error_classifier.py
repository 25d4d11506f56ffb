"""Tests for remote error classification."""

import asyncio
import pytest
from sqlalchemy.exc import OperationalError

from farmsync.domain.error_classifier import (
    ErrorKind,
    classify,
    describe,
    index_url,
    should_fallback_to_offline,
)


class FirebaseError(Exception):
    """Stand-in for a hosted backend SDK error."""

    def __init__(self, message, code=None):
        super().__init__(message)
        self.code = code


INDEX_MESSAGE = (
    "The query requires an index. You can create it here: "
    "https://console.firebase.google.com/project/farm/firestore/indexes?create_composite=abc"
)


@pytest.mark.parametrize(
    "error,kind",
    [
        (Exception("net::ERR_BLOCKED_BY_CLIENT"), ErrorKind.BLOCKED),
        (Exception("Request blocked by client extension"), ErrorKind.BLOCKED),
        (Exception("Failed to fetch"), ErrorKind.NETWORK_DOWN),
        (Exception("Connection refused by host"), ErrorKind.NETWORK_DOWN),
        (Exception("request timed out"), ErrorKind.NETWORK_DOWN),
        (ConnectionResetError(), ErrorKind.NETWORK_DOWN),
        (asyncio.TimeoutError(), ErrorKind.NETWORK_DOWN),
        (Exception(INDEX_MESSAGE), ErrorKind.MISSING_INDEX),
        (FirebaseError("permission denied"), ErrorKind.BACKEND_ERROR),
        (Exception("permission denied"), ErrorKind.UNKNOWN),
        (ValueError("something odd"), ErrorKind.UNKNOWN),
    ],
)
def test_classify(error, kind):
    """Test the signature table."""
    assert classify(error) is kind


def test_backend_code_prefix():
    """Test that backend error codes classify as backend errors."""

    class ServiceError(Exception):
        code = "firestore/permission-denied"

    assert classify(ServiceError("nope")) is ErrorKind.BACKEND_ERROR
    assert classify(FirebaseError("nope", code="auth/user-disabled")) is ErrorKind.BACKEND_ERROR


def test_sqlalchemy_errors_are_backend_errors():
    """Test that database driver errors from the remote store classify as backend."""
    error = OperationalError("INSERT INTO documents", {}, Exception("disk I/O error"))
    assert classify(error) is ErrorKind.BACKEND_ERROR


def test_blocked_checked_before_network():
    """Test that a blocked fetch failure is not reported as network down."""
    assert classify(Exception("Failed to fetch: ERR_BLOCKED_BY_CLIENT")) is ErrorKind.BLOCKED


def test_should_fallback_to_offline():
    """Test which kinds fall back to cached data."""
    assert should_fallback_to_offline(Exception("Failed to fetch"))
    assert should_fallback_to_offline(Exception(INDEX_MESSAGE))
    assert not should_fallback_to_offline(FirebaseError("permission denied"))
    assert not should_fallback_to_offline(Exception("weird"))


def test_describe_locales():
    """Test localized messages."""
    assert describe(Exception("Failed to fetch")) == "Internet connection error. Check your connectivity."
    assert describe(Exception("Failed to fetch"), "es").startswith("Error de conexión a internet")
    assert describe(Exception("Failed to fetch"), "fr") == describe(Exception("Failed to fetch"))


def test_describe_unknown_includes_detail():
    """Test that unknown errors keep the raw message."""
    assert describe(Exception("quota exceeded")) == "Unknown error: quota exceeded"
    assert describe(RuntimeError()) == "Unknown error: RuntimeError"


def test_index_url():
    """Test extracting the index console link."""
    assert index_url(Exception(INDEX_MESSAGE)).startswith(
        "https://console.firebase.google.com/project/farm/firestore/indexes"
    )
    assert index_url(Exception("Failed to fetch https://example.com")) is None
