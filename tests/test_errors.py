import httpx
import pytest
from botocore.exceptions import ClientError
from firebase_admin import exceptions as firebase_exceptions
from google.api_core import exceptions as google_exceptions

from app.errors import (
    ConflictError,
    ErrorKind,
    GENERIC_MESSAGE,
    NotFoundError,
    classify,
    is_transient,
    retry_with_backoff,
    retryable,
)


def test_app_errors_pass_through():
    classified = classify(NotFoundError("Booking not found"))
    assert classified.kind == ErrorKind.NOT_FOUND
    assert classified.user_message == "Booking not found"


def test_app_error_default_message_comes_from_table():
    assert ConflictError().user_message == "This item already exists"
    assert ConflictError().status_code == 409


@pytest.mark.parametrize(
    "code,kind",
    [
        ("permission-denied", ErrorKind.PERMISSION),
        ("PERMISSION_DENIED", ErrorKind.PERMISSION),
        ("unavailable", ErrorKind.TRANSIENT),
        ("resource-exhausted", ErrorKind.TRANSIENT),
        ("auth/wrong-password", ErrorKind.AUTH),
        ("storage/quota-exceeded", ErrorKind.STORAGE),
    ],
)
def test_raw_codes(code, kind):
    assert classify(code).kind == kind


def test_unmapped_code_is_unknown_with_generic_message():
    classified = classify("something-new")
    assert classified.kind == ErrorKind.UNKNOWN
    assert classified.user_message == GENERIC_MESSAGE


def test_firebase_errors_use_canonical_code():
    classified = classify(firebase_exceptions.NotFoundError("missing"))
    assert classified.kind == ErrorKind.NOT_FOUND
    assert classified.code == "not-found"


def test_google_api_errors():
    assert classify(google_exceptions.ServiceUnavailable("down")).kind == ErrorKind.TRANSIENT
    assert classify(google_exceptions.PermissionDenied("no")).kind == ErrorKind.PERMISSION


def test_s3_client_errors_are_storage_errors():
    error = ClientError({"Error": {"Code": "AccessDenied", "Message": "denied"}}, "PutObject")
    classified = classify(error)
    assert classified.kind == ErrorKind.STORAGE
    assert classified.code == "storage/unauthorized"


def test_httpx_failures_are_transient():
    assert classify(httpx.ConnectTimeout("slow")).kind == ErrorKind.TRANSIENT
    assert classify(httpx.ConnectError("refused")).kind == ErrorKind.TRANSIENT


def test_is_transient():
    assert is_transient(google_exceptions.ServiceUnavailable("down"))
    assert is_transient(RuntimeError("Network request failed"))
    assert is_transient(TimeoutError())
    assert not is_transient(NotFoundError())
    assert not is_transient(RuntimeError("boom"))


class Flaky:
    def __init__(self, failures, error=None):
        self.failures = failures
        self.error = error or RuntimeError("network down")
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error
        return "ok"


class RecordingSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, seconds):
        self.delays.append(seconds)


@pytest.mark.asyncio
async def test_retry_succeeds_immediately_without_delay():
    sleep = RecordingSleep()
    operation = Flaky(0)
    assert await retry_with_backoff(operation, sleep=sleep) == "ok"
    assert operation.calls == 1
    assert sleep.delays == []


@pytest.mark.asyncio
async def test_retry_backs_off_exponentially():
    sleep = RecordingSleep()
    operation = Flaky(2)
    assert await retry_with_backoff(operation, max_retries=3, base_delay_ms=1000, sleep=sleep) == "ok"
    assert operation.calls == 3
    assert sleep.delays == [1.0, 2.0]


@pytest.mark.asyncio
async def test_retry_reraises_last_failure():
    sleep = RecordingSleep()
    operation = Flaky(5)
    with pytest.raises(RuntimeError, match="network down"):
        await retry_with_backoff(operation, max_retries=3, base_delay_ms=10, sleep=sleep)
    assert operation.calls == 3
    assert sleep.delays == [0.01, 0.02]


@pytest.mark.asyncio
async def test_retry_stops_on_non_retryable_error():
    sleep = RecordingSleep()
    operation = Flaky(5, NotFoundError())
    with pytest.raises(NotFoundError):
        await retry_with_backoff(operation, should_retry=is_transient, sleep=sleep)
    assert operation.calls == 1


@pytest.mark.asyncio
async def test_retryable_decorator_retries_transient_errors():
    calls = []

    @retryable(max_retries=3, base_delay_ms=0)
    async def load(value):
        calls.append(value)
        if len(calls) < 2:
            raise google_exceptions.ServiceUnavailable("down")
        return value

    assert await load("x") == "x"
    assert calls == ["x", "x"]
