"""
Error classification and retry helpers.

Maps backend errors (Firebase Admin, Firestore/Google API, S3 storage, httpx)
onto a closed taxonomy of user-facing error kinds, and provides the
exponential-backoff retry used around external calls.
"""

import asyncio
import functools
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, TypeVar

import httpx
from botocore.exceptions import BotoCoreError, ClientError
from firebase_admin import exceptions as firebase_exceptions
from google.api_core import exceptions as google_exceptions

logger = logging.getLogger(__name__)

T = TypeVar("T")

GENERIC_MESSAGE = "An error occurred. Please try again"
UNEXPECTED_MESSAGE = "An unexpected error occurred"


class ErrorKind(str, Enum):
    AUTH = "auth"
    PERMISSION = "permission"
    NOT_FOUND = "not-found"
    CONFLICT = "conflict"
    TRANSIENT = "transient"
    STORAGE = "storage"
    UNKNOWN = "unknown"


# HTTP status returned for each kind by the API exception handler
KIND_STATUS_CODES = {
    ErrorKind.AUTH: 401,
    ErrorKind.PERMISSION: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.TRANSIENT: 503,
    ErrorKind.STORAGE: 502,
    ErrorKind.UNKNOWN: 500,
}

# Backend code -> (kind, user message). Codes use the client SDK spelling.
ERROR_TABLE: dict[str, tuple[ErrorKind, str]] = {
    # Auth errors
    "auth/invalid-email": (ErrorKind.AUTH, "Invalid email address"),
    "auth/user-disabled": (ErrorKind.AUTH, "This account has been disabled"),
    "auth/user-not-found": (ErrorKind.AUTH, "No account found with this email"),
    "auth/wrong-password": (ErrorKind.AUTH, "Incorrect password"),
    "auth/email-already-in-use": (ErrorKind.AUTH, "An account already exists with this email"),
    "auth/weak-password": (ErrorKind.AUTH, "Password should be at least 6 characters"),
    "auth/too-many-requests": (ErrorKind.TRANSIENT, "Too many attempts. Please try again later"),
    "auth/network-request-failed": (ErrorKind.TRANSIENT, "Network error. Check your connection"),
    "auth/requires-recent-login": (ErrorKind.AUTH, "Please log in again to continue"),
    "auth/id-token-expired": (ErrorKind.AUTH, "Your session has expired. Please log in again"),
    "auth/id-token-revoked": (ErrorKind.AUTH, "Your session has been revoked. Please log in again"),
    "auth/invalid-id-token": (ErrorKind.AUTH, "Invalid session. Please log in again"),
    # Firestore errors
    "permission-denied": (ErrorKind.PERMISSION, "You don't have permission to perform this action"),
    "not-found": (ErrorKind.NOT_FOUND, "The requested data was not found"),
    "already-exists": (ErrorKind.CONFLICT, "This item already exists"),
    "failed-precondition": (
        ErrorKind.CONFLICT,
        "Operation cannot be performed in the current state",
    ),
    "aborted": (ErrorKind.TRANSIENT, "Operation was aborted. Please try again"),
    "out-of-range": (ErrorKind.UNKNOWN, "Invalid data range"),
    "unimplemented": (ErrorKind.UNKNOWN, "This feature is not available yet"),
    "internal": (ErrorKind.UNKNOWN, "Internal server error. Please try again"),
    "unavailable": (ErrorKind.TRANSIENT, "Service temporarily unavailable. Please try again"),
    "data-loss": (ErrorKind.UNKNOWN, "Data loss detected. Please contact support"),
    "unauthenticated": (ErrorKind.AUTH, "You must be logged in to perform this action"),
    "resource-exhausted": (ErrorKind.TRANSIENT, "Too many requests. Please try again later"),
    "cancelled": (ErrorKind.UNKNOWN, "Operation was cancelled"),
    "invalid-argument": (ErrorKind.UNKNOWN, "Invalid data provided"),
    "deadline-exceeded": (ErrorKind.TRANSIENT, "Operation took too long. Please try again"),
    # Storage errors
    "storage/unauthorized": (ErrorKind.STORAGE, "You don't have permission to access this file"),
    "storage/canceled": (ErrorKind.STORAGE, "Upload was cancelled"),
    "storage/unknown": (ErrorKind.STORAGE, "An unknown error occurred during upload"),
    "storage/object-not-found": (ErrorKind.STORAGE, "File not found"),
    "storage/quota-exceeded": (ErrorKind.STORAGE, "Storage quota exceeded"),
    "storage/unauthenticated": (ErrorKind.STORAGE, "You must be logged in to upload files"),
    "storage/retry-limit-exceeded": (ErrorKind.STORAGE, "Maximum retry time exceeded"),
    "storage/invalid-checksum": (ErrorKind.STORAGE, "File checksum doesn't match"),
    "storage/server-file-wrong-size": (
        ErrorKind.STORAGE,
        "File size doesn't match server expectations",
    ),
}

# firebase_admin.auth error classes -> client SDK codes
AUTH_ERROR_CODES = {
    "UserNotFoundError": "auth/user-not-found",
    "EmailAlreadyExistsError": "auth/email-already-in-use",
    "UserDisabledError": "auth/user-disabled",
    "ExpiredIdTokenError": "auth/id-token-expired",
    "RevokedIdTokenError": "auth/id-token-revoked",
    "InvalidIdTokenError": "auth/invalid-id-token",
    "TooManyAttemptsTryLaterError": "auth/too-many-requests",
}

# S3 error codes -> storage codes
S3_ERROR_CODES = {
    "NoSuchKey": "storage/object-not-found",
    "NoSuchBucket": "storage/object-not-found",
    "AccessDenied": "storage/unauthorized",
    "InvalidAccessKeyId": "storage/unauthenticated",
    "SignatureDoesNotMatch": "storage/unauthenticated",
    "QuotaExceeded": "storage/quota-exceeded",
    "BadDigest": "storage/invalid-checksum",
    "InvalidDigest": "storage/invalid-checksum",
    "IncompleteBody": "storage/server-file-wrong-size",
}

# Google API HTTP status -> Firestore code, used when no gRPC status is attached
HTTP_STATUS_CODES = {
    400: "invalid-argument",
    401: "unauthenticated",
    403: "permission-denied",
    404: "not-found",
    409: "already-exists",
    412: "failed-precondition",
    429: "resource-exhausted",
    499: "cancelled",
    500: "internal",
    503: "unavailable",
    504: "deadline-exceeded",
}

TRANSIENT_MESSAGE_MARKERS = ("network", "fetch", "timeout", "timed out")


class AppError(Exception):
    """Base class for errors raised by the domain services."""

    kind: ErrorKind = ErrorKind.UNKNOWN
    code: str = "unknown"
    http_status: Optional[int] = None

    def __init__(self, user_message: Optional[str] = None, *, code: Optional[str] = None):
        if code:
            self.code = code
        self.user_message = user_message or ERROR_TABLE.get(self.code, (None, GENERIC_MESSAGE))[1]
        super().__init__(self.user_message)

    @property
    def status_code(self) -> int:
        return self.http_status or KIND_STATUS_CODES[self.kind]


class NotFoundError(AppError):
    kind = ErrorKind.NOT_FOUND
    code = "not-found"


class ConflictError(AppError):
    kind = ErrorKind.CONFLICT
    code = "already-exists"


class PermissionDeniedError(AppError):
    kind = ErrorKind.PERMISSION
    code = "permission-denied"


class AuthenticationError(AppError):
    kind = ErrorKind.AUTH
    code = "unauthenticated"


class StorageError(AppError):
    kind = ErrorKind.STORAGE
    code = "storage/unknown"


class InvalidTransition(AppError):
    kind = ErrorKind.CONFLICT
    code = "failed-precondition"


class InvalidRequestError(ValueError):
    """Malformed input rejected before any backend call."""

    def __init__(self, message: str, *, field: Optional[str] = None):
        self.field = field
        super().__init__(message)


@dataclass(frozen=True)
class ClassifiedError:
    kind: ErrorKind
    code: str
    user_message: str


def _lookup(code: str) -> ClassifiedError:
    kind, message = ERROR_TABLE.get(code, (ErrorKind.UNKNOWN, GENERIC_MESSAGE))
    return ClassifiedError(kind=kind, code=code, user_message=message)


def _canonical(code: Any) -> str:
    """NOT_FOUND / not_found / NotFound -> not-found"""
    return str(code).strip().lower().replace("_", "-")


def classify(error: Any) -> ClassifiedError:
    """Map any raised error (or a raw backend code string) to the error taxonomy."""
    if isinstance(error, AppError):
        return ClassifiedError(kind=error.kind, code=error.code, user_message=error.user_message)

    if isinstance(error, str):
        return _lookup(error if "/" in error else _canonical(error))

    if isinstance(error, firebase_exceptions.FirebaseError):
        auth_code = AUTH_ERROR_CODES.get(type(error).__name__)
        if auth_code:
            return _lookup(auth_code)
        return _lookup(_canonical(error.code))

    if isinstance(error, google_exceptions.GoogleAPICallError):
        grpc_status = getattr(error, "grpc_status_code", None)
        if grpc_status is not None:
            return _lookup(_canonical(grpc_status.name))
        return _lookup(HTTP_STATUS_CODES.get(error.code, "unknown"))

    if isinstance(error, ClientError):
        s3_code = error.response.get("Error", {}).get("Code", "")
        return _lookup(S3_ERROR_CODES.get(s3_code, "storage/unknown"))

    if isinstance(error, BotoCoreError):
        return _lookup("storage/unknown")

    if isinstance(error, httpx.TimeoutException):
        return _lookup("deadline-exceeded")

    if isinstance(error, httpx.TransportError):
        return _lookup("auth/network-request-failed")

    if isinstance(error, (TimeoutError, asyncio.TimeoutError)):
        return _lookup("deadline-exceeded")

    if isinstance(error, Exception):
        return ClassifiedError(
            kind=ErrorKind.UNKNOWN,
            code="unknown",
            user_message=str(error) or UNEXPECTED_MESSAGE,
        )

    return ClassifiedError(kind=ErrorKind.UNKNOWN, code="unknown", user_message=UNEXPECTED_MESSAGE)


def is_transient(error: Any) -> bool:
    """True for failures likely to succeed on retry (network, unavailable, timeouts)."""
    if classify(error).kind == ErrorKind.TRANSIENT:
        return True
    if isinstance(error, Exception) and not isinstance(error, AppError):
        message = str(error).lower()
        return any(marker in message for marker in TRANSIENT_MESSAGE_MARKERS)
    return False


def log_error(context: str, error: Any) -> ClassifiedError:
    """Log an error with a context tag and return its classification."""
    classified = classify(error)
    logger.error(
        f"❌ [{context}] {classified.kind.value} ({classified.code}): {classified.user_message}",
        exc_info=error if isinstance(error, BaseException) else None,
    )
    return classified


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    base_delay_ms: int = 1000,
    *,
    should_retry: Optional[Callable[[BaseException], bool]] = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> T:
    """
    Run ``operation`` up to ``max_retries`` times.

    Waits ``base_delay_ms * 2**attempt`` between attempts (1s, 2s, 4s with the
    defaults) and re-raises the last failure once attempts are exhausted.
    ``should_retry`` can stop early for errors that will not heal on retry.
    """
    if max_retries < 1:
        raise ValueError("max_retries must be at least 1")

    last_error: Optional[BaseException] = None
    for attempt in range(max_retries):
        try:
            return await operation()
        except Exception as e:
            last_error = e
            if should_retry is not None and not should_retry(e):
                raise
            if attempt < max_retries - 1:
                delay_ms = base_delay_ms * (2**attempt)
                logger.warning(
                    f"⚠️ Attempt {attempt + 1}/{max_retries} failed ({e}), retrying in {delay_ms}ms"
                )
                await sleep(delay_ms / 1000)

    assert last_error is not None
    raise last_error


def retryable(
    max_retries: int = 3,
    base_delay_ms: int = 1000,
    should_retry: Optional[Callable[[BaseException], bool]] = is_transient,
):
    """Decorator form of retry_with_backoff for async call sites; retries transient errors only."""

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs) -> T:
            return await retry_with_backoff(
                lambda: func(*args, **kwargs),
                max_retries=max_retries,
                base_delay_ms=base_delay_ms,
                should_retry=should_retry,
            )

        return wrapper

    return decorator
