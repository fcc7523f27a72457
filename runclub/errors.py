"""
Domain errors and translation of backend failures into user-facing messages.
"""

from __future__ import annotations

from typing import Optional

from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectionError as BotoConnectionError,
    NoCredentialsError,
)

RETRYABLE_CODES = frozenset(
    {
        "NetworkError",
        "NetworkingError",
        "ServiceUnavailable",
        "ThrottlingException",
        "ProvisionedThroughputExceededException",
        "InternalError",
        "RequestTimeout",
        "DatabaseUnavailable",
    }
)

_MESSAGES = {
    "NoSuchKey": "File not found: {target}",
    "NoSuchBucket": "Bucket not found: {target}",
    "ResourceNotFoundException": "Table not found: {target}",
    "AccessDenied": "Access to storage was denied. Contact an administrator.",
    "AccessDeniedException": "Access to storage was denied. Contact an administrator.",
    "NetworkError": "Check your network connection.",
    "NetworkingError": "Check your network connection.",
    "InvalidAccessKeyId": "AWS authentication failed. Check the configuration.",
    "SignatureDoesNotMatch": "AWS authentication failed. Check the configuration.",
    "UnrecognizedClientException": "AWS authentication failed. Check the configuration.",
    "NoCredentials": "AWS credentials are not configured.",
    "ServiceUnavailable": "The storage service is temporarily unavailable. Try again shortly.",
    "ThrottlingException": "Too many requests. Try again shortly.",
    "ProvisionedThroughputExceededException": "Too many requests. Try again shortly.",
    "InvalidData": "Stored data has an invalid format: {target}",
}


class ClubError(Exception):
    """Base class for errors raised by club operations."""


class ValidationError(ClubError):
    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field
        self.message = message


class NotFoundError(ClubError):
    def __init__(self, kind: str, item_id: str):
        super().__init__(f"{kind} not found: {item_id}")
        self.kind = kind
        self.item_id = item_id


class ConflictError(ClubError):
    pass


class StorageError(ClubError):
    """A storage backend call failed. ``code`` is the backend error code."""

    def __init__(
        self,
        message: str,
        *,
        code: Optional[str] = None,
        operation: Optional[str] = None,
        target: Optional[str] = None,
        retryable: Optional[bool] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.operation = operation
        self.target = target
        self.retryable = code in RETRYABLE_CODES if retryable is None else retryable


def error_code(exc: BaseException) -> str:
    if isinstance(exc, ClientError):
        return exc.response.get("Error", {}).get("Code") or "ClientError"
    if isinstance(exc, NoCredentialsError):
        return "NoCredentials"
    if isinstance(exc, BotoConnectionError):
        return "NetworkingError"
    if isinstance(exc, BotoCoreError):
        return type(exc).__name__
    return getattr(exc, "code", None) or type(exc).__name__


def user_message(code: str, operation: str, target: str) -> str:
    template = _MESSAGES.get(code)
    if template:
        return template.format(target=target)
    if operation == "load":
        return "Failed to load data. Refresh and try again."
    return "Failed to save data. Try again."


def storage_error_from(
    exc: BaseException, operation: str, target: str
) -> StorageError:
    """Wrap a backend exception in a StorageError with a readable message."""
    if isinstance(exc, StorageError):
        return exc
    code = error_code(exc)
    return StorageError(
        user_message(code, operation, target),
        code=code,
        operation=operation,
        target=target,
    )
