"""Typed errors for the object store."""

from __future__ import annotations


class SfssError(Exception):
    """Base exception for all object store errors."""


class IngestRejectedError(SfssError):
    """Raised when an upload is refused before anything is written."""

    status_code = 400


class EmptyPayloadError(IngestRejectedError):
    """Raised for zero-length uploads."""

    def __init__(self) -> None:
        super().__init__("Uploaded content is empty.")


class PayloadTooLargeError(IngestRejectedError):
    """Raised when an upload exceeds the configured size limit."""

    status_code = 413

    def __init__(self, size: int, limit: int) -> None:
        self.size = size
        self.limit = limit
        super().__init__(f"Uploaded content is {size} bytes; the limit is {limit} bytes.")


class ObjectNotFoundError(SfssError):
    """Raised when no object is stored under a code."""

    def __init__(self, code: str) -> None:
        self.code = code
        super().__init__(f"Object not found: {code}")


class StorageError(SfssError):
    """Raised when the storage backend fails (I/O, network, corrupt metadata)."""

    def __init__(self, code: str, reason: str) -> None:
        self.code = code
        self.reason = reason
        super().__init__(f"Storage failure for {code}: {reason}")


class ObjectIntegrityError(StorageError):
    """Raised when stored bytes no longer match their recorded SHA-256 digest."""

    def __init__(self, code: str, expected: str, actual: str) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(code, f"integrity check failed: expected sha256={expected}, got {actual}")
