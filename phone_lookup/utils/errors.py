"""Custom exception classes for phone directory errors."""

from __future__ import annotations


class PhoneLookupError(Exception):
    """Base exception for phone directory failures."""

    def __init__(self, message: str, phone: str | None = None, transient: bool = False):
        super().__init__(message)
        self.phone = phone
        self.transient = transient


class RecordError(PhoneLookupError):
    """Raised for a single bad upload record. Counted, never fatal to a batch."""


class InvalidPhoneError(RecordError):
    """Raised when a phone value does not yield 10 usable digits."""

    def __init__(self, raw: object, message: str = "Invalid phone number"):
        super().__init__(f"{message}: {raw!r}", phone=None if raw is None else str(raw))
        self.raw = raw


class MalformedRecordError(RecordError):
    """Raised when an upload record is missing its phone or person."""

    def __init__(self, message: str, index: int | None = None):
        super().__init__(message)
        self.index = index


class DuplicateKeyError(RecordError):
    """Raised when inserting a phone record whose key already exists."""

    def __init__(self, key: str):
        super().__init__(f"Phone record {key} already exists", phone=key)
        self.key = key


class StoreUnavailableError(PhoneLookupError):
    """Raised when the record store cannot be reached. Aborts the whole batch."""

    def __init__(self, operation: str, message: str, phone: str | None = None):
        super().__init__(
            f"Store unavailable during {operation}: {message}",
            phone=phone,
            transient=True,
        )
        self.operation = operation
