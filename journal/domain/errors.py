"""
Error types for the health journal.

Validation failures are ordinary outcomes and normally travel as a
``ValidationResult``; the classes here cover what has to cross a ``Result``
boundary or be recorded on the gateway's diagnostic channel.
"""


class JournalError(Exception):
    """Base class for all journal errors."""


class ReadingRejected(JournalError):
    """
    Raised into a Result when a candidate reading fails validation.

    Carries the field-level messages so the caller can redisplay them.
    """

    def __init__(self, errors: list[str]) -> None:
        super().__init__("; ".join(errors) or "reading rejected")
        self.errors = list(errors)


class StorageReadError(JournalError):
    """
    A stored collection could not be parsed.

    Never raised to repository callers: the collection reads as empty and the
    error is recorded on the gateway for diagnostics.
    """

    def __init__(self, key: str, reason: str) -> None:
        super().__init__(f"Unreadable collection under {key!r}: {reason}")
        self.key = key
        self.reason = reason


class StorageWriteError(JournalError):
    """The key-value store rejected a write. Prior persisted state is unchanged."""

    def __init__(self, key: str, reason: str) -> None:
        super().__init__(f"Could not write collection under {key!r}: {reason}")
        self.key = key
        self.reason = reason
