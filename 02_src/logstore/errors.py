"""Error types raised by the log store and the debug mirror."""

from pathlib import Path


class EventLogStoreError(Exception):
    """Base class for log store errors."""


class NotInitializedError(EventLogStoreError, RuntimeError):
    """An operation was called before init()."""

    def __init__(self, component: str = "Storage"):
        super().__init__(f"{component} not initialized")


class WriteFailedError(EventLogStoreError):
    """The underlying storage rejected a write.

    Not retried internally. ``retryable`` is set when the failure came from
    lock contention (busy timeout) rather than a hard I/O error.
    """

    def __init__(self, message: str, *, retryable: bool = False):
        super().__init__(message)
        self.retryable = retryable


class LockTimeoutError(EventLogStoreError):
    """A cross-process file lock could not be taken within the retry budget."""

    retryable = True

    def __init__(self, path: Path, attempts: int):
        super().__init__(f"Could not lock {path} after {attempts} attempts")
        self.path = path
        self.attempts = attempts
