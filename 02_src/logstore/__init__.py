"""Durable event log store for agent log lines and approval events."""

from .config import Settings, load_settings
from .errors import (
    EventLogStoreError,
    LockTimeoutError,
    NotInitializedError,
    WriteFailedError,
)
from .mirror import BatchFlushEngine, DebugLogMirror, FileLock, PartitionFileWriter
from .models import (
    ApprovalEvent,
    ApprovalEventQuery,
    ApprovalEventRecord,
    ApprovalEventType,
    LogEntry,
)
from .service import EventLogService, IEventLogService, create_service
from .storage import IEventLogStore, InMemoryEventLogStore, SqliteEventLogStore

__all__ = [
    # Service
    "EventLogService",
    "IEventLogService",
    "create_service",
    "Settings",
    "load_settings",
    # Models
    "LogEntry",
    "ApprovalEvent",
    "ApprovalEventQuery",
    "ApprovalEventRecord",
    "ApprovalEventType",
    # Storage
    "IEventLogStore",
    "SqliteEventLogStore",
    "InMemoryEventLogStore",
    # Debug mirror
    "BatchFlushEngine",
    "DebugLogMirror",
    "FileLock",
    "PartitionFileWriter",
    # Errors
    "EventLogStoreError",
    "NotInitializedError",
    "WriteFailedError",
    "LockTimeoutError",
]
