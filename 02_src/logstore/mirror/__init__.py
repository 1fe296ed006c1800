"""Debug mirror module."""

from .batcher import BatchFlushEngine, IScheduler, PendingBatch
from .debug_mirror import DebugLogMirror
from .file_lock import FileLock
from .notifier import RefreshNotifier
from .writer import IPartitionWriter, PartitionFileWriter

__all__ = [
    "BatchFlushEngine",
    "DebugLogMirror",
    "FileLock",
    "IPartitionWriter",
    "IScheduler",
    "PartitionFileWriter",
    "PendingBatch",
    "RefreshNotifier",
]
