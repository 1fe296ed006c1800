"""Storage module."""

from .base import IEventLogStore
from .memory import InMemoryEventLogStore
from .sqlite import SqliteEventLogStore

__all__ = ["IEventLogStore", "InMemoryEventLogStore", "SqliteEventLogStore"]
