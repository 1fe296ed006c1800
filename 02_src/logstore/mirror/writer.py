"""Locked appends to partition files."""

import asyncio
from pathlib import Path
from typing import Protocol, Sequence

from ..errors import WriteFailedError
from .file_lock import FileLock


class IPartitionWriter(Protocol):
    """Appends a batch of lines to one partition file."""

    async def append(self, path: Path, lines: Sequence[str]) -> None:
        """Append all lines in a single write."""
        ...


class PartitionFileWriter:
    """Appends under a FileLock so several processes can share a file."""

    def __init__(
        self,
        lock_retries: int = 5,
        min_backoff: float = 0.1,
        max_backoff: float = 1.0,
    ):
        self._lock_retries = lock_retries
        self._min_backoff = min_backoff
        self._max_backoff = max_backoff

    async def append(self, path: Path, lines: Sequence[str]) -> None:
        """Lock, create if absent, write every line at once, unlock.

        Raises LockTimeoutError when the lock cannot be taken and
        WriteFailedError on I/O errors.
        """
        path = Path(path)
        data = "".join(lines)

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            async with FileLock(
                path,
                retries=self._lock_retries,
                min_backoff=self._min_backoff,
                max_backoff=self._max_backoff,
            ):
                await asyncio.to_thread(self._append_sync, path, data)
        except OSError as exc:
            raise WriteFailedError(f"Failed to append to {path}: {exc}") from exc

    @staticmethod
    def _append_sync(path: Path, data: str) -> None:
        with open(path, "a", encoding="utf-8") as f:
            f.write(data)
