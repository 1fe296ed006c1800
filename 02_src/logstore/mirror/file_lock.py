"""Cross-process advisory lock on a file.

The lock is an exclusive ``flock`` on a ``<file>.lock`` companion file. The
kernel drops it when the holder closes the descriptor or dies, so a crashed
holder never leaves a stale lock behind. The companion file itself is left
in place; unlinking it would let two processes lock different inodes.
"""

import asyncio
import fcntl
import os
from pathlib import Path

from ..errors import LockTimeoutError
from ..logging_config import get_logger

logger = get_logger(__name__)


class FileLock:
    """Async context manager: non-blocking attempts, capped backoff between them."""

    def __init__(
        self,
        path: str | Path,
        retries: int = 5,
        min_backoff: float = 0.1,
        max_backoff: float = 1.0,
    ):
        self._target = Path(path)
        self._lock_path = self._target.with_name(self._target.name + ".lock")
        self._retries = retries
        self._min_backoff = min_backoff
        self._max_backoff = max_backoff
        self._fd: int | None = None

    @property
    def lock_path(self) -> Path:
        return self._lock_path

    @property
    def held(self) -> bool:
        return self._fd is not None

    def _try_lock(self) -> bool:
        fd = os.open(self._lock_path, os.O_RDWR | os.O_CREAT, 0o644)
        try:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError:
            os.close(fd)
            return False
        except BaseException:
            os.close(fd)
            raise
        self._fd = fd
        return True

    async def acquire(self) -> None:
        if self._fd is not None:
            raise RuntimeError(f"Lock {self._lock_path} already held")

        delay = self._min_backoff
        for attempt in range(self._retries + 1):
            if self._try_lock():
                return
            if attempt < self._retries:
                logger.debug("Lock %s busy, retrying in %.2fs", self._lock_path, delay)
                await asyncio.sleep(delay)
                delay = min(delay * 2, self._max_backoff)

        raise LockTimeoutError(self._target, self._retries + 1)

    def release(self) -> None:
        if self._fd is None:
            return
        fd, self._fd = self._fd, None
        try:
            fcntl.flock(fd, fcntl.LOCK_UN)
        finally:
            os.close(fd)

    async def __aenter__(self) -> "FileLock":
        await self.acquire()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.release()
