"""Debounced, batched appends for the debug mirror."""

import asyncio
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Awaitable, Callable, Protocol

from ..logging_config import get_logger
from .writer import IPartitionWriter

logger = get_logger(__name__)


FlushHook = Callable[[Path, list[str]], Awaitable[None]]


class ITimerHandle(Protocol):
    def cancel(self) -> None:
        ...


class IScheduler(Protocol):
    """Anything with asyncio's ``loop.call_later`` shape."""

    def call_later(
        self, delay: float, callback: Callable[..., None], *args: Any
    ) -> ITimerHandle:
        ...


@dataclass
class PendingBatch:
    """Lines waiting for one partition file, plus the timer armed for them."""

    target: Path
    lines: list[str] = field(default_factory=list)
    timer: ITimerHandle | None = None


class BatchFlushEngine:
    """Groups bursts of lines and writes each group with one locked append.

    A batch flushes when it reaches ``max_batch`` lines (inside the caller's
    ``add``; errors propagate) or ``flush_delay`` seconds after its first
    line (in the background; errors are logged and the batch is dropped).
    Later lines never push the timer back.
    """

    def __init__(
        self,
        writer: IPartitionWriter,
        max_batch: int = 5,
        flush_delay: float = 1.0,
        scheduler: IScheduler | None = None,
        on_flush: FlushHook | None = None,
    ):
        if max_batch < 1:
            raise ValueError("max_batch must be >= 1")
        self._writer = writer
        self._max_batch = max_batch
        self._flush_delay = flush_delay
        self._scheduler = scheduler
        self._on_flush = on_flush

        self._pending: dict[Path, PendingBatch] = {}
        self._tasks: set[asyncio.Task] = set()
        self._write_lock = asyncio.Lock()

    def pending_lines(self, target: Path) -> list[str]:
        batch = self._pending.get(Path(target))
        return list(batch.lines) if batch else []

    def is_armed(self, target: Path) -> bool:
        batch = self._pending.get(Path(target))
        return batch is not None and batch.timer is not None

    async def add(self, target: Path, line: str) -> None:
        """Buffer a line for ``target``; flushes right away at the size limit."""
        target = Path(target)
        batch = self._pending.get(target)
        if batch is None:
            batch = PendingBatch(target=target)
            self._pending[target] = batch

        batch.lines.append(line)

        if len(batch.lines) >= self._max_batch:
            await self._flush(batch, raise_errors=True)
        elif batch.timer is None:
            scheduler = self._scheduler or asyncio.get_running_loop()
            batch.timer = scheduler.call_later(self._flush_delay, self._on_timer, batch)

    def _on_timer(self, batch: PendingBatch) -> None:
        batch.timer = None
        self._spawn(self._flush(batch, raise_errors=False))

    def _spawn(self, coro: Awaitable[None]) -> None:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _take(self, batch: PendingBatch) -> list[str]:
        """Detach a batch so new lines start a fresh one. Must not await."""
        if self._pending.get(batch.target) is not batch:
            # Already flushed by the size trigger; this is a late timer.
            return []
        del self._pending[batch.target]
        if batch.timer is not None:
            batch.timer.cancel()
            batch.timer = None
        return batch.lines

    async def _flush(self, batch: PendingBatch, raise_errors: bool) -> None:
        lines = self._take(batch)
        if not lines:
            return

        try:
            async with self._write_lock:
                await self._writer.append(batch.target, lines)
        except Exception:
            if raise_errors:
                raise
            logger.error(
                "Dropped %d mirror lines for %s after failed flush",
                len(lines),
                batch.target,
                exc_info=True,
            )
            return

        logger.debug("Flushed %d lines to %s", len(lines), batch.target)
        if self._on_flush:
            self._spawn(self._run_hook(batch.target, lines))

    async def _run_hook(self, target: Path, lines: list[str]) -> None:
        try:
            await self._on_flush(target, lines)
        except Exception as e:
            logger.warning("Flush hook failed for %s: %s", target, e)

    async def drain(self) -> None:
        """Wait for background flushes and hooks that are already running."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def close(self) -> None:
        """Flush every pending batch now; failures are logged, not raised."""
        for batch in list(self._pending.values()):
            await self._flush(batch, raise_errors=False)
        await self.drain()
