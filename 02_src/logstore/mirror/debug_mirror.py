"""Human-readable monthly log files mirrored from the canonical store."""

from pathlib import Path
from zoneinfo import ZoneInfo

from ..models import LogEntry
from ..time_utils import (
    format_display_timestamp,
    parse_instant,
    partition_filename,
    utc_now,
)
from .batcher import BatchFlushEngine


class DebugLogMirror:
    """Formats log entries as text lines and routes them to month files.

    Lines look like ``Mon Jan 12 14:10:15 PST 2026: [instance] message`` and
    go to ``<log_dir>/<prefix>-<mmm>-<yyyy>.log``, both in the display zone.
    """

    def __init__(
        self,
        engine: BatchFlushEngine,
        log_dir: Path,
        tz: ZoneInfo,
        prefix: str = "amp",
    ):
        self._engine = engine
        self._log_dir = Path(log_dir)
        self._tz = tz
        self._prefix = prefix

    @property
    def engine(self) -> BatchFlushEngine:
        return self._engine

    def _instant(self, entry: LogEntry):
        return parse_instant(entry.event_time) or parse_instant(entry.created_at) or utc_now()

    def target_for(self, entry: LogEntry) -> Path:
        return self._log_dir / partition_filename(self._prefix, self._instant(entry), self._tz)

    def format_line(self, entry: LogEntry) -> str:
        stamp = format_display_timestamp(self._instant(entry), self._tz)
        instance_part = f" [{entry.instance_id}]" if entry.instance_id else ""
        return f"{stamp}:{instance_part} {entry.message}\n"

    async def record(self, entry: LogEntry) -> None:
        await self._engine.add(self.target_for(entry), self.format_line(entry))
