"""Event log store contract."""

from typing import Any, Protocol
from zoneinfo import ZoneInfo

from ..models import ApprovalEvent, ApprovalEventQuery, ApprovalEventRecord, LogEntry
from ..time_utils import month_bounds_utc, month_from_abbreviation, to_iso_z


class IEventLogStore(Protocol):
    """Append-only persistence for log entries and approval events."""

    async def init(self) -> None:
        """Create schema and apply migrations. Idempotent."""
        ...

    async def close(self) -> None:
        """Release the underlying resources."""
        ...

    # Log entries
    async def append_log_entry(self, entry: LogEntry) -> int:
        """Insert one log entry; returns its insertion sequence."""
        ...

    async def list_log_entries(self, instance_id: str) -> list[LogEntry]:
        """All entries for an instance by (event_time, insertion sequence)."""
        ...

    async def query_activity_by_month(
        self,
        month: str,
        year: int | str,
        *,
        username: str | None = None,
        org_id: str | None = None,
        tz: ZoneInfo | None = None,
    ) -> list[LogEntry]:
        """Entries inside a calendar month of the display zone, newest first."""
        ...

    # Approval events
    async def insert_approval_event(self, event: ApprovalEvent) -> bool:
        """Insert unless the idempotency key exists. True if a row was created."""
        ...

    async def get_approval_events_by_decision_point(
        self, org_id: str, agent_name: str, decision_point_id: str
    ) -> list[ApprovalEventRecord]:
        """All events of one decision point by created_at."""
        ...

    async def get_approval_request_by_decision_point(
        self, org_id: str, agent_name: str, decision_point_id: str
    ) -> Any | None:
        """Payload of the earliest approval_request of a decision point."""
        ...

    async def query_approval_events(
        self, query: ApprovalEventQuery
    ) -> list[ApprovalEventRecord]:
        """Filtered, paginated events by (created_at, event_id)."""
        ...


def activity_window(
    month: str, year: int | str, tz: ZoneInfo
) -> tuple[str, str] | None:
    """[start, end) of a calendar month in ``tz`` as UTC ISO text.

    None when the month abbreviation or the year is not usable.
    """
    month_index = month_from_abbreviation(month)
    if month_index is None:
        return None
    try:
        year_value = int(year)
    except (TypeError, ValueError):
        return None
    if not 1 <= year_value <= 9998:
        return None

    start, end = month_bounds_utc(month_index, year_value, tz)
    return to_iso_z(start), to_iso_z(end)
