"""In-memory event log store, mainly for tests."""

from typing import Any
from zoneinfo import ZoneInfo

from ..config import DEFAULT_TIMEZONE
from ..errors import NotInitializedError
from ..models import (
    ApprovalEvent,
    ApprovalEventQuery,
    ApprovalEventRecord,
    ApprovalEventType,
    LogEntry,
    extract_sim_run_id,
    parse_stored_payload,
    payload_text,
)
from ..time_utils import get_zone
from .base import activity_window


class InMemoryEventLogStore:
    """Same observable behaviour as SqliteEventLogStore, nothing persisted."""

    def __init__(self, tz: ZoneInfo | None = None):
        self._tz = tz or get_zone(DEFAULT_TIMEZONE)
        self._ready = False
        self._log_entries: list[LogEntry] = []
        self._events: dict[str, ApprovalEventRecord] = {}
        self._event_keys: set[tuple[str, str, str, str]] = set()
        self._next_id = 1

    async def init(self) -> None:
        self._ready = True

    async def close(self) -> None:
        self._ready = False

    def _require_ready(self) -> None:
        if not self._ready:
            raise NotInitializedError("Storage")

    # Log entries
    async def append_log_entry(self, entry: LogEntry) -> int:
        self._require_ready()

        row_id = self._next_id
        self._next_id += 1
        self._log_entries.append(
            LogEntry(
                id=row_id,
                instance_id=entry.instance_id,
                service=entry.service,
                level=entry.level,
                message=entry.message,
                username=entry.username,
                event_time=entry.event_time,
                created_at=entry.created_at,
                org_id=entry.org_id or "",
            )
        )
        return row_id

    async def list_log_entries(self, instance_id: str) -> list[LogEntry]:
        self._require_ready()

        entries = [e for e in self._log_entries if e.instance_id == instance_id]
        return sorted(entries, key=lambda e: (e.event_time, e.id))

    async def query_activity_by_month(
        self,
        month: str,
        year: int | str,
        *,
        username: str | None = None,
        org_id: str | None = None,
        tz: ZoneInfo | None = None,
    ) -> list[LogEntry]:
        self._require_ready()

        window = activity_window(month, year, tz or self._tz)
        if window is None:
            return []
        start, end = window

        entries = [
            e
            for e in self._log_entries
            if start <= e.event_time < end
            and (not org_id or e.org_id == org_id)
            and (not username or e.username == username)
        ]
        return sorted(entries, key=lambda e: (e.event_time, e.id), reverse=True)

    # Approval events
    async def insert_approval_event(self, event: ApprovalEvent) -> bool:
        self._require_ready()

        if event.idempotency_key in self._event_keys or event.event_id in self._events:
            return False

        payload = event.resolved_payload()
        self._events[event.event_id] = ApprovalEventRecord(
            event_id=event.event_id,
            org_id=event.org_id,
            agent_name=event.agent_name,
            decision_point_id=event.decision_point_id,
            event_type=event.event_type,
            created_at=event.created_at,
            payload_json=payload_text(payload),
            sim_run_id=extract_sim_run_id(payload),
        )
        self._event_keys.add(event.idempotency_key)
        return True

    def _sorted_events(self) -> list[ApprovalEventRecord]:
        return sorted(self._events.values(), key=lambda r: (r.created_at, r.event_id))

    async def get_approval_events_by_decision_point(
        self, org_id: str, agent_name: str, decision_point_id: str
    ) -> list[ApprovalEventRecord]:
        self._require_ready()

        return [
            r
            for r in self._sorted_events()
            if (r.org_id, r.agent_name, r.decision_point_id)
            == (org_id, agent_name, decision_point_id)
        ]

    async def get_approval_request_by_decision_point(
        self, org_id: str, agent_name: str, decision_point_id: str
    ) -> Any | None:
        records = await self.get_approval_events_by_decision_point(
            org_id, agent_name, decision_point_id
        )
        for record in records:
            if record.event_type == ApprovalEventType.APPROVAL_REQUEST:
                return parse_stored_payload(record.payload_json)
        return None

    async def query_approval_events(
        self, query: ApprovalEventQuery
    ) -> list[ApprovalEventRecord]:
        self._require_ready()

        matches = [r for r in self._sorted_events() if query.matches(r)]
        offset = query.offset or 0
        if query.limit is None:
            return matches[offset:]
        return matches[offset:offset + query.limit]
