"""SQLite event log store."""

import asyncio
import sqlite3
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo

import aiosqlite

from ..config import DEFAULT_TIMEZONE, PathLike, resolve_db_path
from ..errors import NotInitializedError, WriteFailedError
from ..logging_config import get_logger
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

logger = get_logger(__name__)

DEFAULT_BUSY_TIMEOUT_MS = 5000

# Additive only; "duplicate column" means the store is already migrated.
MIGRATIONS = (
    "ALTER TABLE agent_logs ADD COLUMN org_id TEXT NOT NULL DEFAULT ''",
    "ALTER TABLE approval_events ADD COLUMN sim_run_id TEXT",
)

INDEXES = (
    "CREATE INDEX IF NOT EXISTS idx_agent_logs_instance_time"
    " ON agent_logs(instance_id, event_time)",
    "CREATE INDEX IF NOT EXISTS idx_agent_logs_event_time"
    " ON agent_logs(event_time)",
    "CREATE INDEX IF NOT EXISTS idx_agent_logs_org_instance_time"
    " ON agent_logs(org_id, instance_id, event_time)",
    "CREATE UNIQUE INDEX IF NOT EXISTS uniq_approval_events_idempotent"
    " ON approval_events(org_id, agent_name, decision_point_id, event_type)",
    "CREATE INDEX IF NOT EXISTS idx_approval_events_created"
    " ON approval_events(org_id, agent_name, created_at)",
    "CREATE INDEX IF NOT EXISTS idx_approval_events_decision"
    " ON approval_events(org_id, agent_name, decision_point_id)",
    "CREATE INDEX IF NOT EXISTS idx_approval_events_type_created"
    " ON approval_events(org_id, agent_name, event_type, created_at)",
    "CREATE INDEX IF NOT EXISTS idx_approval_events_sim_run"
    " ON approval_events(org_id, agent_name, sim_run_id, event_type, created_at)",
)

_LOG_COLUMNS = (
    "id, instance_id, service, level, message, username, event_time, created_at, org_id"
)
_EVENT_COLUMNS = (
    "event_id, org_id, agent_name, decision_point_id, event_type, created_at,"
    " payload_json, sim_run_id"
)


def _is_busy(exc: sqlite3.Error) -> bool:
    message = str(exc).lower()
    return "locked" in message or "busy" in message


def _row_to_log_entry(row: tuple) -> LogEntry:
    return LogEntry(
        id=row[0],
        instance_id=row[1],
        service=row[2],
        level=row[3],
        message=row[4],
        username=row[5],
        event_time=row[6],
        created_at=row[7],
        org_id=row[8],
    )


def _row_to_record(row: tuple) -> ApprovalEventRecord:
    return ApprovalEventRecord(
        event_id=row[0],
        org_id=row[1],
        agent_name=row[2],
        decision_point_id=row[3],
        event_type=ApprovalEventType(row[4]),
        created_at=row[5],
        payload_json=row[6],
        sim_run_id=row[7],
    )


class SqliteEventLogStore:
    """Event log store on an embedded SQLite database (WAL, bounded busy wait)."""

    def __init__(
        self,
        db_path: PathLike | None = None,
        busy_timeout_ms: int = DEFAULT_BUSY_TIMEOUT_MS,
        tz: ZoneInfo | None = None,
    ):
        self._db_path = resolve_db_path(db_path)
        self._busy_timeout_ms = busy_timeout_ms
        self._tz = tz or get_zone(DEFAULT_TIMEZONE)
        self._conn: aiosqlite.Connection | None = None
        # One connection is one transaction; writers take turns on it.
        self._write_lock = asyncio.Lock()

    async def init(self) -> None:
        """Open the database, create tables, migrate and index. Idempotent."""
        async with self._write_lock:
            if self._conn:
                return
            await self._open()
        logger.info("Event log store ready at %s", self._db_path)

    async def _open(self) -> None:
        if str(self._db_path) != ":memory:":
            Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)

        conn = await aiosqlite.connect(
            self._db_path, timeout=self._busy_timeout_ms / 1000
        )
        try:
            await conn.execute("PRAGMA journal_mode = WAL")
            await conn.execute("PRAGMA synchronous = NORMAL")
            await conn.execute(f"PRAGMA busy_timeout = {int(self._busy_timeout_ms)}")

            schema_path = Path(__file__).parent / "schema.sql"
            with open(schema_path, "r", encoding="utf-8") as f:
                schema_sql = f.read()
            await conn.executescript(schema_sql)

            for statement in MIGRATIONS:
                try:
                    await conn.execute(statement)
                except sqlite3.OperationalError as exc:
                    if "duplicate column" not in str(exc).lower():
                        raise

            for statement in INDEXES:
                await conn.execute(statement)
            await conn.commit()
        except BaseException:
            await conn.close()
            raise

        self._conn = conn

    async def close(self) -> None:
        """Close database connection."""
        async with self._write_lock:
            if self._conn:
                await self._conn.close()
                self._conn = None

    def _require_conn(self) -> aiosqlite.Connection:
        if not self._conn:
            raise NotInitializedError("Storage")
        return self._conn

    async def _write(self, action: str, sql: str, params: tuple) -> aiosqlite.Cursor:
        """Run one write statement in its own transaction."""
        async with self._write_lock:
            conn = self._require_conn()
            try:
                cursor = await conn.execute(sql, params)
                await conn.commit()
            except sqlite3.Error as exc:
                logger.error("Failed to %s: %s", action, exc)
                if conn.in_transaction:
                    await conn.rollback()
                raise WriteFailedError(
                    f"Failed to {action}: {exc}", retryable=_is_busy(exc)
                ) from exc
        return cursor

    # Log entries
    async def append_log_entry(self, entry: LogEntry) -> int:
        """Insert one log entry; returns its insertion sequence."""
        cursor = await self._write(
            "append log entry",
            """
            INSERT INTO agent_logs (
                instance_id, service, level, message, username,
                event_time, created_at, org_id
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                entry.instance_id,
                entry.service,
                entry.level,
                entry.message,
                entry.username,
                entry.event_time,
                entry.created_at,
                entry.org_id or "",
            ),
        )
        return cursor.lastrowid

    async def list_log_entries(self, instance_id: str) -> list[LogEntry]:
        """All entries for an instance by (event_time, insertion sequence)."""
        conn = self._require_conn()

        cursor = await conn.execute(
            f"""
            SELECT {_LOG_COLUMNS}
            FROM agent_logs
            WHERE instance_id = ?
            ORDER BY event_time ASC, id ASC
            """,
            (instance_id,),
        )
        rows = await cursor.fetchall()
        return [_row_to_log_entry(row) for row in rows]

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
        conn = self._require_conn()

        window = activity_window(month, year, tz or self._tz)
        if window is None:
            return []

        conditions = ["event_time >= ?", "event_time < ?"]
        params: list[Any] = list(window)
        if org_id:
            conditions.append("org_id = ?")
            params.append(org_id)
        if username:
            conditions.append("username = ?")
            params.append(username)

        cursor = await conn.execute(
            f"""
            SELECT {_LOG_COLUMNS}
            FROM agent_logs
            WHERE {' AND '.join(conditions)}
            ORDER BY event_time DESC, id DESC
            """,
            params,
        )
        rows = await cursor.fetchall()
        return [_row_to_log_entry(row) for row in rows]

    # Approval events
    async def insert_approval_event(self, event: ApprovalEvent) -> bool:
        """Insert unless the idempotency key exists. True if a row was created."""
        payload = event.resolved_payload()

        cursor = await self._write(
            "insert approval event",
            """
            INSERT OR IGNORE INTO approval_events (
                event_id, org_id, agent_name, decision_point_id,
                event_type, created_at, sim_run_id, payload_json
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                event.event_id,
                event.org_id,
                event.agent_name,
                event.decision_point_id,
                event.event_type.value,
                event.created_at,
                extract_sim_run_id(payload),
                payload_text(payload),
            ),
        )

        inserted = cursor.rowcount > 0
        if not inserted:
            logger.debug(
                "Approval event already recorded",
                extra={"context": {"event_id": event.event_id}},
            )
        return inserted

    async def get_approval_events_by_decision_point(
        self, org_id: str, agent_name: str, decision_point_id: str
    ) -> list[ApprovalEventRecord]:
        """All events of one decision point by created_at."""
        conn = self._require_conn()

        cursor = await conn.execute(
            f"""
            SELECT {_EVENT_COLUMNS}
            FROM approval_events
            WHERE org_id = ? AND agent_name = ? AND decision_point_id = ?
            ORDER BY created_at ASC, event_id ASC
            """,
            (org_id, agent_name, decision_point_id),
        )
        rows = await cursor.fetchall()
        return [_row_to_record(row) for row in rows]

    async def get_approval_request_by_decision_point(
        self, org_id: str, agent_name: str, decision_point_id: str
    ) -> Any | None:
        """Payload of the earliest approval_request; None if absent or malformed."""
        conn = self._require_conn()

        cursor = await conn.execute(
            """
            SELECT payload_json
            FROM approval_events
            WHERE org_id = ? AND agent_name = ? AND decision_point_id = ?
              AND event_type = ?
            ORDER BY created_at ASC, event_id ASC
            LIMIT 1
            """,
            (
                org_id,
                agent_name,
                decision_point_id,
                ApprovalEventType.APPROVAL_REQUEST.value,
            ),
        )
        row = await cursor.fetchone()

        if not row:
            return None
        return parse_stored_payload(row[0])

    async def query_approval_events(
        self, query: ApprovalEventQuery
    ) -> list[ApprovalEventRecord]:
        """Filtered, paginated events by (created_at, event_id)."""
        conn = self._require_conn()

        conditions = ["org_id = ?", "agent_name = ?"]
        params: list[Any] = [query.org_id, query.agent_name]

        if query.sim_run_id:
            conditions.append("sim_run_id = ?")
            params.append(query.sim_run_id)
        if query.start:
            conditions.append("created_at >= ?")
            params.append(query.start)
        if query.end:
            conditions.append("created_at <= ?")
            params.append(query.end)
        if query.event_type is not None:
            conditions.append("event_type = ?")
            params.append(query.event_type.value)

        sql = f"""
            SELECT {_EVENT_COLUMNS}
            FROM approval_events
            WHERE {' AND '.join(conditions)}
            ORDER BY created_at ASC, event_id ASC
        """
        if query.limit is not None:
            sql += " LIMIT ?"
            params.append(query.limit)
        elif query.offset:
            sql += " LIMIT -1"
        if query.offset:
            sql += " OFFSET ?"
            params.append(query.offset)

        cursor = await conn.execute(sql, params)
        rows = await cursor.fetchall()
        return [_row_to_record(row) for row in rows]
