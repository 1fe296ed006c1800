"""Tests for SqliteEventLogStore specifics: schema, migrations, failures."""

import asyncio

import aiosqlite
import pytest

from logstore.errors import WriteFailedError
from logstore.storage import SqliteEventLogStore

from factories import make_approval_event, make_log_entry

LEGACY_SCHEMA = """
CREATE TABLE agent_logs (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    instance_id TEXT NOT NULL,
    service TEXT NOT NULL,
    level TEXT NOT NULL,
    message TEXT NOT NULL,
    username TEXT NOT NULL,
    event_time TEXT NOT NULL,
    created_at TEXT NOT NULL
);
CREATE TABLE approval_events (
    event_id TEXT PRIMARY KEY,
    org_id TEXT NOT NULL,
    agent_name TEXT NOT NULL,
    decision_point_id TEXT NOT NULL,
    event_type TEXT NOT NULL,
    created_at TEXT NOT NULL,
    payload_json TEXT NOT NULL
);
INSERT INTO agent_logs (instance_id, service, level, message, username, event_time, created_at)
VALUES ('legacy-1', 'agent-email', 'info', 'from before tenants', 'old@example.com',
        '2025-12-01T10:00:00Z', '2025-12-01T10:00:00Z');
"""


async def _columns(conn, table: str) -> list[str]:
    async with conn.execute(f"PRAGMA table_info({table})") as cursor:
        return [row[1] for row in await cursor.fetchall()]


class TestStorageInit:
    """Tests for schema creation."""

    async def test_init_creates_tables(self, storage):
        """Test that init creates both tables."""
        async with storage._conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table'"
        ) as cursor:
            tables = [row[0] for row in await cursor.fetchall()]
            assert "agent_logs" in tables
            assert "approval_events" in tables

    async def test_init_creates_indexes(self, storage):
        """Test that every query path has an index."""
        async with storage._conn.execute(
            "SELECT name FROM sqlite_master WHERE type='index'"
        ) as cursor:
            indexes = {row[0] for row in await cursor.fetchall()}

        assert {
            "idx_agent_logs_instance_time",
            "idx_agent_logs_event_time",
            "idx_agent_logs_org_instance_time",
            "uniq_approval_events_idempotent",
            "idx_approval_events_created",
            "idx_approval_events_decision",
            "idx_approval_events_type_created",
            "idx_approval_events_sim_run",
        } <= indexes

    async def test_busy_timeout_configured(self, storage):
        """Test that writers wait for the lock instead of failing at once."""
        async with storage._conn.execute("PRAGMA busy_timeout") as cursor:
            row = await cursor.fetchone()
        assert row[0] == 5000

    async def test_file_store_uses_wal(self, tmp_path):
        """Test WAL journaling on a file-backed store."""
        st = SqliteEventLogStore(tmp_path / "logs.db")
        await st.init()
        try:
            async with st._conn.execute("PRAGMA journal_mode") as cursor:
                row = await cursor.fetchone()
            assert row[0].lower() == "wal"
        finally:
            await st.close()

    async def test_creates_parent_directory(self, tmp_path):
        db_path = tmp_path / "nested" / "dir" / "logs.db"
        st = SqliteEventLogStore(db_path)
        await st.init()
        await st.close()
        assert db_path.exists()


class TestStorageMigrations:
    """Tests for additive migrations on an existing database."""

    async def test_legacy_database_is_migrated(self, tmp_path):
        """Test that org_id and sim_run_id are added to an old schema."""
        db_path = tmp_path / "legacy.db"
        async with aiosqlite.connect(db_path) as conn:
            await conn.executescript(LEGACY_SCHEMA)
            await conn.commit()

        st = SqliteEventLogStore(db_path)
        await st.init()
        try:
            assert "org_id" in await _columns(st._conn, "agent_logs")
            assert "sim_run_id" in await _columns(st._conn, "approval_events")

            (legacy,) = await st.list_log_entries("legacy-1")
            assert legacy.org_id == ""
            assert legacy.message == "from before tenants"

            event = make_approval_event(payload={"sim_run_id": "run-1"})
            assert await st.insert_approval_event(event) is True
        finally:
            await st.close()

    async def test_repeated_startup_is_noop(self, tmp_path):
        """Test that a second process start on a migrated store succeeds."""
        db_path = tmp_path / "logs.db"

        first = SqliteEventLogStore(db_path)
        await first.init()
        await first.append_log_entry(make_log_entry(instance_id="i1"))
        await first.close()

        second = SqliteEventLogStore(db_path)
        await second.init()
        try:
            assert len(await second.list_log_entries("i1")) == 1
        finally:
            await second.close()

    async def test_close_then_init_reopens(self, tmp_path):
        st = SqliteEventLogStore(tmp_path / "logs.db")
        await st.init()
        await st.close()
        await st.init()
        try:
            assert await st.list_log_entries("i1") == []
        finally:
            await st.close()


class TestStorageWriteFailures:
    """Tests for WriteFailedError wrapping."""

    async def test_append_failure_is_wrapped(self, storage):
        """Test that an SQLite error surfaces as WriteFailedError."""
        await storage._conn.execute("DROP TABLE agent_logs")
        await storage._conn.commit()

        with pytest.raises(WriteFailedError, match="append log entry") as exc_info:
            await storage.append_log_entry(make_log_entry())
        assert exc_info.value.retryable is False

    async def test_insert_failure_is_wrapped(self, storage):
        await storage._conn.execute("DROP TABLE approval_events")
        await storage._conn.commit()

        with pytest.raises(WriteFailedError, match="insert approval event"):
            await storage.insert_approval_event(make_approval_event())

    async def test_store_usable_after_failure(self, storage):
        """Test that a failed write leaves no open transaction behind."""
        with pytest.raises(WriteFailedError):
            await storage._write("run bad statement", "INSERT INTO nowhere VALUES (?)", (1,))

        await storage.append_log_entry(make_log_entry(instance_id="i1"))
        assert len(await storage.list_log_entries("i1")) == 1

    async def test_failed_write_does_not_undo_concurrent_write(self, storage):
        """Test that a rollback for one writer never discards another's insert."""
        bad = make_log_entry(instance_id="i1", username=None, message="bad")
        good = make_log_entry(instance_id="i1", message="good")

        results = await asyncio.gather(
            storage.append_log_entry(bad),
            storage.append_log_entry(good),
            storage.append_log_entry(bad),
            storage.append_log_entry(good),
            return_exceptions=True,
        )

        assert isinstance(results[0], WriteFailedError)
        assert isinstance(results[2], WriteFailedError)
        entries = await storage.list_log_entries("i1")
        assert [e.message for e in entries] == ["good", "good"]
        assert [e.id for e in entries] == [results[1], results[3]]


class TestStorageSimRunId:
    """Tests for sim_run_id enrichment."""

    async def test_sim_run_id_column_populated(self, storage):
        event = make_approval_event(payload={"sim_run_id": "run-42"})
        await storage.insert_approval_event(event)

        async with storage._conn.execute(
            "SELECT sim_run_id FROM approval_events WHERE event_id = ?",
            (event.event_id,),
        ) as cursor:
            row = await cursor.fetchone()
        assert row[0] == "run-42"

    async def test_sim_run_id_null_when_absent(self, storage):
        event = make_approval_event(payload={"no": "run"})
        await storage.insert_approval_event(event)

        async with storage._conn.execute(
            "SELECT sim_run_id FROM approval_events WHERE event_id = ?",
            (event.event_id,),
        ) as cursor:
            row = await cursor.fetchone()
        assert row[0] is None
