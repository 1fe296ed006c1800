"""Tests for EventLogService."""

import pytest
import pytest_asyncio

from logstore.config import Settings
from logstore.errors import NotInitializedError, WriteFailedError
from logstore.models import ApprovalEventQuery
from logstore.service import EventLogService
from logstore.storage import InMemoryEventLogStore

from factories import make_approval_event, make_log_entry


@pytest_asyncio.fixture
async def service(mirror_dir, scheduler):
    """Create a started service with the debug mirror enabled."""
    settings = Settings(
        db_path=":memory:",
        log_dir=mirror_dir,
        mirror_enabled=True,
        batch_size=2,
    )
    svc = EventLogService(settings, scheduler=scheduler)
    await svc.start()
    yield svc
    await svc.stop()


class TestServiceLifecycle:
    """Tests for start/stop."""

    async def test_store_requires_start(self):
        svc = EventLogService(Settings(db_path=":memory:"))
        with pytest.raises(NotInitializedError, match="EventLogService"):
            await svc.record_log_entry(make_log_entry())

    async def test_start_is_idempotent(self):
        svc = EventLogService(Settings(db_path=":memory:"))
        await svc.start()
        await svc.start()
        await svc.record_log_entry(make_log_entry(instance_id="i1"))
        assert len(await svc.list_log_entries("i1")) == 1
        await svc.stop()

    async def test_stop_flushes_pending_mirror_lines(self, mirror_dir, scheduler):
        settings = Settings(db_path=":memory:", log_dir=mirror_dir, mirror_enabled=True)
        svc = EventLogService(settings, scheduler=scheduler)
        await svc.start()
        await svc.record_log_entry(
            make_log_entry(instance_id="i1", event_time="2026-01-12T22:10:15Z")
        )

        await svc.stop()

        content = (mirror_dir / "amp-jan-2026.log").read_text(encoding="utf-8")
        assert content == "Mon Jan 12 14:10:15 PST 2026: [i1] state - active\n"


class TestServiceLogEntries:
    """Tests for record_log_entry()."""

    async def test_writes_store_and_mirror(self, service, mirror_dir):
        await service.record_log_entry(make_log_entry(instance_id="i1", message="one"))
        await service.record_log_entry(make_log_entry(instance_id="i1", message="two"))

        entries = await service.list_log_entries("i1")
        assert [e.message for e in entries] == ["one", "two"]

        lines = (mirror_dir / "amp-jan-2026.log").read_text(encoding="utf-8").splitlines()
        assert [line.split("] ", 1)[1] for line in lines] == ["one", "two"]

    async def test_mirror_disabled(self, mirror_dir):
        svc = EventLogService(Settings(db_path=":memory:", log_dir=mirror_dir))
        await svc.start()
        try:
            assert svc.mirror is None
            await svc.record_log_entry(make_log_entry(instance_id="i1"))
        finally:
            await svc.stop()

        assert list(mirror_dir.iterdir()) == []

    async def test_mirror_failure_keeps_canonical_row(self, tmp_path):
        """Test that a size-triggered mirror failure reaches the caller after the insert."""
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        settings = Settings(
            db_path=":memory:",
            log_dir=blocker / "mirror",
            mirror_enabled=True,
            batch_size=1,
        )
        svc = EventLogService(settings)
        await svc.start()
        try:
            with pytest.raises(WriteFailedError):
                await svc.record_log_entry(make_log_entry(instance_id="i1"))
            assert len(await svc.list_log_entries("i1")) == 1
        finally:
            await svc.stop()

    async def test_activity_by_month(self, service):
        await service.record_log_entry(
            make_log_entry(instance_id="i1", event_time="2026-02-01T07:10:00Z", username="alice")
        )
        entries = await service.query_activity_by_month("jan", 2026, username="alice")
        assert len(entries) == 1


class TestServiceApprovalEvents:
    """Tests for approval event passthrough."""

    async def test_record_is_idempotent(self, service):
        event = make_approval_event(org_id="O1", agent_name="A1", decision_point_id="D1")
        assert await service.record_approval_event(event) is True
        assert await service.record_approval_event(event) is False

        records = await service.get_approval_events_by_decision_point("O1", "A1", "D1")
        assert len(records) == 1

    async def test_reads_delegate(self, service):
        event = make_approval_event(
            org_id="O1", agent_name="A1", decision_point_id="D1", payload={"amount": 3}
        )
        await service.record_approval_event(event)

        assert await service.get_approval_request_by_decision_point("O1", "A1", "D1") == {
            "amount": 3
        }
        records = await service.query_approval_events(ApprovalEventQuery("O1", "A1"))
        assert [r.event_id for r in records] == [event.event_id]

    async def test_with_memory_store(self):
        svc = EventLogService(Settings(), store=InMemoryEventLogStore())
        await svc.start()
        try:
            assert await svc.record_approval_event(make_approval_event()) is True
        finally:
            await svc.stop()
