"""Log store service: the entry point the HTTP layer calls into."""

from typing import Any, Protocol

from .config import PathLike, Settings, load_settings
from .errors import NotInitializedError
from .logging_config import get_logger, setup_logging
from .mirror import (
    BatchFlushEngine,
    DebugLogMirror,
    IScheduler,
    PartitionFileWriter,
    RefreshNotifier,
)
from .models import (
    ApprovalEvent,
    ApprovalEventQuery,
    ApprovalEventRecord,
    LogEntry,
)
from .storage import IEventLogStore, SqliteEventLogStore
from .time_utils import get_zone

logger = get_logger(__name__)


class IEventLogService(Protocol):
    """Ingestion and reads for log entries and approval events."""

    async def start(self) -> None:
        """Initialize the store and the debug mirror."""
        ...

    async def stop(self) -> None:
        """Flush the mirror and close the store."""
        ...

    async def record_log_entry(self, entry: LogEntry) -> int:
        """Persist a log entry, then mirror it if the mirror is enabled."""
        ...

    async def record_approval_event(self, event: ApprovalEvent) -> bool:
        """Persist an approval event idempotently."""
        ...


class EventLogService:
    """Owns the canonical store and the optional debug mirror."""

    def __init__(
        self,
        settings: Settings | None = None,
        store: IEventLogStore | None = None,
        scheduler: IScheduler | None = None,
    ):
        self._settings = settings or Settings()
        self._tz = get_zone(self._settings.timezone)
        self._store: IEventLogStore = store or SqliteEventLogStore(
            self._settings.db_path, tz=self._tz
        )
        self._scheduler = scheduler
        self._notifier: RefreshNotifier | None = None
        self._mirror: DebugLogMirror | None = None
        self._started = False

    async def start(self) -> None:
        """Initialize components in dependency order."""
        if self._started:
            return
        logger.info("Starting event log service")

        await self._store.init()

        if self._settings.mirror_enabled:
            if self._settings.refresh_url:
                self._notifier = RefreshNotifier(self._settings.refresh_url)
            engine = BatchFlushEngine(
                PartitionFileWriter(
                    lock_retries=self._settings.lock_retries,
                ),
                max_batch=self._settings.batch_size,
                flush_delay=self._settings.flush_delay,
                scheduler=self._scheduler,
                on_flush=self._notifier,
            )
            self._mirror = DebugLogMirror(
                engine,
                log_dir=self._settings.log_dir,
                tz=self._tz,
                prefix=self._settings.mirror_prefix,
            )
            logger.info("Debug mirror writing to %s", self._settings.log_dir)

        self._started = True

    async def stop(self) -> None:
        """Shutdown in reverse order."""
        if self._mirror:
            await self._mirror.engine.close()
            self._mirror = None
        if self._notifier:
            await self._notifier.aclose()
            self._notifier = None
        await self._store.close()
        self._started = False
        logger.info("Event log service stopped")

    @property
    def store(self) -> IEventLogStore:
        if not self._started:
            raise NotInitializedError("EventLogService")
        return self._store

    @property
    def mirror(self) -> DebugLogMirror | None:
        return self._mirror

    async def record_log_entry(self, entry: LogEntry) -> int:
        """Canonical insert first; a size-triggered mirror failure propagates."""
        row_id = await self.store.append_log_entry(entry)
        if self._mirror:
            await self._mirror.record(entry)
        return row_id

    async def record_approval_event(self, event: ApprovalEvent) -> bool:
        inserted = await self.store.insert_approval_event(event)
        logger.info(
            "Approval event %s",
            "recorded" if inserted else "already present",
            extra={
                "context": {
                    "event_id": event.event_id,
                    "decision_point_id": event.decision_point_id,
                    "event_type": event.event_type.value,
                }
            },
        )
        return inserted

    # Reads
    async def list_log_entries(self, instance_id: str) -> list[LogEntry]:
        return await self.store.list_log_entries(instance_id)

    async def query_activity_by_month(
        self,
        month: str,
        year: int | str,
        username: str | None = None,
        org_id: str | None = None,
    ) -> list[LogEntry]:
        return await self.store.query_activity_by_month(
            month, year, username=username, org_id=org_id, tz=self._tz
        )

    async def get_approval_events_by_decision_point(
        self, org_id: str, agent_name: str, decision_point_id: str
    ) -> list[ApprovalEventRecord]:
        return await self.store.get_approval_events_by_decision_point(
            org_id, agent_name, decision_point_id
        )

    async def get_approval_request_by_decision_point(
        self, org_id: str, agent_name: str, decision_point_id: str
    ) -> Any | None:
        return await self.store.get_approval_request_by_decision_point(
            org_id, agent_name, decision_point_id
        )

    async def query_approval_events(
        self, query: ApprovalEventQuery
    ) -> list[ApprovalEventRecord]:
        return await self.store.query_approval_events(query)


def create_service(env_file: PathLike | None = None) -> EventLogService:
    """Load settings, configure logging and build an unstarted service."""
    settings = load_settings(env_file)
    setup_logging(settings.log_level, str(settings.log_file))
    logger.info("Logging configured at %s", settings.log_level.upper())
    return EventLogService(settings)
